"""Prediction loop subsystem for logprob-pipeline.

Immutable contexts, the step state machine, lookahead previews, and the
orchestrator that drives them against a logprob source.
"""

from logprob_pipeline.orchestrator.context import Context, is_pure_punctuation, join_token
from logprob_pipeline.orchestrator.orchestrator import PredictionOrchestrator
from logprob_pipeline.orchestrator.preview import truncate_preview
from logprob_pipeline.orchestrator.state import StepState
from logprob_pipeline.orchestrator.types import LookaheadCandidate, LookaheadResult, StepResult

__all__ = [
    "Context",
    "LookaheadCandidate",
    "LookaheadResult",
    "PredictionOrchestrator",
    "StepResult",
    "StepState",
    "is_pure_punctuation",
    "join_token",
    "truncate_preview",
]
