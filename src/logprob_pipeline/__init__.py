"""logprob-pipeline: presentable next-token distributions from raw logprobs.

Normalizes the ranked log-probabilities an inference endpoint returns,
makes the unobserved mass explicit as a residual category, merges surface
variants of the same token, splits the result into primary and long-tail
buckets, and drives step-by-step prediction loops with optional lookahead
previews and greedy forecasts.
"""

from __future__ import annotations

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("logprob-pipeline")
except PackageNotFoundError:
    __version__ = "0.0.0"

from logprob_pipeline.canonical import MergedCandidate, canonical_key, is_displayable
from logprob_pipeline.config import PipelineConfig, resolve_config, validate_options
from logprob_pipeline.distribution import RESIDUAL_ID, Candidate, Distribution, Provenance
from logprob_pipeline.exceptions import (
    BoundaryError,
    ConfigValidationError,
    InvalidInputError,
    LogprobPipelineError,
    PreviewError,
    SelectionError,
    StepInProgressError,
)
from logprob_pipeline.orchestrator import (
    Context,
    LookaheadCandidate,
    LookaheadResult,
    PredictionOrchestrator,
    StepResult,
    StepState,
)
from logprob_pipeline.partition import PartitionedDistribution, relative_weights
from logprob_pipeline.pipeline import compute_distribution

__all__ = [
    "RESIDUAL_ID",
    "BoundaryError",
    "Candidate",
    "ConfigValidationError",
    "Context",
    "Distribution",
    "InvalidInputError",
    "LogprobPipelineError",
    "LookaheadCandidate",
    "LookaheadResult",
    "MergedCandidate",
    "PartitionedDistribution",
    "PipelineConfig",
    "PredictionOrchestrator",
    "PreviewError",
    "Provenance",
    "SelectionError",
    "StepInProgressError",
    "StepResult",
    "StepState",
    "__version__",
    "canonical_key",
    "compute_distribution",
    "is_displayable",
    "relative_weights",
    "resolve_config",
    "validate_options",
]
