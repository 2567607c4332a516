"""Diagnostic logging subsystem for logprob-pipeline.

Provides immutable per-step records and a configurable logger that
supports none/summary/full verbosity and in-memory diagnostic mode.
"""

from logprob_pipeline.logging.logger import StepLogger
from logprob_pipeline.logging.types import StepRecord

__all__ = [
    "StepLogger",
    "StepRecord",
]
