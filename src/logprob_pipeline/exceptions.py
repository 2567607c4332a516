"""Exception hierarchy for logprob-pipeline.

All exceptions derive from LogprobPipelineError, enabling broad catch patterns
at the application boundary while allowing fine-grained handling internally.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from logprob_pipeline.orchestrator.context import Context


class LogprobPipelineError(Exception):
    """Base exception for all logprob-pipeline errors."""


class InvalidInputError(LogprobPipelineError):
    """A pure pipeline stage received input it cannot process.

    Raised for empty or malformed raw candidate lists, non-finite
    log-probabilities, or out-of-range mass values. Always a caller bug.
    """


class BoundaryError(LogprobPipelineError):
    """The acquisition boundary failed to produce a usable response.

    Covers timeouts, transport failures, malformed payloads, and empty
    candidate lists. Recoverable: the orchestrator attaches the failed step
    number and the unchanged Context so the caller can retry the same step.

    Attributes:
        step: Zero-based index of the step that failed, or ``None`` when
            raised by a source outside of an orchestrated step.
        context: The Context as it was before the failed step.
    """

    def __init__(
        self,
        message: str,
        *,
        step: int | None = None,
        context: Context | None = None,
    ) -> None:
        super().__init__(message)
        self.step = step
        self.context = context


class StepInProgressError(LogprobPipelineError):
    """A new step was requested while another one is still in flight.

    Requests are rejected synchronously and never queued.
    """


class PreviewError(LogprobPipelineError):
    """A lookahead preview for a single candidate could not be produced.

    Non-fatal: the orchestrator records an empty preview for that candidate
    instead of propagating this error.
    """


class SelectionError(LogprobPipelineError):
    """A candidate could not be selected or committed.

    Raised when the residual category is committed but the long tail holds
    no drawable member, or when the chosen candidate does not belong to
    the distribution it is committed from.
    """


class ConfigValidationError(LogprobPipelineError):
    """Configuration field validation failed.

    Raised when per-call options contain unknown keys, attempt to override
    infrastructure fields, or fail type or range validation.
    """
