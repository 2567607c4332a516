"""Result types returned by the prediction orchestrator."""

from __future__ import annotations

from dataclasses import dataclass

from logprob_pipeline.canonical.types import MergedCandidate
from logprob_pipeline.orchestrator.context import Context
from logprob_pipeline.partition.types import PartitionedDistribution


@dataclass(frozen=True, slots=True)
class StepResult:
    """Outcome of one ``advance()`` call.

    Attributes:
        step: Zero-based index of the step (tokens committed beforehand).
        context: The Context the distribution was computed for.
        distribution: Partitioned next-token distribution.
    """

    step: int
    context: Context
    distribution: PartitionedDistribution


@dataclass(frozen=True, slots=True)
class LookaheadCandidate:
    """A primary candidate plus a preview of where choosing it leads.

    Attributes:
        candidate: The merged candidate the preview was generated for.
        preview: Truncated continuation; empty when the preview failed.
        error: Failure message when the preview could not be produced.
    """

    candidate: MergedCandidate
    preview: str
    error: str | None = None

    @property
    def text(self) -> str:
        return self.candidate.text

    @property
    def probability(self) -> float:
        return self.candidate.probability


@dataclass(frozen=True, slots=True)
class LookaheadResult:
    """Outcome of one ``advance_with_lookahead()`` call.

    Attributes:
        step: Zero-based index of the step.
        context: The Context the distribution was computed for.
        distribution: Partitioned next-token distribution.
        lookaheads: Previews for the top-K primary candidates, in
            distribution order.
    """

    step: int
    context: Context
    distribution: PartitionedDistribution
    lookaheads: tuple[LookaheadCandidate, ...]
