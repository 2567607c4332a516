"""Data types for the distribution partitioning subsystem."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from logprob_pipeline.canonical.types import MergedCandidate
from logprob_pipeline.distribution.types import Provenance


@dataclass(frozen=True, slots=True)
class PartitionedDistribution:
    """A merged distribution split into primary and long-tail buckets.

    Members keep their absolute probabilities; use ``relative_weights()``
    when weights within one bucket are needed.

    Attributes:
        primary: Candidates at or above the share threshold, descending.
        long_tail: The remaining candidates, same relative order.
        dropped_mass: Probability of non-displayable tokens removed before
            merging. ``primary`` + ``long_tail`` sum to ``1 - dropped_mass``.
        provenance: Source prefix, model, and acquisition timestamp.
    """

    primary: tuple[MergedCandidate, ...]
    long_tail: tuple[MergedCandidate, ...]
    dropped_mass: float = 0.0
    provenance: Provenance = Provenance()

    @property
    def candidates(self) -> tuple[MergedCandidate, ...]:
        """Every candidate, primary first."""
        return self.primary + self.long_tail

    @property
    def total_probability(self) -> float:
        """Sum of probabilities over both buckets."""
        return float(sum(m.probability for m in self.candidates))

    @property
    def residual(self) -> MergedCandidate | None:
        """The residual category, wherever it landed."""
        for candidate in self.candidates:
            if candidate.is_residual:
                return candidate
        return None

    def __contains__(self, candidate: object) -> bool:
        return candidate in self.candidates


def relative_weights(bucket: Sequence[MergedCandidate]) -> list[float]:
    """Weights of bucket members relative to the bucket's own total.

    Args:
        bucket: Candidates from one partition bucket.

    Returns:
        ``member.probability / sum(bucket)`` for each member, or an empty
        list if the bucket carries no mass.
    """
    total = sum(m.probability for m in bucket)
    if total <= 0.0:
        return []
    return [m.probability / total for m in bucket]
