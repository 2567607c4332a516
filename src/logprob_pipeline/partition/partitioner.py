"""Threshold partitioning of merged distributions into primary and long tail."""

from __future__ import annotations

import math
from collections.abc import Sequence

from logprob_pipeline.canonical.types import MergedCandidate
from logprob_pipeline.config import DEFAULT_PRIMARY_SHARE_THRESHOLD
from logprob_pipeline.distribution.types import Provenance
from logprob_pipeline.exceptions import InvalidInputError
from logprob_pipeline.partition.types import PartitionedDistribution


def partition(
    merged: Sequence[MergedCandidate],
    threshold: float = DEFAULT_PRIMARY_SHARE_THRESHOLD,
    *,
    dropped_mass: float = 0.0,
    provenance: Provenance | None = None,
) -> PartitionedDistribution:
    """Split merged candidates at a share threshold.

    Candidates with ``probability >= threshold`` go to ``primary``, the
    rest to ``long_tail``. Both buckets are ordered by descending
    probability; ties keep their input order. The residual category is
    partitioned like any other candidate. No renormalization is applied.

    Args:
        merged: Merged candidates, normally already in descending order.
        threshold: Share threshold in [0, 1].
        dropped_mass: Mass removed upstream, carried through for reporting.
        provenance: Where the distribution came from.

    Returns:
        A new PartitionedDistribution.

    Raises:
        InvalidInputError: If ``threshold`` is outside [0, 1].
    """
    if math.isnan(threshold) or not 0.0 <= threshold <= 1.0:
        raise InvalidInputError(f"Share threshold must be in [0, 1], got {threshold!r}")

    ordered = sorted(merged, key=lambda m: m.probability, reverse=True)
    primary = tuple(m for m in ordered if m.probability >= threshold)
    long_tail = tuple(m for m in ordered if m.probability < threshold)

    return PartitionedDistribution(
        primary=primary,
        long_tail=long_tail,
        dropped_mass=dropped_mass,
        provenance=provenance if provenance is not None else Provenance(),
    )
