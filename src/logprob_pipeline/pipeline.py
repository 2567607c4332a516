"""The pure token probability pipeline.

    raw (text, token_id, log-probability) -> normalize -> residual
        -> canonicalize/merge -> partition

Every stage returns new immutable values and depends only on its
arguments, so identical inputs always produce identical outputs.
"""

from __future__ import annotations

from collections.abc import Sequence

from logprob_pipeline.canonical.canonicalizer import merge_candidates
from logprob_pipeline.config import (
    DEFAULT_PRIMARY_SHARE_THRESHOLD,
    DEFAULT_RESIDUAL_MIN_MASS,
)
from logprob_pipeline.distribution.normalizer import normalize_logprobs
from logprob_pipeline.distribution.residual import add_residual
from logprob_pipeline.distribution.types import (
    RESIDUAL_ID,
    Candidate,
    Distribution,
    Provenance,
)
from logprob_pipeline.exceptions import InvalidInputError
from logprob_pipeline.partition.partitioner import partition
from logprob_pipeline.partition.types import PartitionedDistribution
from logprob_pipeline.sources.types import RawCandidate


def build_distribution(
    raw_candidates: Sequence[RawCandidate],
    provenance: Provenance | None = None,
) -> Distribution:
    """Normalize raw alternatives into a Distribution over the observed set.

    Args:
        raw_candidates: Ranked alternatives from the acquisition boundary.
        provenance: Where the alternatives came from.

    Returns:
        A Distribution whose probabilities sum to 1.0.

    Raises:
        InvalidInputError: If the list is empty or an entry uses the
            reserved residual id.
    """
    if not raw_candidates:
        raise InvalidInputError("Raw candidate list is empty")
    if any(raw.token_id == RESIDUAL_ID for raw in raw_candidates):
        raise InvalidInputError(f"Token id {RESIDUAL_ID} is reserved for the residual category")

    probabilities = normalize_logprobs([raw.log_probability for raw in raw_candidates])
    candidates = tuple(
        Candidate(
            text=raw.text,
            token_id=raw.token_id,
            log_probability=float(raw.log_probability),
            probability=float(p),
        )
        for raw, p in zip(raw_candidates, probabilities)
    )
    return Distribution(
        candidates=candidates,
        provenance=provenance if provenance is not None else Provenance(),
    )


def compute_distribution(
    raw_candidates: Sequence[RawCandidate],
    observed_mass: float = 1.0,
    *,
    residual_min_mass: float = DEFAULT_RESIDUAL_MIN_MASS,
    primary_share_threshold: float = DEFAULT_PRIMARY_SHARE_THRESHOLD,
    provenance: Provenance | None = None,
) -> PartitionedDistribution:
    """Run the full pipeline over one next-token slot.

    Args:
        raw_candidates: Ranked alternatives, descending probability. Not
            re-sorted.
        observed_mass: Share of the model distribution the alternatives
            cover. 1.0 treats them as complete.
        residual_min_mass: Smallest residual mass worth surfacing.
        primary_share_threshold: Probability at or above which a merged
            candidate is primary.
        provenance: Where the alternatives came from.

    Returns:
        The partitioned distribution. Its total is 1.0 minus the mass of
        any non-displayable tokens that were dropped.

    Raises:
        InvalidInputError: On empty or malformed input.
    """
    distribution = build_distribution(raw_candidates, provenance)
    distribution = add_residual(distribution, observed_mass, residual_min_mass)
    merged, dropped_mass = merge_candidates(distribution.candidates)
    return partition(
        merged,
        primary_share_threshold,
        dropped_mass=dropped_mass,
        provenance=distribution.provenance,
    )
