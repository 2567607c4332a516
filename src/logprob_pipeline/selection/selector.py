"""Choosing a candidate to commit from a partitioned distribution.

Two rules are needed by the orchestrator:

    greedy: the most probable committable candidate (forecast mode)
    long-tail draw: resolve the residual category into a concrete token
        by drawing among long-tail members, weighted by their own
        probability

The residual category itself is never committable: it has no text of
its own.
"""

from __future__ import annotations

import numpy as np

from logprob_pipeline.canonical.types import MergedCandidate
from logprob_pipeline.exceptions import SelectionError
from logprob_pipeline.partition.types import PartitionedDistribution, relative_weights


def pick_greedy(distribution: PartitionedDistribution) -> MergedCandidate | None:
    """Return the most probable non-residual candidate.

    Primary candidates are preferred; the long tail is consulted only when
    every primary entry is the residual.

    Args:
        distribution: Partitioned distribution of one step.

    Returns:
        The chosen candidate, or ``None`` if nothing can be committed.
    """
    for bucket in (distribution.primary, distribution.long_tail):
        for candidate in bucket:
            if not candidate.is_residual:
                return candidate
    return None


def draw_from_long_tail(
    distribution: PartitionedDistribution,
    rng: np.random.Generator,
) -> MergedCandidate:
    """Draw one long-tail member, weighted by its probability.

    Only long-tail members take part; primary members never do. The
    residual category is excluded even if it landed in the long tail.

    Args:
        distribution: Partitioned distribution of one step.
        rng: Random generator used for the draw.

    Returns:
        The drawn long-tail candidate.

    Raises:
        SelectionError: If the long tail holds no drawable member.
    """
    members = [m for m in distribution.long_tail if not m.is_residual]
    weights = relative_weights(members)
    if not weights:
        raise SelectionError("Long tail has no drawable candidate for the residual category")

    idx = int(rng.choice(len(members), p=np.asarray(weights, dtype=np.float64)))
    return members[idx]
