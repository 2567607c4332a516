"""Residual category synthesis for truncated top-N distributions.

A top-N sample of a model's output never covers the whole vocabulary.
The residual aggregator scales the observed candidates down to the mass
they are known to represent and appends one synthetic candidate holding
the unobserved remainder, unless that remainder is too small to matter.
"""

from __future__ import annotations

import math
from dataclasses import replace

from logprob_pipeline.config import DEFAULT_RESIDUAL_MIN_MASS
from logprob_pipeline.distribution.types import (
    RESIDUAL_ID,
    RESIDUAL_TEXT,
    Candidate,
    Distribution,
)
from logprob_pipeline.exceptions import InvalidInputError


def add_residual(
    distribution: Distribution,
    observed_mass: float,
    min_mass: float = DEFAULT_RESIDUAL_MIN_MASS,
) -> Distribution:
    """Return a new distribution with the unobserved mass made explicit.

    Observed candidates are scaled by ``observed_mass`` and a residual
    candidate carrying ``1 - observed_mass`` is appended when that mass is
    positive and at least ``min_mass``. Otherwise the observed candidates
    are rescaled to sum to 1.0 on their own.

    Args:
        distribution: Normalized distribution over the observed top-N set.
        observed_mass: Share of the full model distribution covered by the
            observed candidates, in (0, 1]. Values slightly above 1.0 are
            clamped.
        min_mass: Smallest residual mass worth surfacing.

    Returns:
        A new Distribution whose probabilities sum to 1.0.

    Raises:
        InvalidInputError: If the distribution is empty, already holds a
            residual candidate, or ``observed_mass`` is not positive.
    """
    if not distribution.candidates:
        raise InvalidInputError("Cannot aggregate a residual over an empty distribution")
    if distribution.residual is not None:
        raise InvalidInputError("Distribution already contains a residual candidate")
    if math.isnan(observed_mass) or observed_mass <= 0.0:
        raise InvalidInputError(f"observed_mass must be positive, got {observed_mass!r}")

    mass = min(observed_mass, 1.0)
    residual_mass = max(0.0, 1.0 - mass)

    observed_total = distribution.total_probability
    if observed_total <= 0.0:
        raise InvalidInputError("Observed candidates carry no probability mass")

    if residual_mass > 0.0 and residual_mass >= min_mass:
        scale = mass / observed_total
        candidates = [
            replace(c, probability=c.probability * scale) for c in distribution.candidates
        ]
        candidates.append(
            Candidate(
                text=RESIDUAL_TEXT,
                token_id=RESIDUAL_ID,
                log_probability=None,
                probability=residual_mass,
            )
        )
    else:
        candidates = [
            replace(c, probability=c.probability / observed_total)
            for c in distribution.candidates
        ]

    return Distribution(candidates=tuple(candidates), provenance=distribution.provenance)
