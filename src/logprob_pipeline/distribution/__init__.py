"""Distribution subsystem for logprob-pipeline.

Numerically stable normalization of raw log-probabilities and synthesis
of the residual category for truncated top-N samples.
"""

from logprob_pipeline.distribution.normalizer import normalize_logprobs, observed_mass
from logprob_pipeline.distribution.residual import add_residual
from logprob_pipeline.distribution.types import (
    RESIDUAL_ID,
    RESIDUAL_TEXT,
    Candidate,
    Distribution,
    Provenance,
)

__all__ = [
    "RESIDUAL_ID",
    "RESIDUAL_TEXT",
    "Candidate",
    "Distribution",
    "Provenance",
    "add_residual",
    "normalize_logprobs",
    "observed_mass",
]
