"""Token canonicalization subsystem for logprob-pipeline.

Deny-list display filtering and case/whitespace-insensitive merging of
surface variants into MergedCandidate entries.
"""

from logprob_pipeline.canonical.canonicalizer import (
    RESIDUAL_KEY,
    canonical_key,
    is_displayable,
    merge_candidates,
)
from logprob_pipeline.canonical.types import MergedCandidate

__all__ = [
    "RESIDUAL_KEY",
    "MergedCandidate",
    "canonical_key",
    "is_displayable",
    "merge_candidates",
]
