"""Data types for the token canonicalization subsystem."""

from __future__ import annotations

from dataclasses import dataclass

from logprob_pipeline.distribution.types import RESIDUAL_ID


@dataclass(frozen=True, slots=True)
class MergedCandidate:
    """One surface choice after merging raw tokens with equal canonical keys.

    Attributes:
        text: Display text, the original text of the most probable member.
        key: Canonical merge key shared by every member.
        probability: Sum of member probabilities.
        log_probability: ``logsumexp`` of member log-probabilities, i.e. the
            raw model log-probability of the whole group. ``None`` for the
            residual category.
        token_ids: Member token ids in acquisition order.
        variants: Member surface texts in acquisition order.
    """

    text: str
    key: str
    probability: float
    log_probability: float | None
    token_ids: tuple[int, ...]
    variants: tuple[str, ...]

    @property
    def is_residual(self) -> bool:
        """Whether this entry is the synthesized residual category."""
        return self.token_ids == (RESIDUAL_ID,)
