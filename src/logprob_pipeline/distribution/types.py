"""Data types for raw and normalized next-token distributions."""

from __future__ import annotations

from dataclasses import dataclass

# Reserved token id of the synthesized residual category. Vocabulary ids
# are non-negative, so it can never collide with a real token.
RESIDUAL_ID: int = -1

# Placeholder text carried by the residual category.
RESIDUAL_TEXT: str = "(other)"


@dataclass(frozen=True, slots=True)
class Candidate:
    """One entry of a next-token distribution.

    Attributes:
        text: Surface text of the token exactly as the endpoint returned it.
        token_id: Vocabulary id, or ``RESIDUAL_ID`` for the residual category.
        log_probability: Natural-log probability reported by the endpoint.
            ``None`` for the residual category.
        probability: Normalized probability within its distribution.
    """

    text: str
    token_id: int
    log_probability: float | None
    probability: float

    @property
    def is_residual(self) -> bool:
        """Whether this candidate is the synthesized residual category."""
        return self.token_id == RESIDUAL_ID


@dataclass(frozen=True, slots=True)
class Provenance:
    """Where a distribution came from.

    Attributes:
        prefix: Text the endpoint was conditioned on.
        model: Model identifier reported by (or requested from) the endpoint.
        timestamp_ns: Wall-clock acquisition time, nanoseconds since epoch.
    """

    prefix: str = ""
    model: str = ""
    timestamp_ns: int = 0


@dataclass(frozen=True, slots=True)
class Distribution:
    """An ordered, immutable sequence of candidates plus provenance.

    Attributes:
        candidates: Candidates in acquisition order (descending probability).
        provenance: Source prefix, model, and acquisition timestamp.
    """

    candidates: tuple[Candidate, ...]
    provenance: Provenance = Provenance()

    @property
    def total_probability(self) -> float:
        """Sum of candidate probabilities."""
        return float(sum(c.probability for c in self.candidates))

    @property
    def residual(self) -> Candidate | None:
        """The residual candidate, if one was appended."""
        for candidate in self.candidates:
            if candidate.is_residual:
                return candidate
        return None

    def __len__(self) -> int:
        return len(self.candidates)
