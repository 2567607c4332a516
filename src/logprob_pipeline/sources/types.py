"""Data types exchanged with the acquisition boundary."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RawCandidate:
    """One ranked alternative for the next-token slot, as the endpoint sent it.

    Attributes:
        text: Token surface text.
        token_id: Vocabulary id (non-negative).
        log_probability: Natural-log probability assigned by the model.
    """

    text: str
    token_id: int
    log_probability: float


@dataclass(frozen=True, slots=True)
class AcquisitionRequest:
    """Parameters of one call to the acquisition boundary.

    Attributes:
        prefix: Text to condition on.
        max_alternatives: Maximum number of ranked alternatives to return
            for the first generated slot.
        stop_after_tokens: Number of tokens the endpoint may generate before
            stopping. 1 for a plain distribution step.
    """

    prefix: str
    max_alternatives: int
    stop_after_tokens: int = 1


@dataclass(frozen=True, slots=True)
class AcquisitionResult:
    """Response of the acquisition boundary.

    Attributes:
        alternatives: Ranked alternatives for the first generated slot, in
            descending probability order.
        text: Generated continuation (at most ``stop_after_tokens`` tokens).
        model: Model identifier reported by the endpoint.
        timestamp_ns: Wall-clock time the response was received.
    """

    alternatives: tuple[RawCandidate, ...]
    text: str = ""
    model: str = ""
    timestamp_ns: int = 0
