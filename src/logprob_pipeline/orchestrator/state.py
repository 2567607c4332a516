"""States of the prediction loop."""

from __future__ import annotations

import enum


class StepState(enum.Enum):
    """Lifecycle of one orchestrator.

    IDLE -> AWAITING_RESPONSE -> READY [-> EXPANDING -> READY] -> IDLE
    AWAITING_RESPONSE -> FAILED on a boundary error; FAILED accepts a retry.
    """

    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    READY = "ready"
    EXPANDING = "expanding"
    FAILED = "failed"

    @property
    def in_progress(self) -> bool:
        """Whether a step is in flight and new requests must be refused."""
        return self in (StepState.AWAITING_RESPONSE, StepState.EXPANDING)
