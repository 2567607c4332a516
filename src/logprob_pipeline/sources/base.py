"""Abstract base class for all logprob sources.

A logprob source is the acquisition boundary: given a prefix it returns
the ranked alternatives for the next-token slot and, when asked for more
than one token, the generated continuation. Subclasses implement
``name``, ``is_available``, ``fetch()``, and ``close()``; the ABC provides
a concrete ``health_check()``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from logprob_pipeline.sources.types import AcquisitionRequest, AcquisitionResult


class LogprobSource(ABC):
    """Abstract base for all logprob sources.

    ``fetch()`` must be safe to call from several threads at once: the
    orchestrator issues lookahead previews concurrently.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable source identifier (e.g., ``'openai_completions'``)."""

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Whether the source can currently serve requests."""

    @abstractmethod
    def fetch(self, request: AcquisitionRequest) -> AcquisitionResult:
        """Return ranked next-token alternatives for ``request.prefix``.

        Args:
            request: Prefix, alternative count, and generation length.

        Returns:
            The alternatives (at most ``request.max_alternatives``, descending
            probability) and the generated text.

        Raises:
            BoundaryError: On timeout, transport failure, or malformed payload.
        """

    @abstractmethod
    def close(self) -> None:
        """Release resources (connections, clients, file handles)."""

    def health_check(self) -> dict[str, Any]:
        """Return a status dictionary for this source.

        Returns:
            Dictionary with at least ``'source'`` and ``'healthy'`` keys.
        """
        return {"source": self.name, "healthy": self.is_available}
