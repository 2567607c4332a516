"""Deterministic offline logprob source for tests and demos.

Log-probabilities over a small fixed vocabulary are drawn from a normal
distribution with an RNG seeded by ``(seed, prefix)``. The same prefix
always yields the same alternatives, so multi-step runs are reproducible
without a model server.
"""

from __future__ import annotations

import hashlib
import time
from collections.abc import Sequence

import numpy as np

from logprob_pipeline.exceptions import BoundaryError
from logprob_pipeline.sources.base import LogprobSource
from logprob_pipeline.sources.registry import register_logprob_source
from logprob_pipeline.sources.types import AcquisitionRequest, AcquisitionResult, RawCandidate

DEFAULT_VOCABULARY: tuple[str, ...] = (
    " the",
    " The",
    " a",
    " cat",
    " Cat",
    " dog",
    " sat",
    " on",
    " mat",
    " and",
    " ran",
    " away",
    " quickly",
    " home",
    ",",
    ".",
    "!",
    "\n",
    "<|endoftext|>",
)


@register_logprob_source("mock")
class MockLogprobSource(LogprobSource):
    """Seeded mock source over a fixed vocabulary.

    Args:
        seed: Base RNG seed; combined with a hash of each prefix.
        vocabulary: Token texts; the index of each entry is its token id.
        spread: Standard deviation of the raw scores. Larger values give
            more peaked distributions.
        model: Model name reported in results.
    """

    def __init__(
        self,
        seed: int = 0,
        vocabulary: Sequence[str] = DEFAULT_VOCABULARY,
        spread: float = 2.0,
        model: str = "mock",
    ) -> None:
        if not vocabulary:
            raise ValueError("vocabulary must not be empty")
        self._seed = seed
        self._vocabulary = tuple(vocabulary)
        self._spread = spread
        self._model = model
        self._closed = False

    @property
    def name(self) -> str:
        """Return ``'mock'``."""
        return "mock"

    @property
    def is_available(self) -> bool:
        """``True`` until closed."""
        return not self._closed

    def log_probabilities(self, prefix: str) -> np.ndarray:
        """Full-vocabulary log-probabilities for the slot after *prefix*.

        Args:
            prefix: Conditioning text.

        Returns:
            Array aligned with the vocabulary whose ``exp`` sums to 1.0.
        """
        digest = hashlib.sha256(prefix.encode("utf-8")).digest()
        rng = np.random.default_rng([self._seed, int.from_bytes(digest[:8], "little")])
        scores = rng.normal(loc=0.0, scale=self._spread, size=len(self._vocabulary))
        result: np.ndarray = scores - np.logaddexp.reduce(scores)
        return result

    def fetch(self, request: AcquisitionRequest) -> AcquisitionResult:
        """Return the top alternatives and a greedy continuation.

        Args:
            request: Prefix, alternative count, and generation length.

        Returns:
            Up to ``max_alternatives`` alternatives in descending order and
            ``stop_after_tokens`` greedily generated tokens.

        Raises:
            BoundaryError: If the source has been closed.
        """
        if self._closed:
            raise BoundaryError("MockLogprobSource is closed")

        log_probs = self.log_probabilities(request.prefix)
        # Stable sort keeps vocabulary order among equal scores.
        ranked = np.argsort(-log_probs, kind="stable")[: request.max_alternatives]
        alternatives = tuple(
            RawCandidate(
                text=self._vocabulary[idx],
                token_id=int(idx),
                log_probability=float(log_probs[idx]),
            )
            for idx in ranked
        )

        generated: list[str] = []
        text = request.prefix
        for _ in range(request.stop_after_tokens):
            token = self._vocabulary[int(np.argmax(self.log_probabilities(text)))]
            generated.append(token)
            text += token

        return AcquisitionResult(
            alternatives=alternatives,
            text="".join(generated),
            model=self._model,
            timestamp_ns=time.time_ns(),
        )

    def close(self) -> None:
        """Mark the source closed."""
        self._closed = True
