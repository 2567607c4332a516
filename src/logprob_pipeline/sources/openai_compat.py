"""HTTP logprob source for OpenAI-compatible completion endpoints.

Works with any server implementing the legacy ``/completions`` API with
``logprobs`` (vLLM, llama.cpp server, text-generation-inference's OpenAI
layer, OpenAI itself). One call per request:

    POST {api_base_url}/completions
    {"model": ..., "prompt": prefix, "max_tokens": n, "logprobs": k,
     "temperature": 0}

The alternatives for the first generated slot are read from
``choices[0].logprobs.top_logprobs[0]``. Servers return that entry either
as a ``{token: logprob}`` mapping or as a list of
``{"token", "logprob", "token_id"?}`` objects; both are accepted. When the
payload carries no vocabulary ids, ids are assigned by rank, which keeps
them unique within a response.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import httpx

from logprob_pipeline.exceptions import BoundaryError
from logprob_pipeline.sources.base import LogprobSource
from logprob_pipeline.sources.registry import register_logprob_source
from logprob_pipeline.sources.types import AcquisitionResult, RawCandidate

if TYPE_CHECKING:
    from logprob_pipeline.config import PipelineConfig
    from logprob_pipeline.sources.types import AcquisitionRequest

logger = logging.getLogger("logprob_pipeline")


def _parse_alternatives(entry: Any) -> list[RawCandidate]:
    """Turn one ``top_logprobs`` entry into ranked RawCandidates.

    Args:
        entry: A ``{token: logprob}`` mapping or a list of token objects.

    Returns:
        Candidates sorted by descending log-probability (stable).

    Raises:
        BoundaryError: If the entry has an unexpected shape or a
            non-numeric log-probability.
    """
    pairs: list[tuple[str, int | None, float]] = []
    try:
        if isinstance(entry, Mapping):
            for text, logprob in entry.items():
                pairs.append((str(text), None, float(logprob)))
        elif isinstance(entry, list):
            for item in entry:
                token_id = item.get("token_id", item.get("id"))
                pairs.append(
                    (
                        str(item["token"]),
                        int(token_id) if token_id is not None else None,
                        float(item["logprob"]),
                    )
                )
        else:
            raise BoundaryError(f"Unexpected top_logprobs entry type: {type(entry).__name__}")
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise BoundaryError(f"Malformed top_logprobs entry: {exc}") from exc

    if any(math.isnan(lp) for _, _, lp in pairs):
        raise BoundaryError("Endpoint returned a NaN log-probability")

    # JSON object order is not guaranteed to be ranked.
    pairs.sort(key=lambda p: p[2], reverse=True)
    return [
        RawCandidate(
            text=text,
            token_id=token_id if token_id is not None and token_id >= 0 else rank,
            log_probability=logprob,
        )
        for rank, (text, token_id, logprob) in enumerate(pairs)
    ]


@register_logprob_source("openai_completions")
class OpenAICompletionsSource(LogprobSource):
    """Logprob source backed by an OpenAI-compatible ``/completions`` endpoint.

    The underlying ``httpx.Client`` is thread-safe, so one instance serves
    concurrent lookahead previews.

    Args:
        config: Pipeline configuration with endpoint settings.
        transport: Optional httpx transport, e.g. ``httpx.MockTransport`` in
            tests.
    """

    def __init__(
        self,
        config: PipelineConfig,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = config.api_base_url.rstrip("/")
        self._model = config.model
        self._api_key = config.api_key
        self._retry_count = config.retry_count
        self._timeout_s = config.request_timeout_s
        self._closed = False

        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        self._client = httpx.Client(
            base_url=self._base_url,
            headers=headers,
            timeout=self._timeout_s,
            transport=transport,
        )

    @property
    def name(self) -> str:
        """Return ``'openai_completions'``."""
        return "openai_completions"

    @property
    def is_available(self) -> bool:
        """``False`` once the source has been closed."""
        return not self._closed

    def fetch(self, request: AcquisitionRequest) -> AcquisitionResult:
        """POST one completion request and parse its logprobs.

        Retries up to ``retry_count`` times on transport errors, non-2xx
        responses, and malformed payloads.

        Args:
            request: Prefix, alternative count, and generation length.

        Returns:
            Parsed alternatives and generated text.

        Raises:
            BoundaryError: If the source is closed or every attempt failed.
        """
        if self._closed:
            raise BoundaryError("OpenAICompletionsSource is closed")

        body: dict[str, Any] = {
            "prompt": request.prefix,
            "max_tokens": request.stop_after_tokens,
            "logprobs": request.max_alternatives,
            "temperature": 0.0,
        }
        if self._model:
            body["model"] = self._model

        attempts = 1 + self._retry_count
        last_error: Exception | None = None
        for attempt in range(attempts):
            try:
                response = self._client.post("/completions", json=body)
                response.raise_for_status()
                return self._parse_response(response.json(), request)
            except (httpx.HTTPError, BoundaryError, ValueError) as exc:
                last_error = exc
                logger.warning(
                    "Completion request attempt %d/%d failed: %s",
                    attempt + 1,
                    attempts,
                    exc,
                )

        raise BoundaryError(
            f"Completion request failed after {attempts} attempts: {last_error}"
        ) from last_error

    def _parse_response(self, payload: Any, request: AcquisitionRequest) -> AcquisitionResult:
        """Extract alternatives and text from a completions payload.

        Raises:
            BoundaryError: If the payload lacks choices or logprobs, or holds
                no alternatives.
        """
        try:
            choice = payload["choices"][0]
            top_logprobs = choice["logprobs"]["top_logprobs"]
            first_slot = top_logprobs[0]
        except (KeyError, IndexError, TypeError) as exc:
            raise BoundaryError(f"Completion payload has no logprobs: {exc!r}") from exc

        alternatives = _parse_alternatives(first_slot)[: request.max_alternatives]
        if not alternatives:
            raise BoundaryError("Endpoint returned an empty candidate list")

        return AcquisitionResult(
            alternatives=tuple(alternatives),
            text=str(choice.get("text") or ""),
            model=str(payload.get("model") or self._model),
            timestamp_ns=time.time_ns(),
        )

    def close(self) -> None:
        """Close the HTTP client."""
        if self._closed:
            return
        self._closed = True
        self._client.close()

    def health_check(self) -> dict[str, Any]:
        """Return connection details. The API key is never included.

        Returns:
            Dictionary with source name, availability, endpoint, model, and
            whether authentication is configured.
        """
        return {
            "source": self.name,
            "healthy": self.is_available,
            "base_url": self._base_url,
            "model": self._model,
            "authenticated": bool(self._api_key),
            "retry_count": self._retry_count,
        }
