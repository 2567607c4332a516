"""Tests for OpenAICompletionsSource (httpx.MockTransport, no network)."""

from __future__ import annotations

import json
import logging
import math
from typing import Any

import httpx
import pytest

from logprob_pipeline.config import PipelineConfig
from logprob_pipeline.exceptions import BoundaryError
from logprob_pipeline.sources.openai_compat import OpenAICompletionsSource, _parse_alternatives
from logprob_pipeline.sources.types import AcquisitionRequest


def _make_config(**overrides: Any) -> PipelineConfig:
    defaults: dict[str, Any] = {
        "api_base_url": "http://llm.test/v1",
        "model": "test-model",
        "retry_count": 1,
        "log_level": "none",
    }
    defaults.update(overrides)
    return PipelineConfig(_env_file=None, **defaults)  # type: ignore[call-arg]


def _payload(top: Any, text: str = " sat", model: str = "served-model") -> dict[str, Any]:
    return {
        "id": "cmpl-1",
        "object": "text_completion",
        "model": model,
        "choices": [
            {
                "index": 0,
                "text": text,
                "logprobs": {"tokens": [text], "top_logprobs": [top]},
                "finish_reason": "length",
            }
        ],
    }


class _Recorder:
    """Transport handler that replays scripted responses and records requests."""

    def __init__(self, *responses: httpx.Response | Exception) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(answer, Exception):
            raise answer
        return answer


def _source(recorder: _Recorder, **overrides: Any) -> OpenAICompletionsSource:
    return OpenAICompletionsSource(
        _make_config(**overrides), transport=httpx.MockTransport(recorder)
    )


class TestParseAlternatives:
    """Tests for _parse_alternatives()."""

    def test_mapping_form_sorted(self) -> None:
        result = _parse_alternatives({" dog": -2.0, " cat": -0.5, " mat": -1.0})
        assert [c.text for c in result] == [" cat", " mat", " dog"]
        assert [c.token_id for c in result] == [0, 1, 2]

    def test_list_form_with_ids(self) -> None:
        entry = [
            {"token": " a", "logprob": -1.5, "token_id": 64},
            {"token": " the", "logprob": -0.2, "id": 262},
        ]
        result = _parse_alternatives(entry)
        assert [(c.text, c.token_id) for c in result] == [(" the", 262), (" a", 64)]

    def test_list_form_without_ids_uses_rank(self) -> None:
        result = _parse_alternatives(
            [{"token": "x", "logprob": -3.0}, {"token": "y", "logprob": -1.0}]
        )
        assert [(c.text, c.token_id) for c in result] == [("y", 0), ("x", 1)]

    def test_negative_infinity_allowed(self) -> None:
        result = _parse_alternatives({"a": -0.1, "b": float("-inf")})
        assert math.isinf(result[1].log_probability)

    def test_nan_rejected(self) -> None:
        with pytest.raises(BoundaryError, match="NaN"):
            _parse_alternatives({"a": float("nan")})

    @pytest.mark.parametrize("entry", ["oops", 42, [{"logprob": -1.0}], {"a": "not-a-number"}])
    def test_malformed_rejected(self, entry: Any) -> None:
        with pytest.raises(BoundaryError):
            _parse_alternatives(entry)


class TestOpenAICompletionsSource:
    """Tests for the HTTP source against a mocked transport."""

    def test_request_body_and_headers(self) -> None:
        recorder = _Recorder(httpx.Response(200, json=_payload({" cat": -0.5})))
        source = _source(recorder, api_key="sk-test")

        source.fetch(AcquisitionRequest(prefix="The", max_alternatives=7, stop_after_tokens=3))

        request = recorder.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "http://llm.test/v1/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body == {
            "prompt": "The",
            "max_tokens": 3,
            "logprobs": 7,
            "temperature": 0.0,
            "model": "test-model",
        }

    def test_no_auth_header_without_key(self) -> None:
        recorder = _Recorder(httpx.Response(200, json=_payload({" cat": -0.5})))
        _source(recorder, model="").fetch(AcquisitionRequest(prefix="", max_alternatives=1))
        request = recorder.requests[0]
        assert "Authorization" not in request.headers
        assert "model" not in json.loads(request.content)

    def test_parses_response(self) -> None:
        top = {" mat": -1.2, " cat": -0.3, " hat": -2.5}
        recorder = _Recorder(httpx.Response(200, json=_payload(top, text=" cat sat")))
        result = _source(recorder).fetch(AcquisitionRequest(prefix="The", max_alternatives=2))

        assert [c.text for c in result.alternatives] == [" cat", " mat"]
        assert result.alternatives[0].log_probability == -0.3
        assert result.text == " cat sat"
        assert result.model == "served-model"
        assert result.timestamp_ns > 0

    def test_model_falls_back_to_config(self) -> None:
        payload = _payload({" cat": -0.5})
        del payload["model"]
        recorder = _Recorder(httpx.Response(200, json=payload))
        result = _source(recorder).fetch(AcquisitionRequest(prefix="", max_alternatives=1))
        assert result.model == "test-model"

    def test_retries_then_succeeds(self, caplog: pytest.LogCaptureFixture) -> None:
        recorder = _Recorder(
            httpx.Response(503, text="overloaded"),
            httpx.Response(200, json=_payload({" cat": -0.5})),
        )
        with caplog.at_level(logging.WARNING, logger="logprob_pipeline"):
            result = _source(recorder, retry_count=1).fetch(
                AcquisitionRequest(prefix="", max_alternatives=1)
            )
        assert len(recorder.requests) == 2
        assert result.alternatives[0].text == " cat"
        assert any("attempt 1/2" in r.message for r in caplog.records)

    def test_exhausted_retries_raise(self) -> None:
        recorder = _Recorder(httpx.Response(500, text="boom"))
        with pytest.raises(BoundaryError, match="after 3 attempts"):
            _source(recorder, retry_count=2).fetch(
                AcquisitionRequest(prefix="", max_alternatives=1)
            )
        assert len(recorder.requests) == 3

    def test_transport_error_raises(self) -> None:
        recorder = _Recorder(httpx.ConnectError("refused"))
        with pytest.raises(BoundaryError, match="refused"):
            _source(recorder, retry_count=0).fetch(
                AcquisitionRequest(prefix="", max_alternatives=1)
            )

    def test_timeout_raises(self) -> None:
        recorder = _Recorder(httpx.ReadTimeout("slow"))
        with pytest.raises(BoundaryError):
            _source(recorder, retry_count=0).fetch(
                AcquisitionRequest(prefix="", max_alternatives=1)
            )

    def test_missing_logprobs_raises(self) -> None:
        payload = {"choices": [{"text": "x", "logprobs": None}]}
        recorder = _Recorder(httpx.Response(200, json=payload))
        with pytest.raises(BoundaryError, match="no logprobs"):
            _source(recorder, retry_count=0).fetch(
                AcquisitionRequest(prefix="", max_alternatives=1)
            )

    def test_empty_alternatives_raise(self) -> None:
        recorder = _Recorder(httpx.Response(200, json=_payload({})))
        with pytest.raises(BoundaryError, match="empty candidate list"):
            _source(recorder, retry_count=0).fetch(
                AcquisitionRequest(prefix="", max_alternatives=1)
            )

    def test_invalid_json_raises(self) -> None:
        recorder = _Recorder(httpx.Response(200, text="not json"))
        with pytest.raises(BoundaryError):
            _source(recorder, retry_count=0).fetch(
                AcquisitionRequest(prefix="", max_alternatives=1)
            )

    def test_close(self) -> None:
        source = _source(_Recorder(httpx.Response(200, json=_payload({"a": -0.1}))))
        assert source.is_available
        source.close()
        source.close()
        assert not source.is_available
        with pytest.raises(BoundaryError, match="closed"):
            source.fetch(AcquisitionRequest(prefix="", max_alternatives=1))

    def test_health_check_hides_key(self) -> None:
        source = _source(_Recorder(httpx.Response(200)), api_key="sk-secret")
        status = source.health_check()
        assert status["source"] == "openai_completions"
        assert status["healthy"] is True
        assert status["authenticated"] is True
        assert status["base_url"] == "http://llm.test/v1"
        assert "sk-secret" not in json.dumps(status)
