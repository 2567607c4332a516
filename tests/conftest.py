"""Shared pytest fixtures for logprob-pipeline tests.

Provides configuration objects, a scripted test double for the
acquisition boundary, the seeded mock source, and sample raw candidate
lists used across test modules.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

import pytest

from logprob_pipeline.config import PipelineConfig
from logprob_pipeline.exceptions import BoundaryError
from logprob_pipeline.sources.base import LogprobSource
from logprob_pipeline.sources.mock import MockLogprobSource
from logprob_pipeline.sources.types import AcquisitionRequest, AcquisitionResult, RawCandidate

Handler = Callable[[AcquisitionRequest], AcquisitionResult]


class ScriptedSource(LogprobSource):
    """Test double: answers from per-prefix handlers.

    ``responses`` maps a prefix to an AcquisitionResult, an exception to
    raise, or a callable taking the request. Unknown prefixes fall back to
    ``default``. Every request is recorded in ``requests``.
    """

    def __init__(self, default: AcquisitionResult | Exception | Handler | None = None) -> None:
        self.responses: dict[str, AcquisitionResult | Exception | Handler] = {}
        self.default = default
        self.requests: list[AcquisitionRequest] = []
        self._lock = threading.Lock()
        self.closed = False

    @property
    def name(self) -> str:
        return "scripted"

    @property
    def is_available(self) -> bool:
        return not self.closed

    def fetch(self, request: AcquisitionRequest) -> AcquisitionResult:
        with self._lock:
            self.requests.append(request)
        answer = self.responses.get(request.prefix, self.default)
        if answer is None:
            raise BoundaryError(f"no scripted response for {request.prefix!r}")
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(request)
        return answer

    def close(self) -> None:
        self.closed = True


def make_result(
    pairs: list[tuple[str, float]],
    text: str = "",
    model: str = "test-model",
) -> AcquisitionResult:
    """Build an AcquisitionResult from (token, log-probability) pairs."""
    return AcquisitionResult(
        alternatives=tuple(
            RawCandidate(text=tok, token_id=i, log_probability=lp)
            for i, (tok, lp) in enumerate(pairs)
        ),
        text=text,
        model=model,
        timestamp_ns=1_700_000_000_000_000_000,
    )


@pytest.fixture
def config() -> PipelineConfig:
    """Default config without .env loading and without log output."""
    return PipelineConfig(_env_file=None, log_level="none")  # type: ignore[call-arg]


@pytest.fixture
def diagnostic_config() -> PipelineConfig:
    """Config with diagnostic mode on and full logging."""
    return PipelineConfig(
        _env_file=None,
        log_level="full",
        diagnostic_mode=True,  # type: ignore[call-arg]
    )


@pytest.fixture
def scripted_source() -> ScriptedSource:
    """A ScriptedSource with no responses configured."""
    return ScriptedSource()


@pytest.fixture
def mock_source() -> MockLogprobSource:
    """MockLogprobSource with a fixed seed for reproducibility."""
    return MockLogprobSource(seed=7)


@pytest.fixture
def scenario_raw() -> list[RawCandidate]:
    """The cat / Cat / dog example: two variants of one word and one other."""
    return [
        RawCandidate(text="cat", token_id=10, log_probability=-0.1),
        RawCandidate(text=" Cat", token_id=11, log_probability=-2.3),
        RawCandidate(text="dog", token_id=12, log_probability=-5.0),
    ]


@pytest.fixture
def make_scripted_result() -> Callable[..., AcquisitionResult]:
    """Expose ``make_result`` to test modules."""
    return make_result
