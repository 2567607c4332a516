"""Tests for StepLogger and StepRecord."""

from __future__ import annotations

import json
import logging

import pytest

from logprob_pipeline.config import PipelineConfig
from logprob_pipeline.logging.logger import StepLogger
from logprob_pipeline.logging.types import StepRecord


def _make_record(**overrides: object) -> StepRecord:
    """Create a StepRecord with sensible defaults, overridable."""
    defaults: dict[str, object] = {
        "timestamp_ns": 1_000_000_000,
        "fetch_ms": 12.5,
        "total_ms": 20.0,
        "source_name": "mock",
        "model": "mock",
        "step": 3,
        "prefix_chars": 17,
        "num_alternatives": 20,
        "observed_mass": 0.92,
        "residual_mass": 0.08,
        "dropped_mass": 0.01,
        "num_primary": 6,
        "num_long_tail": 9,
        "top_text": " cat",
        "top_probability": 0.41,
        "num_previews": 0,
        "preview_failures": 0,
        "config_hash": "abcdef1234567890",
    }
    defaults.update(overrides)
    return StepRecord(**defaults)  # type: ignore[arg-type]


def _config(log_level: str, diagnostic_mode: bool = False) -> PipelineConfig:
    return PipelineConfig(
        _env_file=None,
        log_level=log_level,
        diagnostic_mode=diagnostic_mode,  # type: ignore[call-arg]
    )


class TestStepRecord:
    """Tests for StepRecord immutability."""

    def test_frozen(self) -> None:
        """StepRecord should reject attribute mutation."""
        record = _make_record()
        with pytest.raises(AttributeError):
            record.step = 4  # type: ignore[misc]

    def test_slots(self) -> None:
        """StepRecord should use __slots__."""
        assert hasattr(_make_record(), "__slots__")


class TestStepLogger:
    """Tests for StepLogger."""

    def test_log_level_none_no_output(self, caplog: pytest.LogCaptureFixture) -> None:
        """log_level='none' should produce no log output."""
        log = StepLogger(_config("none"))
        with caplog.at_level(logging.DEBUG, logger="logprob_pipeline"):
            log.log_step(_make_record())
        assert len(caplog.records) == 0

    def test_log_level_summary_output(self, caplog: pytest.LogCaptureFixture) -> None:
        """log_level='summary' should produce one line per step."""
        log = StepLogger(_config("summary"))
        with caplog.at_level(logging.DEBUG, logger="logprob_pipeline"):
            log.log_step(_make_record(num_previews=5, preview_failures=1))
        assert len(caplog.records) == 1
        msg = caplog.records[0].message
        assert "step=3" in msg
        assert "top=' cat'" in msg
        assert "p=0.4100" in msg
        assert "residual=0.0800" in msg
        assert "previews=4/5" in msg

    def test_log_level_full_json(self, caplog: pytest.LogCaptureFixture) -> None:
        """log_level='full' should dump every field as JSON."""
        log = StepLogger(_config("full"))
        with caplog.at_level(logging.DEBUG, logger="logprob_pipeline"):
            log.log_step(_make_record())
        msg = caplog.records[0].message
        assert msg.startswith("step_record: ")
        data = json.loads(msg.removeprefix("step_record: "))
        assert data["top_text"] == " cat"
        assert data["config_hash"] == "abcdef1234567890"
        assert len(data) == 18

    def test_per_call_config_overrides_level(self, caplog: pytest.LogCaptureFixture) -> None:
        """A per-call config should override the logger's default level."""
        log = StepLogger(_config("none"))
        with caplog.at_level(logging.DEBUG, logger="logprob_pipeline"):
            log.log_step(_make_record(), _config("summary"))
        assert len(caplog.records) == 1

    def test_diagnostic_mode_stores_records(self) -> None:
        """diagnostic_mode=True keeps records in memory even with no output."""
        log = StepLogger(_config("none", diagnostic_mode=True))
        log.log_step(_make_record(step=0))
        log.log_step(_make_record(step=1))
        data = log.get_diagnostic_data()
        assert [r.step for r in data] == [0, 1]

    def test_diagnostic_data_is_a_copy(self) -> None:
        log = StepLogger(_config("none", diagnostic_mode=True))
        log.log_step(_make_record())
        log.get_diagnostic_data().clear()
        assert len(log.get_diagnostic_data()) == 1

    def test_no_storage_without_diagnostic_mode(self) -> None:
        log = StepLogger(_config("none"))
        log.log_step(_make_record())
        assert log.get_diagnostic_data() == []
        assert log.get_summary_stats() == {}

    def test_summary_stats(self) -> None:
        """Aggregates should be computed over stored records."""
        log = StepLogger(_config("none", diagnostic_mode=True))
        log.log_step(_make_record(top_probability=0.4, total_ms=10.0, num_previews=4))
        log.log_step(
            _make_record(
                top_probability=0.6,
                total_ms=30.0,
                num_previews=4,
                preview_failures=2,
            )
        )
        stats = log.get_summary_stats()
        assert stats["total_steps"] == 2
        assert stats["mean_top_probability"] == pytest.approx(0.5)
        assert stats["mean_total_ms"] == pytest.approx(20.0)
        assert stats["max_total_ms"] == 30.0
        assert stats["preview_count"] == 8
        assert stats["preview_failure_rate"] == pytest.approx(0.25)

    def test_failure_rate_without_previews(self) -> None:
        log = StepLogger(_config("none", diagnostic_mode=True))
        log.log_step(_make_record())
        assert log.get_summary_stats()["preview_failure_rate"] == 0.0
