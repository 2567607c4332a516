"""Diagnostic logger for orchestrated prediction steps.

Uses the standard ``logging`` module with the ``"logprob_pipeline"``
logger. Supports three verbosity levels and an in-memory diagnostic mode
for post-hoc analysis.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from logprob_pipeline.config import PipelineConfig
    from logprob_pipeline.logging.types import StepRecord

logger = logging.getLogger("logprob_pipeline")


class StepLogger:
    """Per-step diagnostic logger.

    Log levels:
        ``"none"``: No output. Records are still stored when
        ``diagnostic_mode=True``.

        ``"summary"``: One line per step with the top candidate, bucket
        sizes, residual/dropped mass, and timings.

        ``"full"``: JSON dump of every record field.
    """

    def __init__(self, config: PipelineConfig) -> None:
        self._log_level = config.log_level
        self._diagnostic_mode = config.diagnostic_mode
        self._records: list[StepRecord] = []

    def log_step(self, record: StepRecord, config: PipelineConfig | None = None) -> None:
        """Log a single step.

        Args:
            record: Immutable record of the step.
            config: Per-call config whose ``log_level``/``diagnostic_mode``
                override the logger defaults for this record.
        """
        log_level = config.log_level if config is not None else self._log_level
        diagnostic_mode = config.diagnostic_mode if config is not None else self._diagnostic_mode

        if diagnostic_mode:
            self._records.append(record)

        if log_level == "summary":
            logger.info(
                "step=%d top=%r p=%.4f primary=%d tail=%d residual=%.4f dropped=%.4f "
                "previews=%d/%d source=%s fetch=%.2fms total=%.2fms",
                record.step,
                record.top_text,
                record.top_probability,
                record.num_primary,
                record.num_long_tail,
                record.residual_mass,
                record.dropped_mass,
                record.num_previews - record.preview_failures,
                record.num_previews,
                record.source_name,
                record.fetch_ms,
                record.total_ms,
            )
        elif log_level == "full":
            logger.info("step_record: %s", json.dumps(asdict(record), default=str))

    def get_diagnostic_data(self) -> list[StepRecord]:
        """Return all stored records (requires ``diagnostic_mode=True``)."""
        return list(self._records)

    def get_summary_stats(self) -> dict[str, Any]:
        """Compute aggregate statistics over stored records.

        Returns:
            Dictionary of aggregates, or an empty dict if nothing is stored.
        """
        if not self._records:
            return {}

        n = len(self._records)
        previews = sum(r.num_previews for r in self._records)
        failures = sum(r.preview_failures for r in self._records)
        return {
            "total_steps": n,
            "mean_top_probability": sum(r.top_probability for r in self._records) / n,
            "mean_residual_mass": sum(r.residual_mass for r in self._records) / n,
            "mean_dropped_mass": sum(r.dropped_mass for r in self._records) / n,
            "mean_primary_size": sum(r.num_primary for r in self._records) / n,
            "mean_fetch_ms": sum(r.fetch_ms for r in self._records) / n,
            "mean_total_ms": sum(r.total_ms for r in self._records) / n,
            "max_total_ms": max(r.total_ms for r in self._records),
            "preview_count": previews,
            "preview_failure_rate": failures / previews if previews else 0.0,
        }
