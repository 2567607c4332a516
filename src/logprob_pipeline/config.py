"""Configuration system for logprob-pipeline.

Uses pydantic-settings for declarative, layered configuration:
init kwargs -> environment variables (LP_*) -> .env file -> field defaults.

Per-call options are applied via resolve_config() which creates a new
config instance without mutating the defaults. Infrastructure fields are
protected from per-call override.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from logprob_pipeline.exceptions import ConfigValidationError

DEFAULT_RESIDUAL_MIN_MASS = 0.01
DEFAULT_PRIMARY_SHARE_THRESHOLD = 0.03

# Fields that can be overridden per call via the ``options`` mapping.
# Infrastructure fields (endpoint, timeouts, worker pool size) cannot.
_PER_CALL_FIELDS: frozenset[str] = frozenset(
    {
        "residual_min_mass",
        "primary_share_threshold",
        "top_k",
        "preview_length",
        "log_level",
        "diagnostic_mode",
    }
)

# All known config field names (populated after class definition).
_ALL_FIELDS: frozenset[str] = frozenset()


class PipelineConfig(BaseSettings):
    """Configuration for logprob-pipeline.

    Resolution order: init kwargs -> env vars (LP_*) -> .env file -> defaults.

    Fields are divided into two groups:
    - **Infrastructure**: endpoint, credentials, timeouts, worker pool. NOT
      overridable per call.
    - **Pipeline options**: thresholds, lookahead sizing, logging.
      Overridable per call via ``resolve_config()``.
    """

    model_config = SettingsConfigDict(
        env_prefix="LP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Acquisition boundary (NOT per-call overridable) ---

    source_type: str = Field(
        default="openai_completions",
        description="Registered logprob source identifier",
    )
    api_base_url: str = Field(
        default="http://localhost:8000/v1",
        description="Base URL of an OpenAI-compatible inference endpoint",
    )
    api_key: str = Field(
        default="",
        description="Bearer token sent to the endpoint (empty = no auth)",
    )
    model: str = Field(
        default="",
        description="Model identifier passed to the endpoint",
    )
    request_timeout_s: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout for a single endpoint call, in seconds",
    )
    retry_count: int = Field(
        default=2,
        ge=0,
        description="Number of retries after a failed endpoint call",
    )
    max_alternatives: int = Field(
        default=20,
        ge=1,
        description="Ranked alternatives requested per next-token slot",
    )

    # --- Orchestration (NOT per-call overridable) ---

    step_timeout_s: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound for one step, including lookahead fan-out",
    )
    preview_timeout_s: float = Field(
        default=10.0,
        gt=0,
        description="Upper bound for a single lookahead preview call",
    )
    lookahead_workers: int = Field(
        default=5,
        ge=1,
        description="Thread pool size for concurrent boundary calls",
    )

    # --- Distribution shaping (per-call overridable) ---

    residual_min_mass: float = Field(
        default=DEFAULT_RESIDUAL_MIN_MASS,
        ge=0.0,
        le=1.0,
        description="Minimum unobserved mass for the residual category to appear",
    )
    primary_share_threshold: float = Field(
        default=DEFAULT_PRIMARY_SHARE_THRESHOLD,
        ge=0.0,
        le=1.0,
        description="Probability at or above which a candidate is primary",
    )

    # --- Lookahead (per-call overridable) ---

    top_k: int = Field(
        default=5,
        ge=1,
        description="Number of primary candidates that receive a preview",
    )
    preview_length: int = Field(
        default=8,
        ge=1,
        description="Maximum continuation length per preview, in tokens",
    )

    # --- Logging (per-call overridable) ---

    log_level: str = Field(
        default="summary",
        description="Logging verbosity: 'none', 'summary', 'full'",
    )
    diagnostic_mode: bool = Field(
        default=False,
        description="Store all step records in memory for analysis",
    )


# Populate _ALL_FIELDS now that the class is defined.
_ALL_FIELDS = frozenset(PipelineConfig.model_fields.keys())


def validate_options(options: Mapping[str, Any]) -> None:
    """Validate option keys without creating a config.

    Args:
        options: Per-call options keyed by config field name.

    Raises:
        ConfigValidationError: If any key is unknown or non-overridable.
    """
    for key in options:
        if key not in _ALL_FIELDS:
            raise ConfigValidationError(f"Unknown config field: '{key}'")
        if key not in _PER_CALL_FIELDS:
            raise ConfigValidationError(
                f"Field '{key}' is an infrastructure field and cannot be "
                f"overridden per call"
            )


def resolve_config(
    defaults: PipelineConfig,
    options: Mapping[str, Any] | None,
) -> PipelineConfig:
    """Create a new config instance merging defaults with per-call options.

    Args:
        defaults: The base configuration loaded from the environment.
        options: Per-call overrides such as ``{"top_k": 3}``.

    Returns:
        ``defaults`` itself when there is nothing to override, otherwise a
        new validated PipelineConfig.

    Raises:
        ConfigValidationError: If any key is unknown, non-overridable, or
            carries a value that fails validation.
    """
    if not options:
        return defaults

    validate_options(options)

    # model_copy(update=...) skips validation; model_validate coerces and
    # range-checks the merged values.
    merged = defaults.model_dump()
    merged.update(options)
    try:
        return PipelineConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigValidationError(f"Invalid pipeline options: {exc}") from exc


def config_hash(config: PipelineConfig) -> str:
    """Compute a short hash of the config for logging.

    The API key is excluded so the hash can be logged safely.

    Args:
        config: The configuration to hash.

    Returns:
        First 16 hex characters of the SHA-256 digest of the config dump.
    """
    raw = config.model_dump_json(exclude={"api_key"}).encode("utf-8")
    return hashlib.sha256(raw).hexdigest()[:16]
