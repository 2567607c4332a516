"""Data types for the diagnostic logging subsystem."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class StepRecord:
    """Immutable record of one orchestrated prediction step.

    Attributes:
        timestamp_ns: Wall-clock time the step started (ns since epoch).
        fetch_ms: Time spent in the acquisition call (milliseconds).
        total_ms: Time for the whole step, previews included (ms).
        source_name: Name of the logprob source that answered.
        model: Model identifier reported by the source.
        step: Zero-based step index (number of committed tokens so far).
        prefix_chars: Length of the prefix the source was conditioned on.
        num_alternatives: Raw alternatives returned by the source.
        observed_mass: Model probability covered by those alternatives.
        residual_mass: Mass of the residual category (0.0 if omitted).
        dropped_mass: Mass of non-displayable tokens that were dropped.
        num_primary: Candidates in the primary bucket.
        num_long_tail: Candidates in the long-tail bucket.
        top_text: Display text of the most probable candidate.
        top_probability: Probability of that candidate.
        num_previews: Lookahead previews requested (0 outside lookahead).
        preview_failures: Previews that failed or timed out.
        config_hash: 16-char SHA-256 prefix of the active config.
    """

    # Timing
    timestamp_ns: int
    fetch_ms: float
    total_ms: float

    # Source
    source_name: str
    model: str

    # Step
    step: int
    prefix_chars: int
    num_alternatives: int

    # Distribution
    observed_mass: float
    residual_mass: float
    dropped_mass: float
    num_primary: int
    num_long_tail: int
    top_text: str
    top_probability: float

    # Lookahead
    num_previews: int
    preview_failures: int

    # Config snapshot
    config_hash: str
