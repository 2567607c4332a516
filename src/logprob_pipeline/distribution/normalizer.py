"""Numerically stable conversion of log-probabilities into a distribution."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from logprob_pipeline.exceptions import InvalidInputError


def normalize_logprobs(log_probabilities: Sequence[float]) -> np.ndarray:
    """Convert raw log-probabilities into probabilities summing to 1.0.

    Uses the shift-by-max trick: subtracting the maximum before
    exponentiating keeps the largest term at ``exp(0) = 1``, so nothing
    overflows and the dominant entries never underflow to zero even for
    inputs around -1000. ``-inf`` entries are allowed and map to 0.0.

    Args:
        log_probabilities: Non-empty ordered sequence of natural-log
            probabilities.

    Returns:
        Float64 array of the same length and order, values in [0, 1].

    Raises:
        InvalidInputError: If the sequence is empty, contains NaN or
            ``+inf``, or every entry is ``-inf``.
    """
    values = np.asarray(log_probabilities, dtype=np.float64)
    if values.ndim != 1 or values.size == 0:
        raise InvalidInputError("Cannot normalize an empty log-probability sequence")
    if np.any(np.isnan(values)) or np.any(np.isposinf(values)):
        raise InvalidInputError("Log-probabilities must be finite or -inf")

    finite_mask = np.isfinite(values)
    if not np.any(finite_mask):
        raise InvalidInputError("All log-probabilities are -inf")

    if values.size == 1:
        return np.ones(1, dtype=np.float64)

    shifted = values - np.max(values[finite_mask])
    # exp(-inf) is 0.0, so masked entries drop out of the sum.
    exp_shifted = np.exp(shifted)
    result: np.ndarray = exp_shifted / np.sum(exp_shifted)
    return result


def observed_mass(log_probabilities: Sequence[float]) -> float:
    """Total model probability represented by a set of raw log-probabilities.

    Endpoints report true log-probabilities for their top-N alternatives,
    so the mass those alternatives cover is ``sum(exp(lp))``, clamped to
    1.0 to absorb rounding in the payload.

    Args:
        log_probabilities: Raw log-probabilities of the observed alternatives.

    Returns:
        Covered mass in [0, 1].
    """
    values = np.asarray(log_probabilities, dtype=np.float64)
    if values.size == 0:
        return 0.0
    return float(min(1.0, np.sum(np.exp(values))))
