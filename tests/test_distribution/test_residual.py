"""Tests for residual category synthesis."""

from __future__ import annotations

import math

import pytest

from logprob_pipeline.distribution.residual import add_residual
from logprob_pipeline.distribution.types import (
    RESIDUAL_ID,
    RESIDUAL_TEXT,
    Candidate,
    Distribution,
    Provenance,
)
from logprob_pipeline.exceptions import InvalidInputError


def _dist(*probs: float, provenance: Provenance | None = None) -> Distribution:
    """Build a Distribution with one candidate per probability."""
    return Distribution(
        candidates=tuple(
            Candidate(text=f"t{i}", token_id=i, log_probability=math.log(p), probability=p)
            for i, p in enumerate(probs)
        ),
        provenance=provenance or Provenance(),
    )


class TestAddResidual:
    """Tests for add_residual()."""

    def test_appends_residual_when_mass_is_large_enough(self) -> None:
        result = add_residual(_dist(0.6, 0.4), observed_mass=0.9)
        assert len(result) == 3
        residual = result.candidates[-1]
        assert residual.is_residual
        assert residual.token_id == RESIDUAL_ID
        assert residual.text == RESIDUAL_TEXT
        assert residual.log_probability is None
        assert residual.probability == pytest.approx(0.1)

    def test_observed_candidates_are_scaled(self) -> None:
        result = add_residual(_dist(0.6, 0.4), observed_mass=0.9)
        assert result.candidates[0].probability == pytest.approx(0.54)
        assert result.candidates[1].probability == pytest.approx(0.36)
        assert result.total_probability == pytest.approx(1.0)

    def test_residual_omitted_below_threshold(self) -> None:
        result = add_residual(_dist(0.6, 0.4), observed_mass=0.995, min_mass=0.01)
        assert result.residual is None
        assert len(result) == 2
        assert result.total_probability == pytest.approx(1.0)
        assert result.candidates[0].probability == pytest.approx(0.6)

    def test_residual_exactly_at_threshold_is_kept(self) -> None:
        result = add_residual(_dist(1.0), observed_mass=0.75, min_mass=0.25)
        assert result.residual is not None
        assert result.residual.probability == pytest.approx(0.25)

    def test_full_coverage_adds_nothing(self) -> None:
        result = add_residual(_dist(0.5, 0.5), observed_mass=1.0, min_mass=0.0)
        assert result.residual is None

    def test_mass_above_one_is_clamped(self) -> None:
        result = add_residual(_dist(0.5, 0.5), observed_mass=1.02)
        assert result.residual is None
        assert result.total_probability == pytest.approx(1.0)

    def test_rescales_unnormalized_input_when_omitting(self) -> None:
        dist = Distribution(
            candidates=(
                Candidate("a", 0, -1.0, 0.3),
                Candidate("b", 1, -2.0, 0.2),
            )
        )
        result = add_residual(dist, observed_mass=1.0)
        assert [c.probability for c in result.candidates] == pytest.approx([0.6, 0.4])

    def test_keeps_order_and_provenance(self) -> None:
        provenance = Provenance(prefix="The", model="m", timestamp_ns=5)
        result = add_residual(_dist(0.7, 0.2, 0.1, provenance=provenance), observed_mass=0.5)
        assert [c.text for c in result.candidates[:3]] == ["t0", "t1", "t2"]
        assert result.provenance == provenance

    def test_returns_new_distribution(self) -> None:
        original = _dist(0.6, 0.4)
        add_residual(original, observed_mass=0.5)
        assert len(original) == 2
        assert original.candidates[0].probability == 0.6

    def test_empty_distribution_raises(self) -> None:
        with pytest.raises(InvalidInputError):
            add_residual(Distribution(candidates=()), observed_mass=0.5)

    def test_second_residual_raises(self) -> None:
        once = add_residual(_dist(1.0), observed_mass=0.5)
        with pytest.raises(InvalidInputError, match="already"):
            add_residual(once, observed_mass=0.5)

    @pytest.mark.parametrize("mass", [0.0, -0.5, math.nan])
    def test_non_positive_mass_raises(self, mass: float) -> None:
        with pytest.raises(InvalidInputError):
            add_residual(_dist(1.0), observed_mass=mass)

    def test_zero_probability_candidates_raise(self) -> None:
        dist = Distribution(candidates=(Candidate("a", 0, None, 0.0),))
        with pytest.raises(InvalidInputError):
            add_residual(dist, observed_mass=0.5)
