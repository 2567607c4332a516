"""Pluggable consumers of partitioned distributions.

A presentation layer (wheel, reel, ball drop, plain list) decides how a
person picks a candidate. The pipeline only needs two things from it:
whether it can handle a given distribution and which candidate it picked.
Strategies register by name so a front end can be chosen from config.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

import numpy as np

from logprob_pipeline.exceptions import SelectionError
from logprob_pipeline.registry import PluginRegistry
from logprob_pipeline.selection.selector import pick_greedy

if TYPE_CHECKING:
    from logprob_pipeline.canonical.types import MergedCandidate
    from logprob_pipeline.partition.types import PartitionedDistribution


class SelectionStrategy(ABC):
    """Capability interface for anything that picks from a distribution."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Registered identifier."""

    @abstractmethod
    def accepts(self, distribution: PartitionedDistribution) -> bool:
        """Whether this strategy can select from *distribution*."""

    @abstractmethod
    def select_from(self, distribution: PartitionedDistribution) -> MergedCandidate:
        """Return the chosen candidate. May be the residual category.

        Raises:
            SelectionError: If the distribution is not accepted.
        """


class SelectionStrategyRegistry(PluginRegistry[SelectionStrategy]):
    """Maps front-end names to SelectionStrategy classes."""

    kind: ClassVar[str] = "selection strategy"
    entry_point_group: ClassVar[str | None] = "logprob_pipeline.strategies"


@SelectionStrategyRegistry.register("greedy")
class GreedyStrategy(SelectionStrategy):
    """Always picks the most probable committable candidate."""

    @property
    def name(self) -> str:
        return "greedy"

    def accepts(self, distribution: PartitionedDistribution) -> bool:
        return pick_greedy(distribution) is not None

    def select_from(self, distribution: PartitionedDistribution) -> MergedCandidate:
        chosen = pick_greedy(distribution)
        if chosen is None:
            raise SelectionError("Distribution has no committable candidate")
        return chosen


@SelectionStrategyRegistry.register("weighted")
class WeightedStrategy(SelectionStrategy):
    """Draws any candidate with probability proportional to its mass.

    The residual category can be drawn; committing it then resolves to a
    long-tail member.

    Args:
        seed: Optional seed for reproducible draws.
        rng: Pre-built generator; takes precedence over *seed*.
    """

    def __init__(self, seed: int | None = None, rng: np.random.Generator | None = None) -> None:
        self._rng = rng if rng is not None else np.random.default_rng(seed)

    @property
    def name(self) -> str:
        return "weighted"

    def accepts(self, distribution: PartitionedDistribution) -> bool:
        return distribution.total_probability > 0.0

    def select_from(self, distribution: PartitionedDistribution) -> MergedCandidate:
        candidates = distribution.candidates
        weights = np.asarray([m.probability for m in candidates], dtype=np.float64)
        total = float(weights.sum())
        if total <= 0.0:
            raise SelectionError("Distribution carries no probability mass")
        # Dropped tokens leave the total slightly under 1.0.
        idx = int(self._rng.choice(len(candidates), p=weights / total))
        return candidates[idx]
