"""Selection subsystem for logprob-pipeline.

Greedy picking, weighted long-tail draws for the residual category, and
the pluggable strategy interface used by presentation layers.
"""

from logprob_pipeline.selection.selector import draw_from_long_tail, pick_greedy
from logprob_pipeline.selection.strategies import (
    GreedyStrategy,
    SelectionStrategy,
    SelectionStrategyRegistry,
    WeightedStrategy,
)

__all__ = [
    "GreedyStrategy",
    "SelectionStrategy",
    "SelectionStrategyRegistry",
    "WeightedStrategy",
    "draw_from_long_tail",
    "pick_greedy",
]
