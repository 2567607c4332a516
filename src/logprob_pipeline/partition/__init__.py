"""Distribution partitioning subsystem for logprob-pipeline."""

from logprob_pipeline.partition.partitioner import partition
from logprob_pipeline.partition.types import PartitionedDistribution, relative_weights

__all__ = [
    "PartitionedDistribution",
    "partition",
    "relative_weights",
]
