"""Logprob source registry.

Sources register with ``@register_logprob_source("name")`` at import time.
Separately installed endpoint adapters are found through the
``logprob_pipeline.sources`` entry-point group.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, ClassVar

from logprob_pipeline.registry import PluginRegistry
from logprob_pipeline.sources.base import LogprobSource

if TYPE_CHECKING:
    from logprob_pipeline.config import PipelineConfig


def _takes_config(source_cls: type) -> bool:
    """Whether the first constructor parameter is a PipelineConfig.

    Args:
        source_cls: Source class to inspect.

    Returns:
        True if the parameter is annotated as ``PipelineConfig`` or, when
        unannotated, named ``config``.
    """
    try:
        params = list(inspect.signature(source_cls).parameters.values())
    except (ValueError, TypeError):
        return False
    if not params:
        return False

    first = params[0]
    if first.annotation is inspect.Parameter.empty:
        return first.name == "config"
    annotation = first.annotation
    if isinstance(annotation, str):
        return "PipelineConfig" in annotation
    return getattr(annotation, "__name__", "") == "PipelineConfig"


class LogprobSourceRegistry(PluginRegistry[LogprobSource]):
    """Maps ``PipelineConfig.source_type`` values to LogprobSource classes."""

    kind: ClassVar[str] = "logprob source"
    entry_point_group: ClassVar[str | None] = "logprob_pipeline.sources"

    @classmethod
    def build(cls, config: PipelineConfig) -> LogprobSource:
        """Instantiate the source named by ``config.source_type``.

        The config is passed to the constructor only when it asks for one.

        Args:
            config: Pipeline configuration.

        Returns:
            A ready-to-use source.
        """
        source_cls = cls.get(config.source_type)
        if _takes_config(source_cls):
            return source_cls(config)  # type: ignore[call-arg]
        return source_cls()


register_logprob_source = LogprobSourceRegistry.register
