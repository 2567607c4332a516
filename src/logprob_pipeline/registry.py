"""Name-to-class lookup shared by pluggable components.

Sources and selection strategies are both picked by a string in the
config. Each kind gets its own ``PluginRegistry`` subclass with a private
table; installed distributions can add entries through the subclass's
entry-point group, which is read the first time a lookup misses.
"""

from __future__ import annotations

import importlib.metadata
import logging
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar, cast

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("logprob_pipeline")

_T = TypeVar("_T")


class PluginRegistry(Generic[_T]):
    """Base for class-level registries keyed by name.

    Subclasses set ``kind`` (used in messages) and, to accept plugins,
    ``entry_point_group``. Locally registered names always win over
    entry points of the same name.
    """

    kind: ClassVar[str] = "plugin"
    entry_point_group: ClassVar[str | None] = None

    _registry: ClassVar[dict[str, type[Any]]] = {}
    _entry_points_loaded: ClassVar[bool] = False

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._registry = {}
        cls._entry_points_loaded = False

    @classmethod
    def register(cls, name: str) -> Callable[[type[_T]], type[_T]]:
        """Class decorator adding the decorated class under *name*."""

        def decorator(plugin_cls: type[_T]) -> type[_T]:
            cls._registry[name] = plugin_cls
            return plugin_cls

        return decorator

    @classmethod
    def get(cls, name: str) -> type[_T]:
        """Resolve *name* to a registered class.

        Raises:
            KeyError: If neither a local registration nor an entry point
                provides *name*.
        """
        if name not in cls._registry:
            cls._discover()
        plugin_cls = cls._registry.get(name)
        if plugin_cls is None:
            known = ", ".join(sorted(cls._registry)) or "(none)"
            raise KeyError(f"Unknown {cls.kind}: {name!r}. Available: {known}")
        return cast("type[_T]", plugin_cls)

    @classmethod
    def list_available(cls) -> list[str]:
        """Sorted names, entry points included."""
        cls._discover()
        return sorted(cls._registry)

    @classmethod
    def _discover(cls) -> None:
        """Read the entry-point group once; later calls are no-ops.

        Unreadable metadata or a plugin that fails to import is logged and
        skipped.
        """
        if cls._entry_points_loaded or cls.entry_point_group is None:
            return
        cls._entry_points_loaded = True
        group = cls.entry_point_group
        try:
            eps = importlib.metadata.entry_points(group=group)
        except Exception:  # Broken metadata must not break lookup
            logger.warning("Could not read entry points for %s", group, exc_info=True)
            return

        for ep in eps:
            if ep.name in cls._registry:
                continue
            try:
                cls._registry[ep.name] = ep.load()
            except Exception:  # One bad plugin must not block the rest
                logger.warning("Skipping %s %r from %s", cls.kind, ep.name, ep.value, exc_info=True)
            else:
                logger.debug("Registered %s %r from %s", cls.kind, ep.name, group)

    @classmethod
    def _reset(cls) -> None:
        """Forget every registration. Test-only."""
        cls._registry.clear()
        cls._entry_points_loaded = False
