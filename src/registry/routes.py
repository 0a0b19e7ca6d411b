"""Immutable tool-name to worker routing."""

from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

from .config import RouteTableConfig, load_route_config


class RouteTable:
    """Read-only mapping from tool name to worker executable path.

    Many tool names may share one worker. ``worker_paths`` holds each
    distinct worker once, in the order it first appears, and is the
    target set for ``tools/list`` aggregation.
    """

    __slots__ = ("_routes", "_worker_paths")

    def __init__(self, routes: Mapping[str, str] | Iterable[tuple[str, str]]):
        items = routes.items() if isinstance(routes, Mapping) else routes
        table: dict[str, str] = {}
        for name, worker_path in items:
            table[name] = worker_path
        object.__setattr__(self, "_routes", MappingProxyType(table))
        object.__setattr__(self, "_worker_paths", tuple(dict.fromkeys(table.values())))

    def __setattr__(self, name, value):
        raise AttributeError("RouteTable is immutable")

    def __delattr__(self, name):
        raise AttributeError("RouteTable is immutable")

    @classmethod
    def from_config(cls, config: RouteTableConfig) -> "RouteTable":
        return cls((route.name, route.worker) for route in config.tools)

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> "RouteTable":
        """Build a table from the YAML route config.

        Args:
            config_path: Optional custom path for the route table config.
        """
        return cls.from_config(load_route_config(config_path))

    @property
    def routes(self) -> Mapping[str, str]:
        return self._routes

    @property
    def worker_paths(self) -> tuple[str, ...]:
        return self._worker_paths

    @property
    def tool_names(self) -> tuple[str, ...]:
        return tuple(self._routes)

    def resolve(self, tool_name: str) -> str | None:
        """Return the worker path for a tool, or None when unmapped."""
        return self._routes.get(tool_name)

    def __contains__(self, tool_name: object) -> bool:
        return tool_name in self._routes

    def __len__(self) -> int:
        return len(self._routes)

    def __repr__(self) -> str:
        return f"RouteTable(tools={len(self._routes)}, workers={len(self._worker_paths)})"
