"""Gateway module - MCP request routing and tool catalog aggregation."""

from .exceptions import (
    ToolNotFoundError,
    InvalidToolCallParamsError,
)
from .catalog import CatalogAggregator, CatalogResult, WorkerCatalog, extract_tools
from .dispatcher import RequestDispatcher


__all__ = [
    # Exceptions
    "ToolNotFoundError",
    "InvalidToolCallParamsError",
    # Aggregation
    "CatalogAggregator",
    "CatalogResult",
    "WorkerCatalog",
    "extract_tools",
    # Routing
    "RequestDispatcher",
]
