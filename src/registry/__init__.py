"""Registry module - Tool routes and worker targets."""

from .config import ToolRoute, RouteTableConfig, load_route_config
from .routes import RouteTable


__all__ = [
    "ToolRoute",
    "RouteTableConfig",
    "load_route_config",
    "RouteTable",
]
