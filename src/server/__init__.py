"""Server module - TCP listener and per-connection handling."""

from .connection import ConnectionHandler
from .listener import GatewayServer, ListenerBindError


__all__ = [
    "ConnectionHandler",
    "GatewayServer",
    "ListenerBindError",
]
