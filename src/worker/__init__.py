"""Worker module - per-call stdio worker processes."""

from .exceptions import (
    WorkerError,
    WorkerSpawnError,
    WorkerTimeoutError,
    HandshakeTimeoutError,
    HandshakeFailedError,
    RequestTimeoutError,
    PrematureExitError,
    WorkerIOError,
    WorkerResponseError,
)
from .session import SessionConfig, SessionRunner, WorkerSession, session_runner


__all__ = [
    # Exceptions
    "WorkerError",
    "WorkerSpawnError",
    "WorkerTimeoutError",
    "HandshakeTimeoutError",
    "HandshakeFailedError",
    "RequestTimeoutError",
    "PrematureExitError",
    "WorkerIOError",
    "WorkerResponseError",
    # Session
    "SessionConfig",
    "SessionRunner",
    "WorkerSession",
    "session_runner",
]
