"""TCP listener accepting gateway clients."""

import asyncio
import signal

import structlog

from src.exceptions import GatewayError
from src.gateway.dispatcher import RequestDispatcher

from .connection import ConnectionHandler

logger = structlog.get_logger(__name__)


class ListenerBindError(GatewayError):
    """Raised when the listening socket cannot be bound.

    Attributes:
        host: Address that was requested.
        port: Port that was requested.
    """

    def __init__(self, host: str, port: int, reason: str):
        super().__init__(
            message=f"Could not listen on {host}:{port}: {reason}",
            code="BIND_FAILED"
        )
        self.host = host
        self.port = port


class GatewayServer:
    """Accepts TCP clients and hands each to its own ConnectionHandler.

    Attributes:
        dispatcher: Request router shared by all connections.
        host: Listen address.
        port: Requested port; 0 picks a free one (see ``bound_port``).
        stream_limit: Maximum accepted line length.
    """

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        host: str = "0.0.0.0",
        port: int = 8999,
        stream_limit: int = 16 * 1024 * 1024,
    ):
        self.dispatcher = dispatcher
        self.host = host
        self.port = port
        self.stream_limit = stream_limit
        self._server: asyncio.Server | None = None
        self._connections: set[ConnectionHandler] = set()
        self._stopping = asyncio.Event()

    @property
    def bound_port(self) -> int | None:
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        """Bind the listening socket.

        Raises:
            ListenerBindError: If the address cannot be bound.
        """
        try:
            self._server = await asyncio.start_server(
                self._on_connection,
                self.host,
                self.port,
                limit=self.stream_limit,
            )
        except OSError as e:
            raise ListenerBindError(self.host, self.port, str(e)) from e
        logger.info("listening", host=self.host, port=self.bound_port)

    async def _on_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        handler = ConnectionHandler(self.dispatcher, reader, writer)
        self._connections.add(handler)
        try:
            await handler.serve()
        finally:
            self._connections.discard(handler)

    def request_stop(self) -> None:
        self._stopping.set()

    async def serve_forever(self) -> None:
        """Serve until SIGINT/SIGTERM or ``request_stop()``, then close."""
        if self._server is None:
            await self.start()

        loop = asyncio.get_running_loop()
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
                installed.append(sig)
            except (NotImplementedError, RuntimeError) as e:
                logger.debug("signal_handler_unavailable", signal=sig.name, error=str(e))

        try:
            await self._stopping.wait()
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
            await self.close()

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info("shutdown_signal_received", signal=sig.name)
        self.request_stop()

    async def close(self) -> None:
        """Stop accepting, close open connections and wait for the listener."""
        if self._server is None:
            return
        self._server.close()
        for handler in list(self._connections):
            await handler.close()
        await self._server.wait_closed()
        self._server = None
        logger.info("server_stopped")
