"""Per-connection message loop."""

import asyncio

import structlog

from src.gateway.dispatcher import RequestDispatcher
from src.mcp_transport.encoder import fallback_error
from src.mcp_transport.framing import iter_messages

logger = structlog.get_logger(__name__)


def describe_peer(writer: asyncio.StreamWriter) -> str:
    peer = writer.get_extra_info("peername")
    if isinstance(peer, tuple) and len(peer) >= 2:
        return f"{peer[0]}:{peer[1]}"
    return str(peer)


class ConnectionHandler:
    """Owns one client connection.

    Every received line is dispatched in its own task so a slow tool call
    never holds up later messages; clients correlate replies by id. When
    the client goes away, in-flight dispatches are left to finish on their
    own and their replies are dropped.

    Attributes:
        dispatcher: Request router shared by all connections.
        client: Peer address, for logs.
    """

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ):
        self.dispatcher = dispatcher
        self.reader = reader
        self.writer = writer
        self.client = describe_peer(writer)
        self._write_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def serve(self) -> None:
        """Read and dispatch messages until end of stream or a read error."""
        logger.info("client_connected", client=self.client)
        try:
            async for message in iter_messages(self.reader):
                logger.debug("message_received", client=self.client, raw=message)
                task = asyncio.create_task(self._handle(message))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
            logger.info("client_closed_connection", client=self.client)
        except (ConnectionError, ValueError) as e:
            logger.warning("client_read_error", client=self.client, error=str(e))
        finally:
            await self.close()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if not self.writer.is_closing():
            self.writer.close()
        try:
            await self.writer.wait_closed()
        except ConnectionError as e:
            logger.debug("client_close_error", client=self.client, error=str(e))
        logger.info("client_disconnected", client=self.client, in_flight=self.in_flight)

    async def _handle(self, message: str) -> None:
        try:
            response = await self.dispatcher.dispatch(message, client=self.client)
        except Exception:
            logger.error("dispatch_crashed", client=self.client, exc_info=True)
            response = fallback_error()
        if response is not None:
            await self.send(response)

    async def send(self, data: bytes) -> bool:
        """Write one response line; failures are logged, never retried.

        Returns:
            Whether the data was handed to the transport.
        """
        async with self._write_lock:
            if self.writer.is_closing():
                logger.warning("response_dropped", client=self.client, reason="connection closed")
                return False
            try:
                self.writer.write(data)
                await self.writer.drain()
            except ConnectionError as e:
                logger.warning("response_write_failed", client=self.client, error=str(e))
                return False
        return True
