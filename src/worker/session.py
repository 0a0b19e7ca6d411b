"""Single-call worker sessions over stdio.

A session spawns a fresh worker process, performs the MCP handshake,
sends exactly one payload, reads exactly one response and tears the
process down again:

    spawn -> initialize -> notifications/initialized -> payload -> close stdin -> reap

Every failure before the response is in hand kills the process. Workers
are never reused across calls.
"""

import asyncio
import os
import signal
import uuid
from collections.abc import Awaitable, Callable

import structlog
from pydantic import BaseModel, Field

from src.config import Settings, get_settings
from src.mcp_transport.encoder import encode_notification, encode_request
from src.mcp_transport.framing import frame, read_message
from src.mcp_transport.schemas import (
    InvalidEnvelopeError,
    MCPInitializeParams,
    MessageParseError,
    RequestId,
    parse_envelope,
)

from .exceptions import (
    HandshakeFailedError,
    HandshakeTimeoutError,
    PrematureExitError,
    RequestTimeoutError,
    WorkerError,
    WorkerIOError,
    WorkerResponseError,
    WorkerSpawnError,
    WorkerTimeoutError,
)

logger = structlog.get_logger(__name__)

INITIALIZED_NOTIFICATION = "notifications/initialized"

# How long a finished process may keep its pipes busy before we stop waiting.
EXIT_GRACE_SECONDS = 1.0

_KILLED_RETURNCODE = -getattr(signal, "SIGKILL", 9)

SessionRunner = Callable[[str, bytes], Awaitable[bytes]]


class SessionConfig(BaseModel):
    """Timeouts and identity used by worker sessions.

    Attributes:
        protocol_version: Version announced in the synthetic initialize.
        client_name: ``clientInfo.name`` announced to workers.
        client_version: ``clientInfo.version`` announced to workers.
        handshake_timeout: Seconds to wait for the initialize response.
        request_timeout: Seconds to wait for the payload response.
        exit_timeout: Seconds to wait for exit after closing stdin.
        stream_limit: Maximum line length read from worker pipes.
    """

    protocol_version: str = "2024-11-05"
    client_name: str = "mcp-tcp-gateway"
    client_version: str = "0.1.0"
    handshake_timeout: float = Field(default=20.0, gt=0)
    request_timeout: float = Field(default=60.0, gt=0)
    exit_timeout: float = Field(default=5.0, gt=0)
    stream_limit: int = Field(default=16 * 1024 * 1024, gt=0)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "SessionConfig":
        settings = settings or get_settings()
        return cls(
            protocol_version=settings.PROTOCOL_VERSION,
            client_name=settings.APP_NAME,
            client_version=settings.APP_VERSION,
            handshake_timeout=settings.HANDSHAKE_TIMEOUT_SECONDS,
            request_timeout=settings.REQUEST_TIMEOUT_SECONDS,
            exit_timeout=settings.EXIT_TIMEOUT_SECONDS,
            stream_limit=settings.STREAM_LIMIT_BYTES,
        )


class WorkerSession:
    """One worker process driven through one request.

    Instances are single-use and own their process and pipes exclusively.

    Attributes:
        worker_path: Executable to launch.
        config: Timeouts and handshake identity.
    """

    def __init__(self, worker_path: str, config: SessionConfig | None = None):
        self.worker_path = worker_path
        self.config = config or SessionConfig.from_settings()
        self._process: asyncio.subprocess.Process | None = None
        self._exit_task: asyncio.Task | None = None
        self._stderr_task: asyncio.Task | None = None
        self._stderr_lines: list[str] = []
        self._started = False

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process is not None else None

    @property
    def stderr(self) -> str:
        """Error-stream text captured so far."""
        return "".join(f"{line}\n" for line in self._stderr_lines)

    async def run(self, payload: bytes | str) -> bytes:
        """Execute the full lifecycle for one payload.

        Args:
            payload: The request to deliver after the handshake.

        Returns:
            The worker's response line, whitespace-trimmed and newline-terminated.

        Raises:
            WorkerError: On any spawn, handshake, I/O, timeout or exit failure.
        """
        if self._started:
            raise RuntimeError("WorkerSession is single-use")
        self._started = True

        await self._spawn()
        exchange = asyncio.create_task(self._exchange(frame(payload)))

        try:
            done, _ = await asyncio.wait(
                {exchange, self._exit_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if exchange not in done:
                # Exited first: output already buffered may still hold the answer.
                done, _ = await asyncio.wait({exchange}, timeout=EXIT_GRACE_SECONDS)
                if exchange not in done:
                    exchange.cancel()
                    await asyncio.wait({exchange})
                    raise await self._fail(
                        PrematureExitError(self.worker_path, "exited prematurely", pid=self.pid)
                    )
        except asyncio.CancelledError:
            exchange.cancel()
            await self._abort()
            raise

        error = exchange.exception()
        if error is not None:
            if isinstance(error, WorkerError):
                raise await self._fail(error)
            await self._abort()
            raise error

        response = exchange.result()
        try:
            await self._teardown()
        except asyncio.CancelledError:
            await self._abort()
            raise
        return response

    async def _spawn(self) -> None:
        try:
            self._process = await asyncio.create_subprocess_exec(
                self.worker_path,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=os.environ.copy(),
                limit=self.config.stream_limit,
            )
        except (OSError, ValueError) as e:
            logger.error("worker_spawn_failed", worker_path=self.worker_path, error=str(e))
            raise WorkerSpawnError(self.worker_path, f"error starting command: {e}") from e

        logger.info("worker_started", worker_path=self.worker_path, pid=self.pid)
        self._stderr_task = asyncio.create_task(self._drain_stderr())
        self._exit_task = asyncio.create_task(self._process.wait())

    async def _drain_stderr(self) -> None:
        stream = self._process.stderr
        while True:
            try:
                line = await stream.readline()
            except ValueError:
                logger.warning("worker_stderr_line_too_long", pid=self.pid)
                continue
            if not line:
                break
            text = line.decode("utf-8", errors="replace").rstrip("\r\n")
            self._stderr_lines.append(text)
            logger.info("worker_stderr", pid=self.pid, line=text)
        logger.debug("worker_stderr_closed", pid=self.pid)

    async def _exchange(self, payload: bytes) -> bytes:
        init_id = RequestId.string(f"gateway-init-{uuid.uuid4().hex}")
        init_params = MCPInitializeParams(
            protocolVersion=self.config.protocol_version,
            clientInfo={"name": self.config.client_name, "version": self.config.client_version},
            capabilities={},
        )
        await self._write(
            encode_request("initialize", init_id, init_params.model_dump()),
            "initialize request",
        )

        line = await self._read(HandshakeTimeoutError, self.config.handshake_timeout)
        self._check_handshake(line, init_id)
        logger.debug("worker_handshake_complete", pid=self.pid)

        await self._write(encode_notification(INITIALIZED_NOTIFICATION), "initialized notification")
        await self._write(payload, "request")

        line = await self._read(RequestTimeoutError, self.config.request_timeout)
        logger.debug("worker_response_received", pid=self.pid, size=len(line))
        return frame(line)

    async def _write(self, data: bytes, what: str) -> None:
        stdin = self._process.stdin
        try:
            stdin.write(data)
            await stdin.drain()
        except ConnectionError as e:
            raise WorkerIOError(
                self.worker_path, f"error writing {what}: {e}", pid=self.pid
            ) from e

    async def _read(self, timeout_error: type[WorkerTimeoutError], timeout: float) -> str:
        stage = timeout_error.stage
        try:
            line = await asyncio.wait_for(read_message(self._process.stdout), timeout)
        except asyncio.TimeoutError:
            logger.warning("worker_read_timeout", pid=self.pid, stage=stage, timeout_seconds=timeout)
            raise timeout_error(self.worker_path, timeout, pid=self.pid) from None
        except ValueError as e:
            raise WorkerResponseError(
                self.worker_path, f"error reading {stage}: {e}", pid=self.pid
            ) from e
        if line is None:
            raise PrematureExitError(
                self.worker_path, f"output closed before {stage}", pid=self.pid
            )
        return line

    def _check_handshake(self, line: str, init_id: RequestId) -> None:
        try:
            envelope = parse_envelope(line)
        except (MessageParseError, InvalidEnvelopeError) as e:
            raise HandshakeFailedError(
                self.worker_path,
                f"error parsing initialize response: {e}. Raw: {line}",
                pid=self.pid,
            ) from e
        if not envelope.id.matches(init_id):
            raise HandshakeFailedError(
                self.worker_path,
                f"mismatched ID in initialize response. Expected: {init_id}, Got: {envelope.id}",
                pid=self.pid,
            )
        if envelope.is_error:
            raise HandshakeFailedError(
                self.worker_path,
                f"error during initialize: {describe_error(envelope.error)}",
                pid=self.pid,
            )

    def _kill(self) -> None:
        if self._process.returncode is None:
            try:
                self._process.kill()
            except ProcessLookupError:
                pass

    async def _finish_stderr(self) -> None:
        done, _ = await asyncio.wait({self._stderr_task}, timeout=EXIT_GRACE_SECONDS)
        if not done:
            self._stderr_task.cancel()
            await asyncio.wait({self._stderr_task})

    async def _abort(self) -> None:
        self._kill()
        if not self._process.stdin.is_closing():
            self._process.stdin.close()
        await self._exit_task
        await self._finish_stderr()

    async def _fail(self, error: WorkerError) -> WorkerError:
        """Kill and reap the process, then enrich the error with what it left."""
        await self._abort()
        returncode = self._process.returncode
        if isinstance(error, WorkerIOError) and returncode != _KILLED_RETURNCODE:
            # The pipe broke because the worker was already gone.
            error = PrematureExitError(
                self.worker_path, f"exited prematurely ({error.condition})", pid=self.pid
            )
        error.attach_exit(self.stderr, returncode)
        logger.warning(
            "worker_session_failed",
            worker_path=self.worker_path,
            pid=self.pid,
            code=error.code,
            returncode=returncode,
            error=error.condition,
        )
        return error

    async def _teardown(self) -> None:
        stdin = self._process.stdin
        stdin.close()
        try:
            await stdin.wait_closed()
        except ConnectionError:
            logger.debug("worker_stdin_already_closed", pid=self.pid)

        try:
            returncode = await asyncio.wait_for(
                asyncio.shield(self._exit_task), self.config.exit_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "worker_exit_timeout",
                pid=self.pid,
                timeout_seconds=self.config.exit_timeout,
            )
            self._kill()
            returncode = await self._exit_task
        await self._finish_stderr()

        if returncode != 0:
            logger.warning(
                "worker_exited_with_error_after_response",
                pid=self.pid,
                returncode=returncode,
                stderr=self.stderr,
            )
        else:
            logger.info("worker_exited", pid=self.pid)


def describe_error(error: object) -> str:
    """Best-effort message from a JSON-RPC error object."""
    if isinstance(error, dict) and "message" in error:
        return str(error["message"])
    return str(error)


def session_runner(config: SessionConfig | None = None) -> SessionRunner:
    """Return a callable running one fresh WorkerSession per call."""

    async def run(worker_path: str, payload: bytes) -> bytes:
        return await WorkerSession(worker_path, config).run(payload)

    return run
