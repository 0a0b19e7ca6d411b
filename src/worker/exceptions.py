"""Failures of a single worker session."""

from src.exceptions import GatewayError


class WorkerError(GatewayError):
    """Base exception for worker process failures.

    Attributes:
        worker_path: Executable the session was running.
        condition: What went wrong.
        pid: Process id, None if the process never started.
        stderr: Error-stream text captured before the failure.
        returncode: Exit status once the process has been reaped.
    """

    default_code = "WORKER_ERROR"

    def __init__(
        self,
        worker_path: str,
        condition: str,
        pid: int | None = None,
        stderr: str = "",
        returncode: int | None = None,
    ):
        self.worker_path = worker_path
        self.condition = condition
        self.pid = pid
        self.stderr = stderr
        self.returncode = returncode
        super().__init__(message=self._describe(), code=self.default_code)

    def _describe(self) -> str:
        subject = f"worker '{self.worker_path}'"
        if self.pid is not None:
            subject += f" (PID {self.pid})"
        text = f"{subject}: {self.condition}"
        if self.returncode is not None:
            text += f". Exit status: {self.returncode}"
        if self.stderr.strip():
            text += f". Stderr: {self.stderr.strip()}"
        return text

    def attach_exit(self, stderr: str, returncode: int | None) -> None:
        """Record what the process left behind once it has been reaped."""
        self.stderr = stderr
        self.returncode = returncode
        self.message = self._describe()
        self.args = (self.message,)


class WorkerSpawnError(WorkerError):
    """Raised when the worker process cannot be started."""

    default_code = "SPAWN_FAILURE"


class WorkerTimeoutError(WorkerError):
    """Base for reads that exceeded their budget.

    Attributes:
        timeout_seconds: Budget that was exceeded.
    """

    default_code = "WORKER_TIMEOUT"
    stage = "response"

    def __init__(self, worker_path: str, timeout_seconds: float, pid: int | None = None):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            worker_path,
            f"timeout reading {self.stage} after {timeout_seconds}s",
            pid=pid,
        )


class HandshakeTimeoutError(WorkerTimeoutError):
    """Raised when the initialize response does not arrive in time."""

    default_code = "HANDSHAKE_TIMEOUT"
    stage = "initialize response"


class RequestTimeoutError(WorkerTimeoutError):
    """Raised when the payload response does not arrive in time."""

    default_code = "REQUEST_TIMEOUT"
    stage = "final response"


class HandshakeFailedError(WorkerError):
    """Raised when the initialize response is unusable or an error."""

    default_code = "HANDSHAKE_FAILED"


class PrematureExitError(WorkerError):
    """Raised when the worker exits before the payload round trip completes."""

    default_code = "PREMATURE_EXIT"


class WorkerIOError(WorkerError):
    """Raised when writing to the worker's input fails."""

    default_code = "WORKER_IO"


class WorkerResponseError(WorkerError):
    """Raised when a worker's final response cannot be used."""

    default_code = "INVALID_RESPONSE"
