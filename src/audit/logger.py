"""Structured audit logging for routed calls."""

import time
from contextlib import contextmanager
from typing import Iterator

import structlog

from .schemas import AuditStatus, CallRecord

# Configure structured logger
logger = structlog.get_logger("audit")


class AuditContext:
    """Tracks one in-flight call from dispatch to response.

    Correlates the client's request id and method with the worker(s)
    serving it. Lives for exactly one request/response round trip.

    Attributes:
        request_id: Client request id, as JSON text.
        method: JSON-RPC method of the call.
        client: Peer address of the connection.
        tool_name: Which tool is being invoked.
        worker_paths: Workers contacted for this call.
        start_time: When the call started.
        status: Final status of the call.
        error_code: Error code if failed.
        failed_workers: Workers excluded from an aggregated result.
    """

    def __init__(
        self,
        request_id: str,
        method: str,
        client: str | None = None,
        tool_name: str | None = None,
    ) -> None:
        self.request_id = request_id
        self.method = method
        self.client = client
        self.tool_name = tool_name
        self.worker_paths: list[str] = []
        self.start_time = time.perf_counter()
        self.status = AuditStatus.success
        self.error_code: str | None = None
        self.failed_workers: list[str] = []

    def add_worker(self, worker_path: str) -> None:
        self.worker_paths.append(worker_path)

    def mark_error(self, error_code: str) -> None:
        """Mark the call as failed with an error code.

        Args:
            error_code: The error code to record.
        """
        self.status = AuditStatus.error
        self.error_code = error_code

    def mark_timeout(self, error_code: str = "WORKER_TIMEOUT") -> None:
        """Mark the call as timed out."""
        self.status = AuditStatus.timeout
        self.error_code = error_code

    def mark_partial(self, failed_workers: list[str]) -> None:
        """Mark an aggregated call where some workers were excluded."""
        if failed_workers:
            self.status = AuditStatus.partial
            self.failed_workers = list(failed_workers)

    @property
    def duration_ms(self) -> int:
        """Calculate duration in milliseconds."""
        elapsed = time.perf_counter() - self.start_time
        return int(elapsed * 1000)

    def to_record(self) -> CallRecord:
        return CallRecord(
            request_id=self.request_id,
            method=self.method,
            client=self.client,
            tool_name=self.tool_name,
            worker_paths=self.worker_paths,
            status=self.status,
            duration_ms=self.duration_ms,
            error_code=self.error_code,
            failed_workers=self.failed_workers,
        )


def log_call(context: AuditContext) -> CallRecord:
    """Write the completed call to the audit log.

    Args:
        context: Audit context with call details.

    Returns:
        The record that was logged.
    """
    record = context.to_record()
    logger.info("call_completed", **record.model_dump(mode="json", exclude_defaults=True))
    return record


@contextmanager
def audit_call(
    request_id: str,
    method: str,
    client: str | None = None,
    tool_name: str | None = None,
) -> Iterator[AuditContext]:
    """Context manager for auditing routed calls.

    Tracks timing and logs when the context exits. An exception escaping
    the block marks the call as failed.

    Example:
        with audit_call(str(request_id), "tools/call", tool_name=name) as audit:
            try:
                response = await run(worker_path, payload)
            except WorkerTimeoutError as e:
                audit.mark_timeout(e.code)
                raise
    """
    context = AuditContext(request_id, method, client=client, tool_name=tool_name)
    try:
        yield context
    except Exception as e:
        if context.status == AuditStatus.success:
            context.mark_error(getattr(e, "code", type(e).__name__))
        raise
    finally:
        log_call(context)
