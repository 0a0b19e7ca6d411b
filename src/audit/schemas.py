"""Pydantic schemas for call auditing."""

from enum import Enum

from pydantic import BaseModel, Field


class AuditStatus(str, Enum):
    """Outcome of a routed call."""

    success = "success"
    error = "error"
    timeout = "timeout"
    partial = "partial"


class CallRecord(BaseModel):
    """One completed call, as written to the log.

    Attributes:
        request_id: Client request id, as JSON text.
        method: JSON-RPC method of the call.
        client: Peer address of the connection.
        tool_name: Which tool was invoked, for tools/call.
        worker_paths: Workers contacted for this call.
        status: Outcome of the call.
        duration_ms: Call duration in milliseconds.
        error_code: Error code if failed.
        failed_workers: Workers excluded from an aggregated result.
    """

    request_id: str
    method: str
    client: str | None = None
    tool_name: str | None = None
    worker_paths: list[str] = Field(default_factory=list)
    status: AuditStatus
    duration_ms: int = Field(ge=0)
    error_code: str | None = None
    failed_workers: list[str] = Field(default_factory=list)
