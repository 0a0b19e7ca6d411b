"""Tests for the audit logging module."""

import pytest
from structlog.testing import capture_logs

from src.audit.logger import AuditContext, audit_call, log_call
from src.audit.schemas import AuditStatus, CallRecord
from src.gateway.exceptions import ToolNotFoundError


class TestAuditStatus:
    """Tests for AuditStatus enum."""

    def test_status_values(self):
        """All expected status values exist."""
        assert AuditStatus.success == "success"
        assert AuditStatus.error == "error"
        assert AuditStatus.timeout == "timeout"
        assert AuditStatus.partial == "partial"


class TestCallRecord:
    """Tests for CallRecord schema."""

    def test_negative_duration_rejected(self):
        with pytest.raises(ValueError):
            CallRecord(request_id="1", method="tools/call", status=AuditStatus.success, duration_ms=-1)


class TestAuditContext:
    """Tests for AuditContext tracking."""

    def test_initial_state(self):
        """Context starts with success status."""
        ctx = AuditContext("1", "tools/call", client="127.0.0.1:5000", tool_name="echo")
        assert ctx.status == AuditStatus.success
        assert ctx.error_code is None
        assert ctx.worker_paths == []

    def test_mark_error(self):
        ctx = AuditContext("1", "tools/call")
        ctx.mark_error("PREMATURE_EXIT")
        assert ctx.status == AuditStatus.error
        assert ctx.error_code == "PREMATURE_EXIT"

    def test_mark_timeout(self):
        ctx = AuditContext("1", "tools/call")
        ctx.mark_timeout()
        assert ctx.status == AuditStatus.timeout
        assert ctx.error_code == "WORKER_TIMEOUT"

    def test_mark_partial_only_with_failures(self):
        ctx = AuditContext('"x"', "tools/list")
        ctx.mark_partial([])
        assert ctx.status == AuditStatus.success
        ctx.mark_partial(["/w/two"])
        assert ctx.status == AuditStatus.partial
        assert ctx.failed_workers == ["/w/two"]

    def test_duration_ms(self):
        ctx = AuditContext("1", "tools/call")
        assert ctx.duration_ms >= 0


class TestLogCall:
    """Tests for log_call and audit_call."""

    def test_log_call_emits_record(self):
        ctx = AuditContext("7", "tools/call", tool_name="echo")
        ctx.add_worker("/w/one")

        with capture_logs() as logs:
            record = log_call(ctx)

        assert record.worker_paths == ["/w/one"]
        assert len(logs) == 1
        entry = logs[0]
        assert entry["event"] == "call_completed"
        assert entry["request_id"] == "7"
        assert entry["tool_name"] == "echo"
        assert entry["status"] == "success"

    def test_context_manager_success(self):
        with capture_logs() as logs:
            with audit_call("1", "tools/list") as ctx:
                ctx.add_worker("/w/one")

        assert [entry["event"] for entry in logs] == ["call_completed"]
        assert logs[0]["worker_paths"] == ["/w/one"]

    def test_context_manager_marks_escaping_error(self):
        """An exception leaving the block is recorded with its code."""
        with capture_logs() as logs:
            with pytest.raises(ToolNotFoundError):
                with audit_call("2", "tools/call", tool_name="missing_tool"):
                    raise ToolNotFoundError("missing_tool")

        assert logs[0]["status"] == "error"
        assert logs[0]["error_code"] == "TOOL_NOT_FOUND"

    def test_context_manager_keeps_explicit_status(self):
        """A status set inside the block is not overwritten."""
        with capture_logs() as logs:
            with pytest.raises(RuntimeError):
                with audit_call("3", "tools/call") as ctx:
                    ctx.mark_timeout("REQUEST_TIMEOUT")
                    raise RuntimeError("late failure")

        assert logs[0]["status"] == "timeout"
        assert logs[0]["error_code"] == "REQUEST_TIMEOUT"
