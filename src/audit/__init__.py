"""Audit module - Per-call structured logging."""

from .logger import audit_call, log_call, AuditContext
from .schemas import AuditStatus, CallRecord

__all__ = [
    "audit_call",
    "log_call",
    "AuditContext",
    "AuditStatus",
    "CallRecord",
]
