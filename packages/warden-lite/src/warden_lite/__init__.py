"""Warden Lite - dependency-free storage and audit defaults for warden-core."""

from warden_lite.audit import LoggingAuditSink, MemoryAuditSink
from warden_lite.storage import MemoryRBACStorage

__all__ = [
    "LoggingAuditSink",
    "MemoryAuditSink",
    "MemoryRBACStorage",
]
