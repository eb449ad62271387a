"""In-process audit sinks."""

from warden_lite.audit.sinks import LoggingAuditSink, MemoryAuditSink

__all__ = ["LoggingAuditSink", "MemoryAuditSink"]
