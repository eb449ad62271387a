"""Audit sink interface."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from warden_core.rbac.models import AuditLogEntry


@runtime_checkable
class AuditSink(Protocol):
    """Receives one entry per access decision."""

    async def log_access(self, entry: AuditLogEntry) -> None: ...
