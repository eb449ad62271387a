"""AuditSink implementations that keep decisions in-process."""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime

from pydantic_core import PydanticSerializationError

from warden_core.rbac.errors import AuditSinkError
from warden_core.rbac.models import AuditLogEntry, ensure_aware

audit_logger = logging.getLogger("warden.audit")


class LoggingAuditSink:
    """Writes one log record per decision on the ``warden.audit`` logger.

    Raises AuditSinkError when the entry's context cannot be rendered as JSON.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or audit_logger

    async def log_access(self, entry: AuditLogEntry) -> None:
        try:
            payload = entry.model_dump(mode="json")
        except PydanticSerializationError as e:
            raise AuditSinkError(f"Cannot serialize audit entry {entry.id}: {e}") from e
        self._logger.info(
            "access %s user=%s action=%s resource=%s:%s reason=%s",
            "allowed" if entry.allowed else "denied",
            entry.user_id,
            entry.action,
            entry.resource_type,
            entry.resource_id,
            entry.denied_reason,
            extra={"audit": payload},
        )


class MemoryAuditSink:
    """Bounded, append-only buffer of audit entries.

    Oldest entries are dropped once ``max_size`` is reached.
    """

    def __init__(self, max_size: int = 10_000) -> None:
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self._entries: deque[AuditLogEntry] = deque(maxlen=max_size)

    async def log_access(self, entry: AuditLogEntry) -> None:
        self._entries.append(entry)

    @property
    def entries(self) -> list[AuditLogEntry]:
        return list(self._entries)

    def query(
        self,
        user_id: str | None = None,
        allowed: bool | None = None,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[AuditLogEntry]:
        """Entries matching every given filter, oldest first.

        A naive ``since`` is read as UTC.
        """
        since = ensure_aware(since)
        results = [
            e
            for e in self._entries
            if (user_id is None or e.user_id == user_id)
            and (allowed is None or e.allowed is allowed)
            and (since is None or e.timestamp >= since)
        ]
        if limit is not None:
            results = results[:limit]
        return results

    def count(self) -> int:
        return len(self._entries)
