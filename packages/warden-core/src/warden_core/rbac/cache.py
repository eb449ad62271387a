"""TTL snapshot cache for roles, policies and per-user permission sets."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from warden_core.rbac.models import Policy, Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheSnapshot:
    """A consistent view of the role table and policy list."""

    roles: dict[str, Role] = field(default_factory=dict)
    policies: tuple[Policy, ...] = ()


@dataclass(frozen=True)
class _MemoEntry:
    permissions: frozenset[str]
    valid_until: datetime | None


class PermissionCache:
    """Owned by a single manager instance; never shared between instances.

    Invalidation is coarse: any mutation bumps the generation, forces a reload
    on next access and clears the per-user memo. Loads that began under an
    older generation are used by their caller but never installed.
    """

    def __init__(
        self,
        ttl: float = 300,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self.enabled = enabled
        self._clock = clock
        self._lock = threading.Lock()
        self._generation = 0
        self._refreshed_at: float | None = None
        self._snapshot: CacheSnapshot | None = None
        self._memo: dict[str, _MemoEntry] = {}

    @property
    def generation(self) -> int:
        return self._generation

    def is_stale(self) -> bool:
        with self._lock:
            return self._is_stale_locked()

    def _is_stale_locked(self) -> bool:
        if self._snapshot is None or self._refreshed_at is None:
            return True
        return self._clock() - self._refreshed_at > self.ttl

    async def get_snapshot(
        self, loader: Callable[[], Awaitable[CacheSnapshot]]
    ) -> CacheSnapshot:
        """Return the cached snapshot, reloading through ``loader`` when stale."""
        if not self.enabled:
            return await loader()

        with self._lock:
            if not self._is_stale_locked():
                return self._snapshot
            generation = self._generation

        snapshot = await loader()

        with self._lock:
            if generation == self._generation:
                self._snapshot = snapshot
                self._refreshed_at = self._clock()
                self._memo.clear()
                logger.debug(
                    "RBAC cache refreshed: %d roles, %d policies",
                    len(snapshot.roles), len(snapshot.policies),
                )
            else:
                logger.debug("Discarding RBAC snapshot loaded under stale generation")
        return snapshot

    def get_user_permissions(self, user_id: str) -> frozenset[str] | None:
        if not self.enabled:
            return None
        with self._lock:
            entry = self._memo.get(user_id)
            if entry is None:
                return None
            if entry.valid_until is not None and entry.valid_until <= datetime.now(UTC):
                del self._memo[user_id]
                return None
            return entry.permissions

    def set_user_permissions(
        self,
        user_id: str,
        permissions: frozenset[str],
        generation: int,
        valid_until: datetime | None = None,
    ) -> None:
        """Memoize ``permissions`` unless the cache was invalidated meanwhile."""
        if not self.enabled:
            return
        with self._lock:
            if generation == self._generation:
                self._memo[user_id] = _MemoEntry(permissions, valid_until)

    def invalidate(self) -> None:
        with self._lock:
            self._generation += 1
            self._refreshed_at = None
            self._memo.clear()
        logger.debug("RBAC cache invalidated (generation=%d)", self._generation)
