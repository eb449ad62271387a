"""Principal-to-role assignments with scoping and read-time expiry."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from warden_core.rbac.errors import NotFoundError, ValidationError
from warden_core.rbac.models import AssignmentCreate, UserRoleAssignment

if TYPE_CHECKING:
    from warden_core.interfaces.storage import RBACStorage

logger = logging.getLogger(__name__)


class AssignmentManager:
    """Thin policy layer over the storage assignment calls.

    Expired assignments are never deleted here; ``list_active`` filters
    them out against the wall clock at call time.
    """

    def __init__(self, storage: RBACStorage) -> None:
        self._storage = storage

    async def assign(
        self,
        user_id: str,
        role_id: str,
        *,
        scope: str | None = None,
        expires_at: datetime | None = None,
        granted_by: str = "system",
    ) -> UserRoleAssignment:
        try:
            payload = AssignmentCreate(
                user_id=user_id,
                role_id=role_id,
                scope=scope,
                expires_at=expires_at,
                granted_by=granted_by,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid AssignmentCreate: {e}") from e

        if await self._storage.get_role(role_id) is None:
            raise NotFoundError("role", role_id)
        assignment = await self._storage.assign_role(payload)
        logger.info(
            "Assigned role %s to %s (scope=%s, expires_at=%s, by=%s)",
            role_id, user_id, scope, expires_at, granted_by,
        )
        return assignment

    async def revoke(self, user_id: str, role_id: str, scope: str | None = None) -> None:
        """Remove the ``(user_id, role_id, scope)`` assignment. Idempotent."""
        await self._storage.revoke_role(user_id, role_id, scope)
        logger.info("Revoked role %s from %s (scope=%s)", role_id, user_id, scope)

    async def list_active(self, user_id: str) -> list[UserRoleAssignment]:
        now = datetime.now(UTC)
        assignments = await self._storage.get_user_roles(user_id)
        return [a for a in assignments if a.is_active(now)]
