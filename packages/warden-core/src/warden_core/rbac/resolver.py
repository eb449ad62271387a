"""Role inheritance expansion into flattened permission sets."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from warden_core.rbac.models import Role, UserRoleAssignment

if TYPE_CHECKING:
    from warden_core.rbac.assignments import AssignmentManager

logger = logging.getLogger(__name__)


class RoleResolver:
    """Expands roles over a snapshot of the role table.

    Inheritance is walked depth-first with a visited set, so cyclic role
    graphs terminate and keep every permission discovered before the cycle.
    """

    def __init__(self, roles: Mapping[str, Role]) -> None:
        self._roles = roles

    def resolve_permissions(self, role_id: str) -> set[str]:
        """Own permissions of ``role_id`` unioned with all inherited ones."""
        permissions: set[str] = set()
        self._expand(role_id, permissions, visited=set(), path=[])
        return permissions

    def resolve_many(self, role_ids: Iterable[str]) -> set[str]:
        permissions: set[str] = set()
        visited: set[str] = set()
        for role_id in role_ids:
            self._expand(role_id, permissions, visited, path=[])
        return permissions

    def resolve_assignments(self, assignments: Iterable[UserRoleAssignment]) -> set[str]:
        return self.resolve_many(a.role_id for a in assignments)

    async def resolve_user_permissions(
        self, user_id: str, assignments: AssignmentManager
    ) -> set[str]:
        """Union of permissions across the user's non-expired assignments."""
        return self.resolve_assignments(await assignments.list_active(user_id))

    def _expand(
        self, role_id: str, into: set[str], visited: set[str], path: list[str]
    ) -> None:
        if role_id in path:
            logger.warning(
                "Role inheritance cycle detected: %s", " -> ".join([*path, role_id])
            )
            return
        if role_id in visited:
            return
        visited.add(role_id)

        role = self._roles.get(role_id)
        if role is None:
            if path:
                logger.warning("Role %s inherits unknown role %s", path[-1], role_id)
            return

        into.update(role.permissions)
        path.append(role_id)
        for parent_id in role.inherits:
            self._expand(parent_id, into, visited, path)
        path.pop()
