"""RBACStorage implementation backed by in-process dictionaries."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from warden_core.rbac.errors import NotFoundError
from warden_core.rbac.models import (
    AssignmentCreate,
    Policy,
    PolicyCreate,
    Role,
    RoleCreate,
    UserRoleAssignment,
)
from warden_core.rbac.system_roles import SYSTEM_ROLES, system_role_id


class MemoryRBACStorage:
    """RBACStorage implementation for development and tests.

    Seeds the system roles on construction. Records are immutable models;
    updates replace the stored object rather than patching it in place.
    """

    def __init__(self) -> None:
        self._roles: dict[str, Role] = {}
        self._policies: dict[str, Policy] = {}
        self._user_roles: dict[str, list[UserRoleAssignment]] = {}

        now = datetime.now(UTC)
        for role in SYSTEM_ROLES:
            role_id = system_role_id(role.name)
            self._roles[role_id] = Role(
                id=role_id, created_at=now, updated_at=now, **role.model_dump()
            )

    # -- Roles -----------------------------------------------------------------

    async def get_roles(self) -> list[Role]:
        return list(self._roles.values())

    async def get_role(self, role_id: str) -> Role | None:
        return self._roles.get(role_id)

    async def create_role(self, role: RoleCreate) -> Role:
        now = datetime.now(UTC)
        created = Role(
            id=f"role-{uuid.uuid4().hex}", created_at=now, updated_at=now, **role.model_dump()
        )
        self._roles[created.id] = created
        return created

    async def update_role(self, role_id: str, updates: dict[str, Any]) -> Role:
        existing = self._roles.get(role_id)
        if existing is None:
            raise NotFoundError("role", role_id)
        fields = {**existing.model_dump(), **updates}
        fields.setdefault("updated_at", datetime.now(UTC))
        updated = Role.model_validate({**fields, "id": role_id})
        self._roles[role_id] = updated
        return updated

    async def delete_role(self, role_id: str) -> None:
        self._roles.pop(role_id, None)

    # -- Policies --------------------------------------------------------------

    async def get_policies(self) -> list[Policy]:
        return list(self._policies.values())

    async def get_policy(self, policy_id: str) -> Policy | None:
        return self._policies.get(policy_id)

    async def create_policy(self, policy: PolicyCreate) -> Policy:
        created = Policy(id=f"policy-{uuid.uuid4().hex}", **policy.model_dump())
        self._policies[created.id] = created
        return created

    async def update_policy(self, policy_id: str, updates: dict[str, Any]) -> Policy:
        existing = self._policies.get(policy_id)
        if existing is None:
            raise NotFoundError("policy", policy_id)
        updated = Policy.model_validate({**existing.model_dump(), **updates, "id": policy_id})
        self._policies[policy_id] = updated
        return updated

    async def delete_policy(self, policy_id: str) -> None:
        self._policies.pop(policy_id, None)

    # -- Assignments -----------------------------------------------------------

    async def get_user_roles(self, user_id: str) -> list[UserRoleAssignment]:
        return list(self._user_roles.get(user_id, []))

    async def assign_role(self, assignment: AssignmentCreate) -> UserRoleAssignment:
        """Store an assignment, replacing any with the same ``(role_id, scope)``."""
        full = UserRoleAssignment(granted_at=datetime.now(UTC), **assignment.model_dump())
        existing = self._user_roles.get(assignment.user_id, [])
        self._user_roles[assignment.user_id] = [
            a for a in existing if not (a.role_id == full.role_id and a.scope == full.scope)
        ] + [full]
        return full

    async def revoke_role(self, user_id: str, role_id: str, scope: str | None = None) -> None:
        """Drop assignments matching ``(role_id, scope)``; absent scope is its own key."""
        existing = self._user_roles.get(user_id, [])
        self._user_roles[user_id] = [
            a for a in existing if not (a.role_id == role_id and a.scope == scope)
        ]
