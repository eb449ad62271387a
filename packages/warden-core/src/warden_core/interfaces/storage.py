"""Storage plugin interface for roles, policies and assignments."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from warden_core.rbac.models import (
    AssignmentCreate,
    Policy,
    PolicyCreate,
    Role,
    RoleCreate,
    UserRoleAssignment,
)


@runtime_checkable
class RBACStorage(Protocol):
    """Durable source of truth for RBAC records.

    Implementations must seed the system roles on initialization and raise
    ``NotFoundError`` from ``update_role``/``update_policy`` for unknown ids.
    """

    async def get_roles(self) -> list[Role]: ...

    async def get_role(self, role_id: str) -> Role | None: ...

    async def create_role(self, role: RoleCreate) -> Role: ...

    async def update_role(self, role_id: str, updates: dict[str, Any]) -> Role: ...

    async def delete_role(self, role_id: str) -> None: ...

    async def get_policies(self) -> list[Policy]: ...

    async def get_policy(self, policy_id: str) -> Policy | None: ...

    async def create_policy(self, policy: PolicyCreate) -> Policy: ...

    async def update_policy(self, policy_id: str, updates: dict[str, Any]) -> Policy: ...

    async def delete_policy(self, policy_id: str) -> None: ...

    async def get_user_roles(self, user_id: str) -> list[UserRoleAssignment]: ...

    async def assign_role(self, assignment: AssignmentCreate) -> UserRoleAssignment: ...

    async def revoke_role(self, user_id: str, role_id: str, scope: str | None = None) -> None: ...
