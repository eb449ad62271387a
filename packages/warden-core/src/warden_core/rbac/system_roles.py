"""Built-in roles seeded into every fresh storage backend."""

from __future__ import annotations

from warden_core.rbac.models import RoleCreate

SYSTEM_ROLES: tuple[RoleCreate, ...] = (
    RoleCreate(
        name="super_admin",
        description="Full system access",
        permissions=["*:*"],
        is_system=True,
    ),
    RoleCreate(
        name="admin",
        description="Organization administrator",
        permissions=[
            "agents:*",
            "prompts:*",
            "models:*",
            "api_keys:*",
            "users:read",
            "users:update",
            "teams:*",
            "billing:read",
        ],
        is_system=True,
    ),
    RoleCreate(
        name="developer",
        description="Developer with full agent access",
        permissions=[
            "agents:*",
            "prompts:*",
            "models:read",
            "api_keys:read",
            "api_keys:create",
        ],
        is_system=True,
    ),
    RoleCreate(
        name="analyst",
        description="Read-only access for analysis",
        permissions=["agents:read", "prompts:read", "models:read"],
        is_system=True,
    ),
    RoleCreate(
        name="viewer",
        description="Basic read-only access",
        permissions=["agents:read"],
        is_system=True,
    ),
)


def system_role_id(name: str) -> str:
    """Stable id under which a system role is stored."""
    return f"role-{name}"
