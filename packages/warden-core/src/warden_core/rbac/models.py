"""Pydantic models for roles, policies, assignments and access decisions."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

Permission = str
Action = str

ConditionValue = str | int | float | bool | datetime | list[str | int | float | bool]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_aware(v: datetime | None) -> datetime | None:
    # Naive datetimes are taken to be UTC.
    if v is not None and v.tzinfo is None:
        return v.replace(tzinfo=UTC)
    return v


def validate_permission(permission: str) -> str:
    """Check a ``resource:action`` token. Either segment may be ``*``."""
    if not isinstance(permission, str):
        raise ValueError(f"Invalid permission: {permission!r}. Expected a string")
    parts = permission.split(":")
    if len(parts) != 2 or not all(parts):
        raise ValueError(
            f"Invalid permission format: {permission}. Expected 'resource:action'"
        )
    return permission


def _explicit_changes(update: BaseModel, nullable: set[str]) -> dict[str, Any]:
    """Explicitly set fields; None only survives where the record allows it."""
    return {
        k: v
        for k, v in update.model_dump(exclude_unset=True).items()
        if v is not None or k in nullable
    }


class Effect(str, Enum):
    """Verdict a matching policy contributes."""

    allow = "allow"
    deny = "deny"


class ConditionType(str, Enum):
    """Where a condition sources the value it tests."""

    time_range = "time_range"
    ip_range = "ip_range"
    attribute = "attribute"
    resource_attribute = "resource_attribute"
    custom = "custom"


class ConditionOperator(str, Enum):
    equals = "equals"
    not_equals = "not_equals"
    in_ = "in"
    not_in = "not_in"
    contains = "contains"
    matches = "matches"
    greater = "greater"
    less = "less"


class _PermissionsMixin(BaseModel):
    @field_validator("permissions", check_fields=False)
    @classmethod
    def validate_permissions(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        seen: dict[str, None] = {}
        for permission in v:
            seen[validate_permission(permission)] = None
        return list(seen)


class Role(_PermissionsMixin):
    """A named bundle of permissions, optionally inheriting other roles."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str | None = None
    permissions: list[Permission] = Field(default_factory=list)
    inherits: list[str] = Field(default_factory=list)
    is_system: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    metadata: dict[str, Any] | None = None


class RoleCreate(_PermissionsMixin):
    """Payload for creating a role. Storage assigns id and timestamps."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    description: str | None = None
    permissions: list[Permission] = Field(default_factory=list)
    inherits: list[str] = Field(default_factory=list)
    is_system: bool = False
    metadata: dict[str, Any] | None = None


class RoleUpdate(_PermissionsMixin):
    """Partial role update; only explicitly set fields are applied."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    permissions: list[Permission] | None = None
    inherits: list[str] | None = None
    metadata: dict[str, Any] | None = None

    def changes(self) -> dict[str, Any]:
        return _explicit_changes(self, nullable={"description", "metadata"})


class PolicyCondition(BaseModel):
    """A single attribute test. All conditions on a policy must hold."""

    model_config = ConfigDict(frozen=True)

    type: ConditionType
    operator: ConditionOperator
    field: str = ""
    value: ConditionValue | None = None


class Policy(BaseModel):
    """Allow/deny rule matched by resource pattern, action and conditions."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str | None = None
    effect: Effect
    resources: list[str] = Field(min_length=1)
    actions: list[Action] = Field(min_length=1)
    conditions: list[PolicyCondition] | None = None
    priority: int | None = None


class PolicyCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    description: str | None = None
    effect: Effect
    resources: list[str] = Field(min_length=1)
    actions: list[Action] = Field(min_length=1)
    conditions: list[PolicyCondition] | None = None
    priority: int | None = None


class PolicyUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    effect: Effect | None = None
    resources: list[str] | None = Field(default=None, min_length=1)
    actions: list[Action] | None = Field(default=None, min_length=1)
    conditions: list[PolicyCondition] | None = None
    priority: int | None = None

    def changes(self) -> dict[str, Any]:
        return _explicit_changes(self, nullable={"description", "conditions", "priority"})


class UserRoleAssignment(BaseModel):
    """Relation between a principal and a role, optionally scoped and time-bounded."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(min_length=1)
    role_id: str = Field(min_length=1)
    scope: str | None = None
    expires_at: datetime | None = None
    granted_by: str = "system"
    granted_at: datetime = Field(default_factory=_utcnow)

    @field_validator("expires_at")
    @classmethod
    def validate_expires_at(cls, v: datetime | None) -> datetime | None:
        return ensure_aware(v)

    def is_active(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return True
        return self.expires_at > (now or _utcnow())


class AssignmentCreate(BaseModel):
    user_id: str = Field(min_length=1)
    role_id: str = Field(min_length=1)
    scope: str | None = None
    expires_at: datetime | None = None
    granted_by: str = "system"

    @field_validator("expires_at")
    @classmethod
    def validate_expires_at(cls, v: datetime | None) -> datetime | None:
        return ensure_aware(v)


class AccessContext(BaseModel):
    """Already-authenticated caller identity plus request attributes."""

    user_id: str = Field(min_length=1)
    roles: list[str] = Field(default_factory=list)
    attributes: dict[str, Any] = Field(default_factory=dict)
    ip_address: str | None = None
    timestamp: datetime | None = None


class Resource(BaseModel):
    """Target of an access check. ``id=None`` addresses the whole type."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(min_length=1)
    id: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)

    @property
    def pattern(self) -> str:
        return f"{self.type}:{self.id}" if self.id else f"{self.type}:*"


class AccessCheckResult(BaseModel):
    """Outcome of a single access decision."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    matched_policy: Policy | None = None
    denied_by: Policy | None = None
    reason: str | None = None


class AuditLogEntry(BaseModel):
    """Immutable record of one access decision."""

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime = Field(default_factory=_utcnow)
    user_id: str
    action: str
    resource_type: str
    resource_id: str
    allowed: bool
    denied_reason: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        return ensure_aware(v)
