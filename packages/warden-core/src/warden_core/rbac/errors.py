"""Exception hierarchy for the access-control engine."""

from __future__ import annotations


class WardenError(Exception):
    """Base class for all errors raised by warden."""


class ValidationError(WardenError, ValueError):
    """Malformed input to an administrative call. Nothing was persisted."""


class NotFoundError(WardenError):
    """A role, policy or assignment referenced by id does not exist."""

    def __init__(self, kind: str, id: str) -> None:
        self.kind = kind
        self.id = id
        super().__init__(f"{kind.capitalize()} '{id}' not found")


class ImmutableRoleError(WardenError):
    """Attempt to update or delete a system role."""

    def __init__(self, role_id: str, operation: str = "modify") -> None:
        self.role_id = role_id
        self.operation = operation
        super().__init__(f"Cannot {operation} system role '{role_id}'")


class AccessDeniedError(WardenError):
    """Raised by ``require_access`` when a decision denies the caller."""

    code = "ACCESS_DENIED"

    def __init__(self, action: str, resource: object, reason: str | None = None) -> None:
        self.action = action
        self.resource = resource
        self.reason = reason
        super().__init__(reason or f"Access denied: {action} on {resource}")


class StorageError(WardenError):
    """Wraps a failure raised by the storage backend."""

    def __init__(self, operation: str, cause: Exception) -> None:
        self.operation = operation
        super().__init__(f"storage {operation} failed: {cause}")
        self.__cause__ = cause


class AuditSinkError(WardenError):
    """An audit sink could not record an entry."""
