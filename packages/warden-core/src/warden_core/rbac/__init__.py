"""Role/policy access-control engine."""

from warden_core.rbac.assignments import AssignmentManager
from warden_core.rbac.cache import CacheSnapshot, PermissionCache
from warden_core.rbac.errors import (
    AccessDeniedError,
    AuditSinkError,
    ImmutableRoleError,
    NotFoundError,
    StorageError,
    ValidationError,
    WardenError,
)
from warden_core.rbac.manager import RBACManager, create_rbac_manager
from warden_core.rbac.matcher import matches, permission_namespace
from warden_core.rbac.models import (
    AccessCheckResult,
    AccessContext,
    AssignmentCreate,
    AuditLogEntry,
    ConditionOperator,
    ConditionType,
    Effect,
    Policy,
    PolicyCondition,
    PolicyCreate,
    PolicyUpdate,
    Resource,
    Role,
    RoleCreate,
    RoleUpdate,
    UserRoleAssignment,
    validate_permission,
)
from warden_core.rbac.policies import PolicyEvaluator, evaluate_condition
from warden_core.rbac.resolver import RoleResolver
from warden_core.rbac.system_roles import SYSTEM_ROLES, system_role_id

__all__ = [
    "AccessCheckResult",
    "AccessContext",
    "AccessDeniedError",
    "AssignmentCreate",
    "AssignmentManager",
    "AuditLogEntry",
    "AuditSinkError",
    "CacheSnapshot",
    "ConditionOperator",
    "ConditionType",
    "Effect",
    "ImmutableRoleError",
    "NotFoundError",
    "PermissionCache",
    "Policy",
    "PolicyCondition",
    "PolicyCreate",
    "PolicyEvaluator",
    "PolicyUpdate",
    "RBACManager",
    "Resource",
    "Role",
    "RoleCreate",
    "RoleResolver",
    "RoleUpdate",
    "SYSTEM_ROLES",
    "StorageError",
    "UserRoleAssignment",
    "ValidationError",
    "WardenError",
    "create_rbac_manager",
    "evaluate_condition",
    "matches",
    "permission_namespace",
    "system_role_id",
    "validate_permission",
]
