"""Warden Core - role/policy access-control engine with pluggable storage and auditing."""

from warden_core.config import WardenConfig, load_config
from warden_core.interfaces import AuditSink, RBACStorage
from warden_core.rbac import (
    AccessCheckResult,
    AccessContext,
    AccessDeniedError,
    Policy,
    RBACManager,
    Resource,
    Role,
    create_rbac_manager,
)

__version__ = "0.1.0"

__all__ = [
    "AccessCheckResult",
    "AccessContext",
    "AccessDeniedError",
    "AuditSink",
    "Policy",
    "RBACManager",
    "RBACStorage",
    "Resource",
    "Role",
    "WardenConfig",
    "create_rbac_manager",
    "load_config",
]
