"""Access-control orchestrator: decisions, administration and auditing."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from warden_core.config.loader import load_config
from warden_core.config.models import WardenConfig
from warden_core.rbac.assignments import AssignmentManager
from warden_core.rbac.cache import CacheSnapshot, PermissionCache
from warden_core.rbac.errors import (
    AccessDeniedError,
    ImmutableRoleError,
    NotFoundError,
    StorageError,
    ValidationError,
    WardenError,
)
from warden_core.rbac.matcher import matches, permission_namespace
from warden_core.rbac.models import (
    AccessCheckResult,
    AccessContext,
    AuditLogEntry,
    Effect,
    Policy,
    PolicyCreate,
    PolicyUpdate,
    Resource,
    Role,
    RoleCreate,
    RoleUpdate,
    UserRoleAssignment,
)
from warden_core.rbac.policies import PolicyEvaluator
from warden_core.rbac.resolver import RoleResolver

if TYPE_CHECKING:
    from warden_core.interfaces.audit import AuditSink
    from warden_core.interfaces.storage import RBACStorage

logger = logging.getLogger(__name__)

_M = TypeVar("_M", bound=BaseModel)
_T = TypeVar("_T")


def _coerce(model: type[_M], value: Any) -> _M:
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {model.__name__}: {e}") from e


def check_key(action: str, resource: Resource) -> str:
    """Key under which ``check_multiple_access`` reports a result."""
    return f"{action}:{resource.type}:{resource.id or '*'}"


class RBACManager:
    """Combines role permissions and policies into access decisions.

    Each instance owns its cache; separate instances never share state.
    Storage and audit calls are the only suspension points.
    """

    def __init__(
        self,
        config: WardenConfig | None = None,
        storage: RBACStorage | None = None,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self.config = config or WardenConfig()

        if storage is None or (audit_sink is None and self.config.enable_audit_log):
            from warden_core.plugins.loader import PluginLoader

            loader = PluginLoader(self.config)
            if storage is None:
                storage = loader.load_storage()()
            if audit_sink is None and self.config.enable_audit_log:
                audit_sink = loader.load_audit()()

        self.storage = storage
        self.audit_sink = audit_sink
        self._assignments = AssignmentManager(storage)
        self._cache = PermissionCache(
            ttl=self.config.cache_ttl, enabled=self.config.cache_enabled
        )

    # -- Access control --------------------------------------------------------

    async def check_access(
        self,
        context: AccessContext | dict,
        action: str,
        resource: Resource | dict,
    ) -> AccessCheckResult:
        """Decide whether ``context`` may perform ``action`` on ``resource``.

        Denials are returned, never raised. Applicable policies are walked in
        priority order and the first one whose conditions hold decides; a
        deny stops evaluation, later allows only update ``matched_policy``.
        Without any matching policy the raw permission check decides.
        """
        context = _coerce(AccessContext, context)
        resource = _coerce(Resource, resource)

        generation = self._cache.generation
        snapshot = await self._cache.get_snapshot(self._load_snapshot)
        permissions = await self._user_permissions(context.user_id, snapshot, generation)
        has_permission = matches(permissions, resource.type, action) or matches(
            permissions, permission_namespace(resource.type), action
        )

        evaluator = PolicyEvaluator(snapshot.policies)
        result = self._decide(evaluator, context, action, resource, has_permission)

        if self.config.enable_audit_log:
            await self._log_access(context, action, resource, result)
        return result

    async def require_access(
        self,
        context: AccessContext | dict,
        action: str,
        resource: Resource | dict,
    ) -> None:
        """Like ``check_access`` but raises ``AccessDeniedError`` on denial."""
        resource = _coerce(Resource, resource)
        result = await self.check_access(context, action, resource)
        if not result.allowed:
            raise AccessDeniedError(
                action,
                resource,
                result.reason or f"Access denied: {action} on {resource.type}",
            )

    async def check_multiple_access(
        self,
        context: AccessContext | dict,
        checks: Iterable[tuple[str, Resource | dict]],
    ) -> dict[str, AccessCheckResult]:
        context = _coerce(AccessContext, context)
        results: dict[str, AccessCheckResult] = {}
        for action, resource in checks:
            resource = _coerce(Resource, resource)
            results[check_key(action, resource)] = await self.check_access(
                context, action, resource
            )
        return results

    def _decide(
        self,
        evaluator: PolicyEvaluator,
        context: AccessContext,
        action: str,
        resource: Resource,
        has_permission: bool,
    ) -> AccessCheckResult:
        matched: Policy | None = None
        for policy in evaluator.applicable_policies(resource.pattern, action):
            if not evaluator.evaluate(policy, context, resource):
                continue
            if policy.effect is Effect.deny:
                if matched is None:
                    return AccessCheckResult(
                        allowed=False,
                        denied_by=policy,
                        reason=f"Denied by policy: {policy.name}",
                    )
                continue
            matched = policy

        if matched is not None:
            return AccessCheckResult(allowed=True, matched_policy=matched)
        # default_deny_all has no effect here; permission membership decides.
        if has_permission:
            return AccessCheckResult(allowed=True)
        return AccessCheckResult(allowed=False, reason="No matching permission")

    # -- Roles -----------------------------------------------------------------

    async def create_role(self, role: RoleCreate | dict) -> Role:
        role = _coerce(RoleCreate, role)
        if role.is_system:
            raise ValidationError("System roles cannot be created through the API")
        created = await self._storage_call("create_role", self.storage.create_role(role))
        self.invalidate_cache()
        logger.info("Created role %s (%s)", created.id, created.name)
        return created

    async def update_role(self, role_id: str, updates: RoleUpdate | dict) -> Role:
        updates = _coerce(RoleUpdate, updates)
        existing = await self._require_role(role_id)
        if existing.is_system:
            raise ImmutableRoleError(role_id, "modify")

        changes = updates.changes()
        changes["updated_at"] = datetime.now(UTC)
        updated = await self._storage_call(
            "update_role", self.storage.update_role(role_id, changes)
        )
        self.invalidate_cache()
        logger.info("Updated role %s: %s", role_id, sorted(changes))
        return updated

    async def delete_role(self, role_id: str) -> None:
        existing = await self._require_role(role_id)
        if existing.is_system:
            raise ImmutableRoleError(role_id, "delete")
        await self._storage_call("delete_role", self.storage.delete_role(role_id))
        self.invalidate_cache()
        logger.info("Deleted role %s", role_id)

    async def get_roles(self) -> list[Role]:
        return await self._storage_call("get_roles", self.storage.get_roles())

    async def get_role(self, role_id: str) -> Role | None:
        return await self._storage_call("get_role", self.storage.get_role(role_id))

    async def get_role_permissions(self, role_id: str) -> set[str]:
        """Permissions of ``role_id`` including everything it inherits."""
        snapshot = await self._cache.get_snapshot(self._load_snapshot)
        return RoleResolver(snapshot.roles).resolve_permissions(role_id)

    async def _require_role(self, role_id: str) -> Role:
        role = await self.get_role(role_id)
        if role is None:
            raise NotFoundError("role", role_id)
        return role

    # -- Assignments -----------------------------------------------------------

    async def assign_role(
        self,
        user_id: str,
        role_id: str,
        *,
        scope: str | None = None,
        expires_at: datetime | None = None,
        granted_by: str = "system",
    ) -> UserRoleAssignment:
        assignment = await self._storage_call(
            "assign_role",
            self._assignments.assign(
                user_id, role_id, scope=scope, expires_at=expires_at, granted_by=granted_by
            ),
        )
        self.invalidate_cache()
        return assignment

    async def revoke_role(self, user_id: str, role_id: str, scope: str | None = None) -> None:
        await self._storage_call(
            "revoke_role", self._assignments.revoke(user_id, role_id, scope)
        )
        self.invalidate_cache()

    async def get_user_roles(self, user_id: str) -> list[UserRoleAssignment]:
        """Active (non-expired) assignments of ``user_id``."""
        return await self._storage_call(
            "get_user_roles", self._assignments.list_active(user_id)
        )

    async def get_user_permissions(self, user_id: str) -> frozenset[str]:
        generation = self._cache.generation
        snapshot = await self._cache.get_snapshot(self._load_snapshot)
        return await self._user_permissions(user_id, snapshot, generation)

    async def _user_permissions(
        self, user_id: str, snapshot: CacheSnapshot, generation: int
    ) -> frozenset[str]:
        cached = self._cache.get_user_permissions(user_id)
        if cached is not None:
            return cached

        active = await self.get_user_roles(user_id)
        permissions = frozenset(RoleResolver(snapshot.roles).resolve_assignments(active))
        valid_until = min((a.expires_at for a in active if a.expires_at), default=None)
        self._cache.set_user_permissions(user_id, permissions, generation, valid_until)
        return permissions

    # -- Policies --------------------------------------------------------------

    async def create_policy(self, policy: PolicyCreate | dict) -> Policy:
        policy = _coerce(PolicyCreate, policy)
        created = await self._storage_call("create_policy", self.storage.create_policy(policy))
        self.invalidate_cache()
        logger.info("Created policy %s (%s, %s)", created.id, created.name, created.effect.value)
        return created

    async def update_policy(self, policy_id: str, updates: PolicyUpdate | dict) -> Policy:
        updates = _coerce(PolicyUpdate, updates)
        await self._require_policy(policy_id)
        changes = updates.changes()
        updated = await self._storage_call(
            "update_policy", self.storage.update_policy(policy_id, changes)
        )
        self.invalidate_cache()
        logger.info("Updated policy %s: %s", policy_id, sorted(changes))
        return updated

    async def delete_policy(self, policy_id: str) -> None:
        await self._require_policy(policy_id)
        await self._storage_call("delete_policy", self.storage.delete_policy(policy_id))
        self.invalidate_cache()
        logger.info("Deleted policy %s", policy_id)

    async def get_policies(self) -> list[Policy]:
        return await self._storage_call("get_policies", self.storage.get_policies())

    async def get_policy(self, policy_id: str) -> Policy | None:
        return await self._storage_call("get_policy", self.storage.get_policy(policy_id))

    async def _require_policy(self, policy_id: str) -> Policy:
        policy = await self.get_policy(policy_id)
        if policy is None:
            raise NotFoundError("policy", policy_id)
        return policy

    # -- Helpers ---------------------------------------------------------------

    def invalidate_cache(self) -> None:
        """Drop every cached snapshot and memoized permission set."""
        self._cache.invalidate()

    async def _load_snapshot(self) -> CacheSnapshot:
        roles, policies = await asyncio.gather(
            self._storage_call("get_roles", self.storage.get_roles()),
            self._storage_call("get_policies", self.storage.get_policies()),
        )
        return CacheSnapshot(roles={r.id: r for r in roles}, policies=tuple(policies))

    async def _storage_call(self, operation: str, awaitable: Awaitable[_T]) -> _T:
        try:
            return await awaitable
        except WardenError:
            raise
        except Exception as e:
            raise StorageError(operation, e) from e

    async def _log_access(
        self,
        context: AccessContext,
        action: str,
        resource: Resource,
        result: AccessCheckResult,
    ) -> None:
        if self.audit_sink is None:
            return
        entry = AuditLogEntry(
            id=f"audit-{uuid.uuid4().hex}",
            user_id=context.user_id,
            action=action,
            resource_type=resource.type,
            resource_id=resource.id or "*",
            allowed=result.allowed,
            denied_reason=result.reason,
            context={
                "roles": list(context.roles),
                "ip_address": context.ip_address,
                "matched_policy": result.matched_policy.name if result.matched_policy else None,
                "denied_by": result.denied_by.name if result.denied_by else None,
            },
        )
        try:
            await self.audit_sink.log_access(entry)
        except Exception:
            logger.exception(
                "Audit sink failed for %s %s on %s", context.user_id, action, resource.pattern
            )


def create_rbac_manager(
    config: WardenConfig | None = None,
    storage: RBACStorage | None = None,
    audit_sink: AuditSink | None = None,
) -> RBACManager:
    """Build a manager, reading ``warden.yaml`` when no config is given."""
    if config is None:
        config = load_config()
    return RBACManager(config, storage=storage, audit_sink=audit_sink)
