"""Shared test fixtures for warden."""

from datetime import UTC, datetime

import pytest

from warden_core.config.models import WardenConfig
from warden_core.rbac.manager import RBACManager
from warden_core.rbac.models import (
    AccessContext,
    Effect,
    Policy,
    PolicyCondition,
    Resource,
    Role,
)
from warden_lite.audit.sinks import MemoryAuditSink
from warden_lite.storage.memory_storage import MemoryRBACStorage


@pytest.fixture
def storage():
    return MemoryRBACStorage()


@pytest.fixture
def audit_sink():
    return MemoryAuditSink()


@pytest.fixture
def sample_config():
    return WardenConfig()


@pytest.fixture
def manager(sample_config, storage, audit_sink):
    return RBACManager(sample_config, storage=storage, audit_sink=audit_sink)


@pytest.fixture
def uncached_manager(storage, audit_sink):
    return RBACManager(
        WardenConfig(cache_enabled=False), storage=storage, audit_sink=audit_sink
    )


@pytest.fixture
def alice():
    return AccessContext(user_id="alice", roles=["viewer"], ip_address="10.0.0.1")


@pytest.fixture
def agent_42():
    return Resource(type="agent", id="42")


@pytest.fixture
def make_role():
    def _make(role_id: str, permissions=(), inherits=(), **kwargs) -> Role:
        return Role(
            id=role_id,
            name=kwargs.pop("name", role_id),
            permissions=list(permissions),
            inherits=list(inherits),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_policy():
    counter = iter(range(1, 10_000))

    def _make(effect="allow", resources=("*",), actions=("*",), conditions=None, **kwargs):
        n = next(counter)
        return Policy(
            id=kwargs.pop("id", f"policy-{n}"),
            name=kwargs.pop("name", f"policy {n}"),
            effect=Effect(effect),
            resources=list(resources),
            actions=list(actions),
            conditions=[PolicyCondition(**c) for c in conditions] if conditions else None,
            **kwargs,
        )

    return _make


@pytest.fixture
def fixed_now():
    return datetime(2026, 3, 2, 12, 0, tzinfo=UTC)
