"""Tests for warden_core.plugins.loader: discovery, loading, fallback, interface checks."""

from __future__ import annotations

import builtins
from unittest.mock import MagicMock, patch

import pytest

from warden_core.config.models import PluginsConfig, WardenConfig
from warden_core.plugins.loader import InvalidPluginError, PluginLoader, PluginNotFoundError
from warden_lite.audit.sinks import LoggingAuditSink, MemoryAuditSink
from warden_lite.storage.memory_storage import MemoryRBACStorage


# -- Helpers ----------------------------------------------------------------


class PostgresStorage(MemoryRBACStorage):
    """Stands in for a third-party storage adapter."""


class KafkaSink:
    async def log_access(self, entry) -> None:
        pass


def make_entry_point(name: str, load_return=None):
    """Build a mock entry point with .name and .load()."""
    ep = MagicMock()
    ep.name = name
    ep.load.return_value = load_return or MagicMock()
    return ep


def make_loader(*, storage=None, audit=None) -> PluginLoader:
    return PluginLoader(WardenConfig(plugins=PluginsConfig(storage=storage, audit=audit)))


def _ep_side_effect(mapping: dict[str, list]):
    """Return a side_effect function for entry_points(group=...).

    Unrecognized groups return [].
    """
    def _side_effect(*, group):
        return mapping.get(group, [])
    return _side_effect


def _import_replacing(module_name: str, replacement):
    """__import__ side effect that swaps one module and imports the rest normally."""
    real_import = builtins.__import__

    def _side_effect(name, *args, **kwargs):
        if name == module_name:
            if isinstance(replacement, BaseException):
                raise replacement
            return replacement
        return real_import(name, *args, **kwargs)
    return _side_effect


# -- Discovery tests -------------------------------------------------------


@patch("warden_core.plugins.loader.importlib.metadata.entry_points")
def test_discover_empty(mock_eps):
    mock_eps.side_effect = _ep_side_effect({})
    result = make_loader().discover()

    assert result == {"storage": [], "audit": []}


@patch("warden_core.plugins.loader.importlib.metadata.entry_points")
def test_discover_finds_registered_plugins(mock_eps):
    mock_eps.side_effect = _ep_side_effect({
        "warden.plugins.storage": [make_entry_point("postgres")],
        "warden.plugins.audit": [make_entry_point("logging"), make_entry_point("memory")],
    })
    result = make_loader().discover()

    assert result["storage"] == ["postgres"]
    assert result["audit"] == ["logging", "memory"]


# -- Loading from entry points ---------------------------------------------


@patch("warden_core.plugins.loader.importlib.metadata.entry_points")
def test_load_storage_from_entry_point(mock_eps):
    mock_eps.side_effect = _ep_side_effect({
        "warden.plugins.storage": [make_entry_point("postgres", PostgresStorage)],
    })
    assert make_loader().load_storage(name="postgres") is PostgresStorage


@patch("warden_core.plugins.loader.importlib.metadata.entry_points")
def test_load_audit_uses_config_name(mock_eps):
    mock_eps.side_effect = _ep_side_effect({
        "warden.plugins.audit": [
            make_entry_point("memory", MemoryAuditSink),
            make_entry_point("kafka", KafkaSink),
        ],
    })
    assert make_loader(audit="kafka").load_audit() is KafkaSink


@patch("warden_core.plugins.loader.importlib.metadata.entry_points")
def test_explicit_name_overrides_config(mock_eps):
    mock_eps.side_effect = _ep_side_effect({
        "warden.plugins.storage": [
            make_entry_point("memory", MemoryRBACStorage),
            make_entry_point("postgres", PostgresStorage),
        ],
    })
    loader = make_loader(storage="memory")
    assert loader.load_storage(name="postgres") is PostgresStorage


# -- Lite fallback ---------------------------------------------------------


@patch("warden_core.plugins.loader.importlib.metadata.entry_points")
def test_fallback_to_lite_memory_storage(mock_eps):
    mock_eps.side_effect = _ep_side_effect({})
    assert make_loader().load_storage() is MemoryRBACStorage


@patch("warden_core.plugins.loader.importlib.metadata.entry_points")
def test_fallback_to_lite_logging_audit(mock_eps):
    mock_eps.side_effect = _ep_side_effect({})
    assert make_loader().load_audit() is LoggingAuditSink


@patch("warden_core.plugins.loader.importlib.metadata.entry_points")
def test_fallback_import_path(mock_eps):
    mock_eps.side_effect = _ep_side_effect({})
    fake_module = MagicMock()
    fake_module.MemoryRBACStorage = PostgresStorage

    loader = make_loader()
    side_effect = _import_replacing("warden_lite.storage.memory_storage", fake_module)
    with patch("builtins.__import__", side_effect=side_effect) as mock_import:
        result = loader.load_storage()

    assert result is PostgresStorage
    mock_import.assert_any_call(
        "warden_lite.storage.memory_storage", fromlist=["MemoryRBACStorage"]
    )


# -- Error cases -----------------------------------------------------------


@patch("warden_core.plugins.loader.importlib.metadata.entry_points")
def test_unknown_configured_name_raises(mock_eps):
    """A configured name that isn't registered never falls back silently."""
    mock_eps.side_effect = _ep_side_effect({})
    with pytest.raises(PluginNotFoundError, match="No storage plugin 'redis' found"):
        make_loader(storage="redis").load_storage()


@patch("warden_core.plugins.loader.importlib.metadata.entry_points")
def test_missing_lite_default_raises(mock_eps):
    mock_eps.side_effect = _ep_side_effect({})
    loader = make_loader()
    side_effect = _import_replacing("warden_lite.audit.sinks", ImportError("no warden_lite"))
    with pytest.raises(PluginNotFoundError) as exc_info:
        with patch("builtins.__import__", side_effect=side_effect):
            loader.load_audit()
    assert exc_info.value.plugin_type == "audit"
    assert exc_info.value.name is None


@patch("warden_core.plugins.loader.importlib.metadata.entry_points")
def test_storage_plugin_missing_methods_rejected(mock_eps):
    class HalfStorage:
        async def get_roles(self):
            return []

    mock_eps.side_effect = _ep_side_effect({
        "warden.plugins.storage": [make_entry_point("half", HalfStorage)],
    })
    with pytest.raises(InvalidPluginError, match="does not implement RBACStorage") as exc_info:
        make_loader(storage="half").load_storage()
    assert exc_info.value.obj is HalfStorage


@patch("warden_core.plugins.loader.importlib.metadata.entry_points")
def test_entry_point_resolving_to_instance_rejected(mock_eps):
    mock_eps.side_effect = _ep_side_effect({
        "warden.plugins.audit": [make_entry_point("memory", MemoryAuditSink())],
    })
    with pytest.raises(InvalidPluginError, match="does not implement AuditSink"):
        make_loader().load_audit(name="memory")


@patch("warden_core.plugins.loader.importlib.metadata.entry_points")
def test_storage_class_registered_as_audit_rejected(mock_eps):
    mock_eps.side_effect = _ep_side_effect({
        "warden.plugins.audit": [make_entry_point("oops", MemoryRBACStorage)],
    })
    with pytest.raises(InvalidPluginError):
        make_loader(audit="oops").load_audit()
