"""Resolves storage adapters and audit sinks from entry points."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import TYPE_CHECKING

from warden_core.interfaces.audit import AuditSink
from warden_core.interfaces.storage import RBACStorage

if TYPE_CHECKING:
    from warden_core.config.models import WardenConfig

logger = logging.getLogger(__name__)


class PluginNotFoundError(Exception):
    """No storage or audit plugin could be resolved."""

    def __init__(self, plugin_type: str, name: str | None = None):
        self.plugin_type = plugin_type
        self.name = name
        target = f"{plugin_type} plugin '{name}'" if name else f"{plugin_type} plugin"
        super().__init__(f"No {target} found")


class InvalidPluginError(Exception):
    """A plugin resolved to something that does not implement its interface."""

    def __init__(self, plugin_type: str, name: str | None, obj: object, interface: type):
        self.plugin_type = plugin_type
        self.name = name
        self.obj = obj
        super().__init__(
            f"{plugin_type} plugin {name or '(default)'} resolved to {obj!r}, "
            f"which does not implement {interface.__name__}"
        )


class PluginLoader:
    """Picks the storage adapter and audit sink classes for a manager.

    Resolution order: explicit name, then ``config.plugins``, then the
    warden-lite defaults. A name that was asked for but is not registered
    is an error rather than a silent fallback.
    """

    GROUPS = {
        "storage": "warden.plugins.storage",
        "audit": "warden.plugins.audit",
    }

    INTERFACES: dict[str, type] = {
        "storage": RBACStorage,
        "audit": AuditSink,
    }

    LITE_DEFAULTS = {
        "storage": ("warden_lite.storage.memory_storage", "MemoryRBACStorage"),
        "audit": ("warden_lite.audit.sinks", "LoggingAuditSink"),
    }

    def __init__(self, config: WardenConfig):
        self._config = config

    def discover(self) -> dict[str, list[str]]:
        """Registered plugin names per type."""
        return {
            plugin_type: [ep.name for ep in importlib.metadata.entry_points(group=group)]
            for plugin_type, group in self.GROUPS.items()
        }

    def _configured_name(self, plugin_type: str, name: str | None) -> str | None:
        if name is not None:
            return name
        return getattr(self._config.plugins, plugin_type, None)

    def _from_entry_point(self, plugin_type: str, name: str) -> object | None:
        for ep in importlib.metadata.entry_points(group=self.GROUPS[plugin_type]):
            if ep.name == name:
                return ep.load()
        return None

    def _lite_default(self, plugin_type: str) -> object | None:
        module_path, class_name = self.LITE_DEFAULTS[plugin_type]
        try:
            module = __import__(module_path, fromlist=[class_name])
            return getattr(module, class_name)
        except (ImportError, AttributeError):
            return None

    def _resolve(self, plugin_type: str, name: str | None) -> type:
        resolved = self._configured_name(plugin_type, name)
        if resolved is not None:
            plugin = self._from_entry_point(plugin_type, resolved)
            if plugin is None:
                raise PluginNotFoundError(plugin_type, resolved)
        else:
            plugin = self._lite_default(plugin_type)
            if plugin is None:
                raise PluginNotFoundError(plugin_type)

        interface = self.INTERFACES[plugin_type]
        if not isinstance(plugin, type) or not issubclass(plugin, interface):
            raise InvalidPluginError(plugin_type, resolved, plugin, interface)
        logger.debug("Resolved %s plugin %s -> %s", plugin_type, resolved or "(default)", plugin)
        return plugin

    def load_storage(self, name: str | None = None) -> type[RBACStorage]:
        return self._resolve("storage", name)

    def load_audit(self, name: str | None = None) -> type[AuditSink]:
        return self._resolve("audit", name)

