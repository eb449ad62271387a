"""Dynamic plugin discovery and loading."""

from warden_core.plugins.loader import InvalidPluginError, PluginLoader, PluginNotFoundError

__all__ = ["InvalidPluginError", "PluginLoader", "PluginNotFoundError"]
