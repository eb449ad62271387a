from .loader import configure_logging, load_config
from .models import PluginsConfig, WardenConfig

__all__ = [
    "PluginsConfig",
    "WardenConfig",
    "configure_logging",
    "load_config",
]
