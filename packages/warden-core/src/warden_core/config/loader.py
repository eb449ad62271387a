"""YAML config loading with env var expansion."""

import logging
import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import WardenConfig


def load_config(path: str | None = None) -> WardenConfig:
    """Load config with resolution order: explicit path > project-local > user-global > defaults."""
    config_paths = [
        Path(path) if path else None,
        Path("./warden.yaml"),
        Path.home() / ".warden" / "config.yaml",
    ]

    for candidate in config_paths:
        if candidate and candidate.exists():
            try:
                with open(candidate) as f:
                    raw = yaml.safe_load(f)
                if raw is None:
                    continue
                raw = _expand_env_vars(raw)
                return WardenConfig(**raw)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {candidate}: {e}") from e
            except ValidationError as e:
                raise ValueError(f"Invalid config in {candidate}: {e}") from e

    return WardenConfig()


def configure_logging(config: WardenConfig) -> None:
    """Apply ``log_level`` to the ``warden`` logger hierarchy."""
    level = getattr(logging, config.log_level.upper())
    for name in ("warden", "warden_core", "warden_lite"):
        logging.getLogger(name).setLevel(level)


def _expand_env_vars(obj: object) -> object:
    """Recursively expand ${VAR} references in strings."""
    if isinstance(obj, str):
        return re.sub(r"\$\{(\w+)\}", lambda m: os.environ.get(m.group(1), ""), obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj
