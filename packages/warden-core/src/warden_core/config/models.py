from typing import Literal

from pydantic import BaseModel, Field


class PluginsConfig(BaseModel):
    storage: str | None = None
    audit: str | None = None


class WardenConfig(BaseModel):
    default_deny_all: bool = True
    enable_audit_log: bool = True
    cache_enabled: bool = True
    cache_ttl: float = Field(default=300, ge=0)
    log_level: Literal["debug", "info", "warning", "error"] = "info"
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
