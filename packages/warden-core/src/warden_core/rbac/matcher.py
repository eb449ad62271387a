"""Permission matching against ``resource:action`` tokens."""

from __future__ import annotations

from collections.abc import Collection

# Resource types are singular; permission tokens name the plural collection.
_NAMESPACES: dict[str, str] = {
    "agent": "agents",
    "prompt": "prompts",
    "model": "models",
    "api_key": "api_keys",
    "user": "users",
    "team": "teams",
    "organization": "organizations",
    "billing": "billing",
}


def permission_namespace(resource_type: str) -> str:
    """Map a resource type to the segment used in permission tokens.

    Unknown types (and types already given in plural form) pass through.
    """
    return _NAMESPACES.get(resource_type, resource_type)


def matches(permissions: Collection[str], resource: str, action: str) -> bool:
    """Return True if ``permissions`` grants ``action`` on ``resource``.

    Only four shapes are honoured: ``*:*``, ``resource:*``, ``*:action``
    and the exact ``resource:action``.
    """
    return (
        "*:*" in permissions
        or f"{resource}:*" in permissions
        or f"*:{action}" in permissions
        or f"{resource}:{action}" in permissions
    )
