"""Plugin interfaces for the external collaborators of the engine."""

from warden_core.interfaces.audit import AuditSink
from warden_core.interfaces.storage import RBACStorage

__all__ = [
    "AuditSink",
    "RBACStorage",
]
