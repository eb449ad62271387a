"""In-process storage backend."""

from warden_lite.storage.memory_storage import MemoryRBACStorage

__all__ = ["MemoryRBACStorage"]
