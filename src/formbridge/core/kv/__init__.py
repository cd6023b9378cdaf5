"""Key-value primitive: Redis when available, process memory otherwise."""

from formbridge.core.kv.backend import WindowCount
from formbridge.core.kv.memory import MemoryBackend
from formbridge.core.kv.remote import RedisBackend
from formbridge.core.kv.store import KeyValueStore

__all__ = ["KeyValueStore", "MemoryBackend", "RedisBackend", "WindowCount"]
