# src/formbridge/core/kv/store.py
"""Degrading key-value store.

Redis is tried first when configured. The first remote failure of any kind
(timeout, connection error, malformed payload) downgrades this instance to
its in-memory backend for the rest of its life. There is no reconnect: a
flapping Redis would otherwise split state between the two backends.
"""

from __future__ import annotations

import time
from collections.abc import Callable

import structlog
from redis.exceptions import RedisError

from formbridge.core.config import RedisSettings
from formbridge.core.kv.backend import JSONValue, WindowCount
from formbridge.core.kv.memory import MemoryBackend
from formbridge.core.kv.remote import RedisBackend

logger = structlog.get_logger(__name__)

# Failures that trigger the permanent downgrade. ValueError covers undecodable
# stored payloads; encoding errors are the caller's and are raised before Redis is used.
_REMOTE_FAILURES: tuple[type[BaseException], ...] = (RedisError, OSError, TimeoutError, ValueError)


class KeyValueStore:
    """get/set/increment_window_counter over Redis with an in-memory fallback.

    Never raises for backend problems; callers always get an answer.

    Example:
        store = KeyValueStore.from_settings(settings.redis)
        await store.set("k", {"a": 1}, ttl_ms=1000)
        value = await store.get("k")
        await store.aclose()
    """

    def __init__(
        self,
        remote: RedisBackend | None = None,
        *,
        memory: MemoryBackend | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._remote = remote
        self._abandoned: RedisBackend | None = None
        self._memory = memory if memory is not None else MemoryBackend(clock=clock)

    @classmethod
    def from_settings(cls, settings: RedisSettings, *, clock: Callable[[], float] = time.time) -> KeyValueStore:
        """Build a store, using Redis when settings.url is set.

        An unparseable URL is logged and yields a memory-only store.
        """
        if settings.url is None:
            return cls(clock=clock)
        try:
            remote = RedisBackend.from_url(settings.url, operation_timeout_ms=settings.operation_timeout_ms)
        except ValueError as exc:
            logger.warning("kv.redis_unavailable", reason="invalid_url", error=str(exc))
            return cls(clock=clock)
        return cls(remote, clock=clock)

    @classmethod
    def in_memory(cls, *, clock: Callable[[], float] = time.time) -> KeyValueStore:
        return cls(clock=clock)

    @property
    def using_remote(self) -> bool:
        return self._remote is not None

    @property
    def memory(self) -> MemoryBackend:
        return self._memory

    def _downgrade(self, operation: str, key: str, exc: BaseException) -> None:
        logger.warning(
            "kv.redis_downgraded",
            operation=operation,
            key=key,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        self._abandoned = self._remote
        self._remote = None

    async def get(self, key: str) -> JSONValue | None:
        remote = self._remote
        if remote is not None:
            try:
                return await remote.get(key)
            except _REMOTE_FAILURES as exc:
                self._downgrade("get", key, exc)
        return self._memory.get(key)

    async def set(self, key: str, value: JSONValue, ttl_ms: int | None = None) -> None:
        """Store value under key.

        Raises:
            TypeError: value is not JSON-serializable (on either backend)
        """
        payload = RedisBackend.encode(value)
        remote = self._remote
        if remote is not None:
            try:
                await remote.set_encoded(key, payload, ttl_ms)
                return
            except _REMOTE_FAILURES as exc:
                self._downgrade("set", key, exc)
        self._memory.set(key, value, ttl_ms)

    async def increment_window_counter(self, key: str, window_ms: int) -> WindowCount:
        remote = self._remote
        if remote is not None:
            try:
                return await remote.increment_window_counter(key, window_ms)
            except _REMOTE_FAILURES as exc:
                self._downgrade("increment_window_counter", key, exc)
        return self._memory.increment_window_counter(key, window_ms)

    async def aclose(self) -> None:
        """Close any Redis connection pool this store opened."""
        for backend in (self._remote, self._abandoned):
            if backend is None:
                continue
            try:
                await backend.aclose()
            except _REMOTE_FAILURES as exc:
                logger.debug("kv.close_failed", error=str(exc))
        self._remote = None
        self._abandoned = None
