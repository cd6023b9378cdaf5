# src/formbridge/core/kv/remote.py
"""Redis key-value backend.

Every call is bounded by an operation timeout. This backend never recovers
from errors itself: it raises, and KeyValueStore decides what to do.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable
from typing import Any, TypeVar

import redis.asyncio as aioredis

from formbridge.core.kv.backend import JSONValue, WindowCount

T = TypeVar("T")


class RedisBackend:
    """Thin async wrapper over a redis.asyncio client storing JSON strings.

    Args:
        client: A redis.asyncio client created with decode_responses=True
        operation_timeout_ms: Upper bound for each individual Redis command

    Raises (from every method):
        TimeoutError: The command exceeded operation_timeout_ms
        redis.RedisError: Connection or protocol failure
        ValueError: A stored value is not valid JSON

    Values are encoded before any command is sent, so an unserializable
    value raises TypeError without touching Redis.
    """

    def __init__(self, client: aioredis.Redis, *, operation_timeout_ms: int = 800) -> None:
        self._client = client
        self._timeout = operation_timeout_ms / 1000

    @classmethod
    def from_url(cls, url: str, *, operation_timeout_ms: int = 800) -> RedisBackend:
        timeout = operation_timeout_ms / 1000
        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        return cls(client, operation_timeout_ms=operation_timeout_ms)

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self._timeout)

    async def get(self, key: str) -> JSONValue | None:
        raw: Any = await self._bounded(self._client.get(key))
        if raw is None:
            return None
        # json.JSONDecodeError is a ValueError
        return json.loads(raw)

    @staticmethod
    def encode(value: JSONValue) -> str:
        """Raises TypeError (or ValueError for circular data) when value is not JSON."""
        return json.dumps(value)

    async def set(self, key: str, value: JSONValue, ttl_ms: int | None = None) -> None:
        await self.set_encoded(key, self.encode(value), ttl_ms)

    async def set_encoded(self, key: str, payload: str, ttl_ms: int | None = None) -> None:
        if ttl_ms is not None and ttl_ms > 0:
            await self._bounded(self._client.set(key, payload, px=ttl_ms))
        else:
            await self._bounded(self._client.set(key, payload))

    async def increment_window_counter(self, key: str, window_ms: int) -> WindowCount:
        """INCR the counter; arm expiry on the first hit of a window.

        If the counter exists without a usable TTL (a previous PEXPIRE was
        lost), the expiry is re-armed and the full window is reported.
        """
        count = int(await self._bounded(self._client.incr(key)))
        if count == 1:
            await self._bounded(self._client.pexpire(key, window_ms))
            return WindowCount(count=count, retry_after_ms=window_ms)

        ttl: Any = await self._bounded(self._client.pttl(key))
        if not isinstance(ttl, int) or isinstance(ttl, bool) or ttl < 0:
            await self._bounded(self._client.pexpire(key, window_ms))
            return WindowCount(count=count, retry_after_ms=window_ms)
        return WindowCount(count=count, retry_after_ms=ttl)

    async def aclose(self) -> None:
        await self._client.aclose()
