"""Fixed-window rate limiter over the KV primitive."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from formbridge.core.kv import KeyValueStore


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    window_ms: int
    max_requests: int


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    """Decision for one request.

    Attributes:
        allowed: True while the window's count is at or below the limit
        remaining: Requests left in the window (never negative)
        retry_after_ms: 0 when allowed, else time until the window resets
        reset_at_ms: Epoch milliseconds at which the window resets
    """

    allowed: bool
    remaining: int
    retry_after_ms: int
    reset_at_ms: int

    @property
    def retry_after_seconds(self) -> int:
        """Ceiling of retry_after_ms in whole seconds, for Retry-After headers."""
        return -(-self.retry_after_ms // 1000)


class FixedWindowRateLimiter:
    """Counts requests per key in fixed windows.

    The window starts at a key's first request and resets when the counter
    expires. There is no sliding or smoothing. A client can burst 2x the
    limit across a window boundary; that is accepted.

    Example:
        limiter = FixedWindowRateLimiter(store)
        result = await limiter.check("search:203.0.113.7", RateLimitConfig(60_000, 120))
        if not result.allowed:
            ...
    """

    def __init__(self, store: KeyValueStore, *, key_prefix: str = "", clock: Callable[[], float] = time.time) -> None:
        self._store = store
        self._key_prefix = key_prefix
        self._clock = clock

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        counter = await self._store.increment_window_counter(self._key_prefix + key, config.window_ms)
        allowed = counter.count <= config.max_requests
        now_ms = int(self._clock() * 1000)
        return RateLimitResult(
            allowed=allowed,
            remaining=max(0, config.max_requests - counter.count),
            retry_after_ms=0 if allowed else counter.retry_after_ms,
            reset_at_ms=now_ms + counter.retry_after_ms,
        )
