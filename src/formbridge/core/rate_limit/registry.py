"""Registry mapping named scopes to their fixed-window limits."""

from __future__ import annotations

import time
from collections.abc import Callable

from formbridge.core.config import RateLimitSettings
from formbridge.core.kv import KeyValueStore
from formbridge.core.rate_limit.limiter import FixedWindowRateLimiter, RateLimitConfig, RateLimitResult


class NoOpLimiter:
    """No-op limiter when rate limiting is disabled.

    Provides the same interface as ScopedLimiter but never counts anything.
    """

    async def check(self, identity: str) -> RateLimitResult:
        """Always allow."""
        return RateLimitResult(allowed=True, remaining=0, retry_after_ms=0, reset_at_ms=0)


class ScopedLimiter:
    """A FixedWindowRateLimiter bound to one scope and its limit."""

    def __init__(self, scope: str, limiter: FixedWindowRateLimiter, config: RateLimitConfig) -> None:
        self.scope = scope
        self.config = config
        self._limiter = limiter

    async def check(self, identity: str) -> RateLimitResult:
        return await self._limiter.check(f"{self.scope}:{identity}", self.config)


class RateLimitRegistry:
    """Registry that hands out per-scope limiters.

    Scopes are configured in RateLimitSettings.scopes. Asking for an
    unconfigured scope is a programming error and raises KeyError.

    Example:
        registry = RateLimitRegistry(store, settings.rate_limit)
        result = await registry.get_limiter("search").check(client_id)
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: RateLimitSettings,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._limiter = FixedWindowRateLimiter(store, key_prefix=settings.key_prefix, clock=clock)
        self._noop_limiter = NoOpLimiter()
        self._scoped: dict[str, ScopedLimiter] = {}

    @property
    def limiter(self) -> FixedWindowRateLimiter:
        return self._limiter

    def get_limiter(self, scope: str) -> ScopedLimiter | NoOpLimiter:
        if not self._settings.enabled:
            return self._noop_limiter

        if scope not in self._scoped:
            limit = self._settings.get_scope(scope)
            self._scoped[scope] = ScopedLimiter(
                scope,
                self._limiter,
                RateLimitConfig(window_ms=limit.window_ms, max_requests=limit.max_requests),
            )
        return self._scoped[scope]
