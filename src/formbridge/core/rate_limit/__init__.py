"""Rate limiting for inbound requests.

Fixed windows counted in the shared KV primitive.
"""

from formbridge.core.rate_limit.limiter import FixedWindowRateLimiter, RateLimitConfig, RateLimitResult
from formbridge.core.rate_limit.registry import NoOpLimiter, RateLimitRegistry, ScopedLimiter

__all__ = [
    "FixedWindowRateLimiter",
    "NoOpLimiter",
    "RateLimitConfig",
    "RateLimitRegistry",
    "RateLimitResult",
    "ScopedLimiter",
]
