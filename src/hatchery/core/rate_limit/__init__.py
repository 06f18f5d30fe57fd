"""Rate limiting backed by Redis sliding windows."""

from hatchery.core.rate_limit.backend import (
    RateLimitResult,
    SlidingWindowRateLimiter,
    rate_limiter,
)
from hatchery.core.rate_limit.dependencies import RateLimit


__all__ = [
    "RateLimit",
    "RateLimitResult",
    "SlidingWindowRateLimiter",
    "rate_limiter",
]
