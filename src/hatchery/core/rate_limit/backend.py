"""Redis sliding window rate limiter for the sign-up endpoints.

Each accepted request is a member of a sorted set scored by its arrival
time. Rejected requests are taken out again, so a client that keeps
hammering a limited endpoint does not push its own lockout further out.
"""

import math
import time
import uuid
from dataclasses import dataclass

from hatchery.core.cache.redis import redis_client


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_time: int
    retry_after: int | None = None


class SlidingWindowRateLimiter:
    """Counts requests per client and route over a trailing window."""

    def __init__(self, prefix: str = "ratelimit") -> None:
        self.prefix = prefix

    def key_for(self, identifier: str, scope: str | None = None) -> str:
        """Redis key for a client, optionally narrowed to a route path.

        Examples:
            >>> SlidingWindowRateLimiter().key_for("ip:10.0.0.1", "/api/v1/get-started/send-code")
            'ratelimit:ip:10.0.0.1:api_v1_get-started_send-code'
        """
        parts = [self.prefix, identifier]
        if scope:
            parts.append(scope.strip("/").replace("/", "_"))
        return ":".join(parts)

    async def is_allowed(
        self,
        identifier: str,
        limit: int,
        window: int,
        scope: str | None = None,
    ) -> RateLimitResult:
        """Record a request and decide whether it may proceed.

        Args:
            identifier: Client identifier, usually ``ip:<address>``
            limit: Requests allowed per window
            window: Window length in seconds
            scope: Route path the limit applies to

        Returns:
            RateLimitResult; ``retry_after`` is the number of seconds until
            enough earlier requests leave the window to admit one more
        """
        key = self.key_for(identifier, scope)
        now = time.time()
        member = f"{now:.6f}:{uuid.uuid4().hex[:8]}"

        async with redis_client() as client:
            async with client.pipeline(transaction=True) as pipe:
                pipe.zremrangebyscore(key, "-inf", now - window)
                pipe.zadd(key, {member: now})
                pipe.zcard(key)
                pipe.expire(key, window)
                _, _, count, _ = await pipe.execute()

            if count <= limit:
                return RateLimitResult(
                    allowed=True,
                    limit=limit,
                    remaining=limit - count,
                    reset_time=int(now + window),
                )

            await client.zrem(key, member)
            # The entry whose expiry brings the count back under the limit
            freeing = await client.zrange(
                key, count - limit - 1, count - limit - 1, withscores=True
            )

        frees_at = freeing[0][1] + window if freeing else now + window
        return RateLimitResult(
            allowed=False,
            limit=limit,
            remaining=0,
            reset_time=int(frees_at),
            retry_after=max(1, math.ceil(frees_at - now)),
        )


rate_limiter = SlidingWindowRateLimiter()
