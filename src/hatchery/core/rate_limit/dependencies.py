"""Per-route rate limiting as a FastAPI dependency.

Usage:
    @router.post(
        "/send-code",
        dependencies=[Depends(RateLimit(requests=5, window=300))],
    )
    async def send_code(...): ...
"""

from fastapi import Request

from hatchery.core.errors import RateLimitError
from hatchery.core.logging import get_client_ip
from hatchery.core.rate_limit import backend


class RateLimit:
    """Dependency that rejects a request once its client exceeds a limit.

    The client is identified by IP address and the limit is scoped to
    the request path.
    """

    def __init__(self, requests: int, window: int) -> None:
        self.requests = requests
        self.window = window

    async def __call__(self, request: Request) -> None:
        identifier = f"ip:{get_client_ip(request) or 'unknown'}"

        result = await backend.rate_limiter.is_allowed(
            identifier=identifier,
            limit=self.requests,
            window=self.window,
            scope=request.url.path,
        )

        if not result.allowed:
            raise RateLimitError(
                f"Rate limit exceeded. Limit: {self.requests} requests "
                f"per {self.window} seconds.",
                details={"retry_after": result.retry_after},
            )
