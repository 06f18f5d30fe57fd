"""Tests for the RateLimit route dependency."""

from unittest.mock import MagicMock

import pytest

from hatchery.core.errors import RateLimitError
from hatchery.core.rate_limit import RateLimit, RateLimitResult


def make_request(path: str = "/api/v1/get-started/send-code", ip: str = "10.0.0.1") -> MagicMock:
    request = MagicMock()
    request.url.path = path
    request.headers = {}
    request.client.host = ip
    return request


async def test_allows_request(rate_limiter):
    await RateLimit(requests=5, window=300)(make_request())

    rate_limiter.is_allowed.assert_awaited_once_with(
        identifier="ip:10.0.0.1",
        limit=5,
        window=300,
        scope="/api/v1/get-started/send-code",
    )


async def test_rejects_with_retry_after(rate_limiter):
    rate_limiter.is_allowed.return_value = RateLimitResult(
        allowed=False, limit=5, remaining=0, reset_time=0, retry_after=300
    )

    with pytest.raises(RateLimitError) as exc_info:
        await RateLimit(requests=5, window=300)(make_request())

    assert exc_info.value.details == {"retry_after": 300}
