"""Shared utilities for job infrastructure."""

from arq.connections import RedisSettings

from hatchery.config import settings


def get_redis_settings() -> RedisSettings:
    """Get Redis settings for ARQ from the configured ``redis_url``.

    Returns:
        ARQ RedisSettings instance
    """
    return RedisSettings.from_dsn(str(settings.redis_url))
