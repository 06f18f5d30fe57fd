"""Background jobs run by the ARQ worker."""

from hatchery.core.jobs.utils import get_redis_settings


__all__ = ["get_redis_settings"]
