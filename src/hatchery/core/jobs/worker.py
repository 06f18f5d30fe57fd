"""ARQ worker configuration.

Run the worker with:
    arq hatchery.core.jobs.worker.WorkerSettings
"""

from typing import Any, ClassVar

import structlog
from arq import cron
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from hatchery.config import settings
from hatchery.core.jobs.tasks import (
    cleanup_expired_verifications,
    reconcile_orphaned_workspaces,
)
from hatchery.core.jobs.utils import get_redis_settings
from hatchery.core.logging import configure_logging
from hatchery.modules.provisioning.neon_client import NeonClient


async def startup(ctx: dict[str, Any]) -> None:
    """Create the catalog engine and provider client shared by all jobs.

    Args:
        ctx: Worker context dict (shared across all jobs)
    """
    configure_logging()
    log = structlog.get_logger()
    log.info("worker_startup", environment=settings.environment)

    engine = create_async_engine(
        settings.async_database_url,
        pool_size=5,
        max_overflow=5,
        echo=settings.database_echo,
    )

    ctx["db_engine"] = engine
    ctx["db_session_factory"] = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    ctx["neon_client"] = NeonClient()

    log.info("worker_startup_complete")


async def shutdown(ctx: dict[str, Any]) -> None:
    log = structlog.get_logger()
    log.info("worker_shutdown")

    engine = ctx.get("db_engine")
    if engine:
        await engine.dispose()
        log.info("database_engine_disposed")


class WorkerSettings:
    """ARQ worker settings."""

    functions: ClassVar[list[Any]] = [
        cleanup_expired_verifications,
        reconcile_orphaned_workspaces,
    ]

    cron_jobs: ClassVar[list[Any]] = [
        cron(cleanup_expired_verifications, minute=0),
        cron(reconcile_orphaned_workspaces, minute={0, 15, 30, 45}),
    ]

    on_startup = startup
    on_shutdown = shutdown

    redis_settings = get_redis_settings()

    max_jobs = 10
    job_timeout = 300  # 5 minutes per job
    keep_result = 3600
