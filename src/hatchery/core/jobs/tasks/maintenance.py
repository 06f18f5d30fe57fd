"""Catalog maintenance tasks.

Both jobs read their collaborators from the worker context set up in
``hatchery.core.jobs.worker.startup``.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from hatchery.config import settings
from hatchery.modules.catalog.repos import VerificationRepository, WorkspaceRepository


log = structlog.get_logger()


async def cleanup_expired_verifications(ctx: dict[str, Any]) -> dict[str, int]:
    """Delete verification codes and provisioning tokens past their expiry.

    Args:
        ctx: Worker context containing the database session factory

    Returns:
        Dict with the number of deleted records
    """
    repo = VerificationRepository(ctx["db_session_factory"])
    deleted = await repo.delete_expired(datetime.now(UTC))

    log.info("expired_verifications_cleaned", deleted=deleted)
    return {"verifications_deleted": deleted}


async def reconcile_orphaned_workspaces(ctx: dict[str, Any]) -> dict[str, int]:
    """Finish the rollback of sagas whose process died mid-run.

    A workspace still ``in_progress`` long after any live saga would have
    finished has no one left to roll it back. Its provider project is
    deleted first; the catalog row is only removed once that succeeded,
    so a failed delete is retried on the next run.

    Args:
        ctx: Worker context containing the session factory and Neon client

    Returns:
        Dict with counts of reclaimed and skipped workspaces
    """
    repo = WorkspaceRepository(ctx["db_session_factory"])
    neon = ctx["neon_client"]
    cutoff = datetime.now(UTC) - timedelta(minutes=settings.orphan_reconcile_after_minutes)

    reclaimed = 0
    skipped = 0
    for workspace in await repo.list_stale_in_progress(cutoff):
        if workspace.external_resource_id and not await neon.delete_database(
            workspace.external_resource_id
        ):
            skipped += 1
            log.warning(
                "orphaned_workspace_resource_kept",
                workspace_id=str(workspace.id),
                resource_id=workspace.external_resource_id,
            )
            continue

        await repo.delete(workspace.id)
        reclaimed += 1
        log.info(
            "orphaned_workspace_reclaimed",
            workspace_id=str(workspace.id),
            slug=workspace.slug,
            resource_id=workspace.external_resource_id,
        )

    return {"reclaimed": reclaimed, "skipped": skipped}
