"""Background job tasks."""

from hatchery.core.jobs.tasks.maintenance import (
    cleanup_expired_verifications,
    reconcile_orphaned_workspaces,
)


__all__ = [
    "cleanup_expired_verifications",
    "reconcile_orphaned_workspaces",
]
