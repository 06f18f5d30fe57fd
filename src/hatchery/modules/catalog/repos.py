"""Catalog repositories.

Unlike request-scoped repositories, these own a session factory and
commit every call on its own. The provisioning saga relies on that:
each of its steps is individually atomic and nothing spans the whole
run, which is why a failure is undone by compensation instead of a
transaction rollback.
"""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hatchery.core.database import get_session_factory
from hatchery.modules.catalog.models import (
    DomainType,
    MigrationStatus,
    Verification,
    Workspace,
    WorkspaceDomain,
)


SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


class WorkspaceRepository:
    """Repository for Workspace and WorkspaceDomain rows."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self.session_factory = session_factory

    async def get_by_id(self, workspace_id: UUID) -> Workspace | None:
        async with self.session_factory() as session:
            return await session.get(Workspace, workspace_id)

    async def get_by_slug(self, slug: str) -> Workspace | None:
        """Get a workspace by slug, whatever its migration status.

        Args:
            slug: The workspace slug

        Returns:
            Workspace if found, None otherwise
        """
        async with self.session_factory() as session:
            result = await session.execute(select(Workspace).where(Workspace.slug == slug))
            return result.scalar_one_or_none()

    async def get_by_domain(self, domain: str) -> tuple[Workspace, WorkspaceDomain] | None:
        """Find the workspace a hostname belongs to.

        Args:
            domain: Lowercased hostname without port

        Returns:
            Tuple of (workspace, domain row) if mapped, None otherwise
        """
        async with self.session_factory() as session:
            stmt = (
                select(Workspace, WorkspaceDomain)
                .join(WorkspaceDomain, WorkspaceDomain.workspace_id == Workspace.id)
                .where(WorkspaceDomain.domain == domain)
            )
            row = (await session.execute(stmt)).first()
            if row is None:
                return None
            return row[0], row[1]

    async def create(
        self,
        workspace_id: UUID,
        name: str,
        slug: str,
        region: str,
        migration_status: MigrationStatus = MigrationStatus.IN_PROGRESS,
    ) -> Workspace:
        """Insert a workspace row and commit.

        The unique constraint on slug is enforced here; a concurrent insert
        for the same slug surfaces as ``sqlalchemy.exc.IntegrityError``.

        Args:
            workspace_id: Pre-generated workspace id
            name: Display name
            slug: Validated slug
            region: Provider region hint
            migration_status: Initial status

        Returns:
            The created workspace
        """
        workspace = Workspace(
            id=workspace_id,
            name=name,
            slug=slug,
            region=region,
            migration_status=migration_status,
        )
        async with self.session_factory() as session:
            session.add(workspace)
            await session.commit()
        return workspace

    async def attach_resource(
        self,
        workspace_id: UUID,
        external_resource_id: str,
        primary_domain: str,
    ) -> None:
        """Record the provider resource and the primary subdomain together.

        Args:
            workspace_id: The workspace id
            external_resource_id: Provider project id
            primary_domain: Hostname such as ``acme.example.com``
        """
        async with self.session_factory() as session:
            await session.execute(
                update(Workspace)
                .where(Workspace.id == workspace_id)
                .values(external_resource_id=external_resource_id)
            )
            session.add(
                WorkspaceDomain(
                    workspace_id=workspace_id,
                    domain=primary_domain,
                    domain_type=DomainType.SUBDOMAIN,
                    is_primary=True,
                    verified=True,
                )
            )
            await session.commit()

    async def mark_completed(self, workspace_id: UUID) -> None:
        async with self.session_factory() as session:
            await session.execute(
                update(Workspace)
                .where(Workspace.id == workspace_id)
                .values(migration_status=MigrationStatus.COMPLETED)
            )
            await session.commit()

    async def delete(self, workspace_id: UUID) -> bool:
        """Delete a workspace row; its domains go with it via the cascade.

        Returns:
            True if a row was deleted
        """
        async with self.session_factory() as session:
            result = await session.execute(delete(Workspace).where(Workspace.id == workspace_id))
            await session.commit()
            return bool(result.rowcount)

    async def list_stale_in_progress(self, started_before: datetime) -> list[Workspace]:
        """List workspaces stuck in_progress since before a cutoff.

        A live saga finishes or rolls back within minutes. Rows older than
        that belong to a process that died mid-run.
        """
        async with self.session_factory() as session:
            result = await session.execute(
                select(Workspace).where(
                    Workspace.migration_status == MigrationStatus.IN_PROGRESS,
                    Workspace.created_at < started_before,
                )
            )
            return list(result.scalars().all())


class VerificationRepository:
    """Repository for Verification rows."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self.session_factory = session_factory

    async def upsert(self, identifier: str, value: str, expires_at: datetime) -> None:
        """Write a value for an identifier, replacing any earlier one.

        Replacing also resets the attempt counter, so a resent code starts
        with a clean slate.
        """
        stmt = insert(Verification).values(
            identifier=identifier,
            value=value,
            expires_at=expires_at,
            attempt_count=0,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Verification.identifier],
            set_={
                "value": stmt.excluded.value,
                "expires_at": stmt.excluded.expires_at,
                "attempt_count": 0,
            },
        )
        async with self.session_factory() as session:
            await session.execute(stmt)
            await session.commit()

    async def get_active(self, identifier: str, now: datetime) -> Verification | None:
        """Get the record for an identifier if it has not expired yet."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Verification).where(
                    Verification.identifier == identifier,
                    Verification.expires_at > now,
                )
            )
            return result.scalar_one_or_none()

    async def increment_attempts(self, record_id: UUID) -> int:
        """Count one failed guess against a record.

        Returns:
            The new attempt count, or 0 if the record is already gone
        """
        async with self.session_factory() as session:
            result = await session.execute(
                update(Verification)
                .where(Verification.id == record_id)
                .values(attempt_count=Verification.attempt_count + 1)
                .returning(Verification.attempt_count)
            )
            count = result.scalar_one_or_none()
            await session.commit()
            return count or 0

    async def delete(self, record_id: UUID) -> bool:
        """Delete a record by id.

        Returns:
            True if this call removed the row. Two callers racing to
            consume the same record see True exactly once.
        """
        async with self.session_factory() as session:
            result = await session.execute(
                delete(Verification).where(Verification.id == record_id)
            )
            await session.commit()
            return bool(result.rowcount)

    async def delete_expired(self, now: datetime) -> int:
        """Delete every record that has expired.

        Returns:
            Number of rows deleted
        """
        async with self.session_factory() as session:
            result = await session.execute(
                delete(Verification).where(Verification.expires_at <= now)
            )
            await session.commit()
            return result.rowcount or 0


WorkspaceRepo = Annotated[WorkspaceRepository, Depends()]
VerificationRepo = Annotated[VerificationRepository, Depends()]
