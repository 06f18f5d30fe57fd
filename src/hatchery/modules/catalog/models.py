"""Catalog database models.

The catalog is the shared, cross-tenant database. It only knows which
workspaces exist, where their databases live and which hosts map to
them. Everything inside a workspace lives in that workspace's own
tenant database.
"""

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hatchery.core.constants import (
    DEFAULT_REGION,
    MAX_DOMAIN_LENGTH,
    MAX_IDENTIFIER_LENGTH,
    MAX_REGION_LENGTH,
    MAX_RESOURCE_ID_LENGTH,
    SLUG_COLUMN_LENGTH,
)
from hatchery.core.database.base import Base, CreatedAtMixin, UUIDMixin


class MigrationStatus(StrEnum):
    """Provisioning progress of a workspace.

    Only ever moves forward. A failed run deletes the row instead of
    recording a terminal failure, so the slug is free again at once.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class DomainType(StrEnum):
    """How a hostname is attached to a workspace."""

    SUBDOMAIN = "subdomain"
    CUSTOM = "custom"


class Workspace(Base, UUIDMixin, CreatedAtMixin):
    """One row per tenant.

    Attributes:
        name: Display name chosen at sign-up
        slug: Globally unique URL identifier, also the default subdomain
        external_resource_id: Provider project id, set once the database exists
        region: Provider region the database was requested in
        migration_status: pending, in_progress or completed
    """

    __tablename__ = "workspace"

    name: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    slug: Mapped[str] = mapped_column(
        String(SLUG_COLUMN_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )
    external_resource_id: Mapped[str | None] = mapped_column(
        String(MAX_RESOURCE_ID_LENGTH),
        nullable=True,
    )
    region: Mapped[str] = mapped_column(
        String(MAX_REGION_LENGTH),
        default=DEFAULT_REGION,
        nullable=False,
    )
    migration_status: Mapped[str] = mapped_column(
        String(20),
        default=MigrationStatus.PENDING,
        nullable=False,
    )

    domains: Mapped[list["WorkspaceDomain"]] = relationship(
        back_populates="workspace",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<Workspace(id={self.id}, slug={self.slug}, "
            f"migration_status={self.migration_status})>"
        )


class WorkspaceDomain(Base, UUIDMixin, CreatedAtMixin):
    """Maps a hostname to a workspace.

    Exactly one domain per workspace is primary; the primary subdomain is
    written by the provisioning saga.
    """

    __tablename__ = "workspace_domain"

    workspace_id: Mapped[UUID] = mapped_column(
        ForeignKey("workspace.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    domain: Mapped[str] = mapped_column(
        String(MAX_DOMAIN_LENGTH),
        nullable=False,
        unique=True,
    )
    domain_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    is_primary: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    verified: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    workspace: Mapped[Workspace] = relationship(back_populates="domains")

    def __repr__(self) -> str:
        return f"<WorkspaceDomain(domain={self.domain}, workspace_id={self.workspace_id})>"


class Verification(Base, UUIDMixin, CreatedAtMixin):
    """Short-lived code or token keyed by a composite identifier.

    Identifiers look like ``workspace-creation:<email>`` for sign-up codes
    and ``verified:<email>`` for provisioning tokens. The identifier is
    unique: writing it again replaces the previous value, which is how a
    resend invalidates the earlier code.

    Attributes:
        identifier: Purpose-prefixed key
        value: The 6-digit code or the opaque provisioning token
        expires_at: When the value stops being accepted
        attempt_count: Failed guesses against the current value
    """

    __tablename__ = "verification"

    identifier: Mapped[str] = mapped_column(
        String(MAX_IDENTIFIER_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )
    value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    attempt_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Verification(identifier={self.identifier}, expires_at={self.expires_at})>"
