"""create_catalog_tables

Revision ID: 3f9a1c2e7b40
Revises:
Create Date: 2026-10-17 00:01:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "3f9a1c2e7b40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        "workspace",
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("slug", sa.String(length=63), nullable=False),
        sa.Column("external_resource_id", sa.String(length=128), nullable=True),
        sa.Column("region", sa.String(length=64), nullable=False),
        sa.Column("migration_status", sa.String(length=20), nullable=False),
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_workspace_id"), "workspace", ["id"], unique=False)
    op.create_index(op.f("ix_workspace_slug"), "workspace", ["slug"], unique=True)
    # The reconciliation job scans for stale in_progress rows
    op.create_index(
        "ix_workspace_status_created",
        "workspace",
        ["migration_status", "created_at"],
        unique=False,
    )

    op.create_table(
        "workspace_domain",
        sa.Column("workspace_id", sa.Uuid(), nullable=False),
        sa.Column("domain", sa.String(length=255), nullable=False),
        sa.Column("domain_type", sa.String(length=20), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False),
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["workspace_id"],
            ["workspace.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("domain"),
    )
    op.create_index(op.f("ix_workspace_domain_id"), "workspace_domain", ["id"], unique=False)
    op.create_index(
        op.f("ix_workspace_domain_workspace_id"),
        "workspace_domain",
        ["workspace_id"],
        unique=False,
    )

    op.create_table(
        "verification",
        sa.Column("identifier", sa.String(length=320), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_verification_id"), "verification", ["id"], unique=False)
    op.create_index(
        op.f("ix_verification_identifier"),
        "verification",
        ["identifier"],
        unique=True,
    )
    op.create_index(
        "ix_verification_expires_at",
        "verification",
        ["expires_at"],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("ix_verification_expires_at", table_name="verification")
    op.drop_index(op.f("ix_verification_identifier"), table_name="verification")
    op.drop_index(op.f("ix_verification_id"), table_name="verification")
    op.drop_table("verification")

    op.drop_index(op.f("ix_workspace_domain_workspace_id"), table_name="workspace_domain")
    op.drop_index(op.f("ix_workspace_domain_id"), table_name="workspace_domain")
    op.drop_table("workspace_domain")

    op.drop_index("ix_workspace_status_created", table_name="workspace")
    op.drop_index(op.f("ix_workspace_slug"), table_name="workspace")
    op.drop_index(op.f("ix_workspace_id"), table_name="workspace")
    op.drop_table("workspace")
