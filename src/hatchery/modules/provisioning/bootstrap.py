"""Schema and first rows for a new tenant database.

Runs against the tenant connection string, never the catalog.
"""

import json
import secrets
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from importlib import resources
from uuid import UUID, uuid4

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from hatchery.config import settings
from hatchery.core.constants import (
    DEFAULT_BOARD_DESCRIPTION,
    DEFAULT_BOARD_NAME,
    DEFAULT_BOARD_SLUG,
    ONE_TIME_TOKEN_BYTES,
    OWNER_ROLE,
    STATEMENT_BREAKPOINT,
)
from hatchery.core.database import tenant_engine
from hatchery.core.errors import MigrationFailedError, SeedFailedError


logger = structlog.get_logger()

MIGRATION_FILE = "0000_tenant_schema.sql"

DEFAULT_PORTAL_CONFIG = {
    "features": {
        "publicView": True,
        "submissions": True,
        "comments": True,
        "voting": True,
    }
}
DEFAULT_AUTH_CONFIG = {
    "oauth": {"google": True, "github": True, "microsoft": False},
    "openSignup": True,
}

EngineFactory = Callable[[str], AbstractAsyncContextManager[AsyncEngine]]


@dataclass(frozen=True)
class TenantSeed:
    """Input for the initial tenant rows."""

    workspace_id: UUID
    name: str
    slug: str
    owner_email: str
    owner_name: str


def split_statements(sql: str) -> list[str]:
    """Split a migration payload on its breakpoint markers.

    Comment-only chunks and blank chunks are dropped.
    """
    statements = []
    for chunk in sql.split(STATEMENT_BREAKPOINT):
        lines = [line for line in chunk.strip().splitlines() if not line.lstrip().startswith("--")]
        statement = "\n".join(lines).strip()
        if statement:
            statements.append(statement)
    return statements


def load_migration_statements() -> list[str]:
    """Load the packaged tenant schema as an ordered list of statements."""
    sql = (
        resources.files("hatchery.modules.provisioning")
        .joinpath("migrations", MIGRATION_FILE)
        .read_text(encoding="utf-8")
    )
    return split_statements(sql)


class TenantBootstrapper:
    """Applies the tenant schema and writes the rows a workspace needs."""

    def __init__(
        self,
        engine_factory: EngineFactory = tenant_engine,
        statements: list[str] | None = None,
        one_time_token_ttl: timedelta | None = None,
    ) -> None:
        self.engine_factory = engine_factory
        self._statements = statements
        self.one_time_token_ttl = one_time_token_ttl or timedelta(
            seconds=settings.one_time_token_ttl_seconds
        )

    @property
    def statements(self) -> list[str]:
        if self._statements is None:
            self._statements = load_migration_statements()
        return self._statements

    async def run_migrations(self, connection_uri: str) -> None:
        """Apply the schema one statement at a time.

        Statements autocommit individually. A failure part way leaves a
        partial schema behind, which is fine because rollback deletes the
        whole database.

        Raises:
            MigrationFailedError: With the index of the failing statement
        """
        index = 0
        try:
            async with self.engine_factory(connection_uri) as engine:
                autocommit = engine.execution_options(isolation_level="AUTOCOMMIT")
                async with autocommit.connect() as conn:
                    for index, statement in enumerate(self.statements):
                        await conn.exec_driver_sql(statement)
        except (SQLAlchemyError, OSError) as exc:
            raise MigrationFailedError(
                details={"statement_index": index},
            ) from exc

        logger.info("tenant_migrations_applied", statements=len(self.statements))

    async def seed_initial_data(self, connection_uri: str, seed: TenantSeed) -> UUID:
        """Insert settings, owner user, owner membership and default board.

        All four rows are written in one transaction.

        Returns:
            The owner's user id

        Raises:
            SeedFailedError: If the transaction fails
        """
        user_id = uuid4()

        try:
            async with self.engine_factory(connection_uri) as engine, engine.begin() as conn:
                await conn.execute(
                    text(
                        'INSERT INTO "settings" '
                        '("id", "name", "slug", "created_at", "portal_config", '
                        '"auth_config", "branding_config") '
                        "VALUES (:id, :name, :slug, now(), :portal_config, "
                        ":auth_config, :branding_config)"
                    ),
                    {
                        "id": seed.workspace_id,
                        "name": seed.name,
                        "slug": seed.slug,
                        "portal_config": json.dumps(DEFAULT_PORTAL_CONFIG),
                        "auth_config": json.dumps(DEFAULT_AUTH_CONFIG),
                        "branding_config": json.dumps({}),
                    },
                )
                await conn.execute(
                    text(
                        'INSERT INTO "user" '
                        '("id", "name", "email", "email_verified", "created_at", "updated_at") '
                        "VALUES (:id, :name, :email, true, now(), now())"
                    ),
                    {
                        "id": user_id,
                        "name": seed.owner_name,
                        "email": seed.owner_email.lower(),
                    },
                )
                await conn.execute(
                    text(
                        'INSERT INTO "member" ("id", "user_id", "role", "created_at") '
                        "VALUES (:id, :user_id, :role, now())"
                    ),
                    {"id": uuid4(), "user_id": user_id, "role": OWNER_ROLE},
                )
                await conn.execute(
                    text(
                        'INSERT INTO "boards" '
                        '("id", "name", "slug", "description", "is_public", '
                        '"created_at", "updated_at") '
                        "VALUES (:id, :name, :slug, :description, true, now(), now())"
                    ),
                    {
                        "id": uuid4(),
                        "name": DEFAULT_BOARD_NAME,
                        "slug": DEFAULT_BOARD_SLUG,
                        "description": DEFAULT_BOARD_DESCRIPTION,
                    },
                )
        except (SQLAlchemyError, OSError) as exc:
            raise SeedFailedError(details={"workspace_id": str(seed.workspace_id)}) from exc

        logger.info("tenant_data_seeded", workspace_id=str(seed.workspace_id))
        return user_id

    async def issue_one_time_token(self, connection_uri: str, user_id: UUID) -> str:
        """Write a short-lived single-use login token for the owner.

        The tenant app redeems it on first load to start a session.

        Raises:
            SeedFailedError: If the token row cannot be written
        """
        token = secrets.token_urlsafe(ONE_TIME_TOKEN_BYTES)
        expires_at = datetime.now(UTC) + self.one_time_token_ttl

        try:
            async with self.engine_factory(connection_uri) as engine, engine.begin() as conn:
                await conn.execute(
                    text(
                        'INSERT INTO "one_time_token" ("id", "token", "user_id", "expires_at") '
                        "VALUES (:id, :token, :user_id, :expires_at)"
                    ),
                    {
                        "id": str(uuid4()),
                        "token": token,
                        "user_id": user_id,
                        "expires_at": expires_at,
                    },
                )
        except (SQLAlchemyError, OSError) as exc:
            raise SeedFailedError(
                "Failed to issue login token",
                details={"user_id": str(user_id)},
            ) from exc

        return token


def get_tenant_bootstrapper() -> TenantBootstrapper:
    """Dependency that provides a TenantBootstrapper."""
    return TenantBootstrapper()
