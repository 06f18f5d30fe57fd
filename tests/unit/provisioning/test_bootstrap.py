"""Tests for the tenant bootstrapper."""

import json
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import OperationalError

from hatchery.core.errors import MigrationFailedError, SeedFailedError
from hatchery.modules.provisioning.bootstrap import (
    TenantBootstrapper,
    TenantSeed,
    load_migration_statements,
    split_statements,
)


def db_error() -> OperationalError:
    return OperationalError("INSERT", {}, Exception("connection reset"))


@pytest.fixture
def conn() -> MagicMock:
    connection = MagicMock()
    connection.execute = AsyncMock()
    connection.exec_driver_sql = AsyncMock()
    return connection


@pytest.fixture
def engine(conn: MagicMock) -> MagicMock:
    engine = MagicMock()
    engine.begin.return_value.__aenter__.return_value = conn
    autocommit = MagicMock()
    autocommit.connect.return_value.__aenter__.return_value = conn
    engine.execution_options.return_value = autocommit
    return engine


@pytest.fixture
def opened() -> list[str]:
    return []


@pytest.fixture
def bootstrapper(engine: MagicMock, opened: list[str]) -> TenantBootstrapper:
    @asynccontextmanager
    async def engine_factory(uri: str):
        opened.append(uri)
        yield engine

    return TenantBootstrapper(
        engine_factory=engine_factory,
        statements=["CREATE TABLE a (id int)", "CREATE TABLE b (id int)", "CREATE INDEX c"],
    )


@pytest.fixture
def seed() -> TenantSeed:
    return TenantSeed(
        workspace_id=uuid4(),
        name="Acme",
        slug="acme",
        owner_email="Owner@Acme.com",
        owner_name="Acme",
    )


class TestStatements:
    """Tests for migration payload parsing."""

    def test_split_on_breakpoints(self):
        sql = (
            "CREATE TABLE a (id int);\n--> statement-breakpoint\n"
            "-- comment only\n--> statement-breakpoint\n"
            "\n--> statement-breakpoint\n"
            "-- leading comment\nCREATE TABLE b (id int);"
        )

        assert split_statements(sql) == ["CREATE TABLE a (id int);", "CREATE TABLE b (id int);"]

    def test_packaged_schema_loads(self):
        statements = load_migration_statements()

        assert statements[0].startswith('CREATE TABLE "settings"')
        joined = "\n".join(statements)
        for table in ("user", "member", "boards", "one_time_token"):
            assert f'CREATE TABLE "{table}"' in joined
        assert not any("statement-breakpoint" in s for s in statements)
        # The driver treats % as a parameter marker
        assert "%" not in joined


class TestRunMigrations:
    """Tests for TenantBootstrapper.run_migrations."""

    async def test_runs_statements_in_order(self, bootstrapper, engine, conn, opened):
        await bootstrapper.run_migrations("postgresql://tenant")

        assert opened == ["postgresql://tenant"]
        engine.execution_options.assert_called_once_with(isolation_level="AUTOCOMMIT")
        executed = [c.args[0] for c in conn.exec_driver_sql.await_args_list]
        assert executed == bootstrapper.statements

    async def test_failure_reports_statement_index(self, bootstrapper, conn):
        conn.exec_driver_sql.side_effect = [None, db_error(), None]

        with pytest.raises(MigrationFailedError) as exc_info:
            await bootstrapper.run_migrations("postgresql://tenant")

        assert exc_info.value.details["statement_index"] == 1
        assert isinstance(exc_info.value.__cause__, OperationalError)
        assert conn.exec_driver_sql.await_count == 2


class TestSeedInitialData:
    """Tests for TenantBootstrapper.seed_initial_data."""

    async def test_inserts_all_rows_in_one_transaction(self, bootstrapper, engine, conn, seed):
        user_id = await bootstrapper.seed_initial_data("postgresql://tenant", seed)

        assert isinstance(user_id, UUID)
        engine.begin.assert_called_once()
        assert conn.execute.await_count == 4

        statements = [str(c.args[0]) for c in conn.execute.await_args_list]
        params = [c.args[1] for c in conn.execute.await_args_list]
        assert 'INSERT INTO "settings"' in statements[0]
        assert 'INSERT INTO "user"' in statements[1]
        assert 'INSERT INTO "member"' in statements[2]
        assert 'INSERT INTO "boards"' in statements[3]

        assert params[0]["id"] == seed.workspace_id
        assert json.loads(params[0]["portal_config"])["features"]["voting"] is True
        assert params[1]["email"] == "owner@acme.com"
        assert params[1]["id"] == user_id
        assert params[2] == {"id": params[2]["id"], "user_id": user_id, "role": "owner"}
        assert params[3]["slug"] == "feature-requests"

    async def test_failure_raises_seed_failed(self, bootstrapper, conn, seed):
        conn.execute.side_effect = [None, None, db_error()]

        with pytest.raises(SeedFailedError):
            await bootstrapper.seed_initial_data("postgresql://tenant", seed)


class TestIssueOneTimeToken:
    """Tests for TenantBootstrapper.issue_one_time_token."""

    async def test_writes_token_row(self, bootstrapper, conn):
        user_id = uuid4()

        token = await bootstrapper.issue_one_time_token("postgresql://tenant", user_id)

        params = conn.execute.await_args.args[1]
        assert params["token"] == token
        assert params["user_id"] == user_id
        assert len(token) >= 32

    async def test_failure_raises_seed_failed(self, bootstrapper, conn):
        conn.execute.side_effect = db_error()

        with pytest.raises(SeedFailedError):
            await bootstrapper.issue_one_time_token("postgresql://tenant", uuid4())
