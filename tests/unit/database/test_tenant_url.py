"""Tests for tenant connection string handling."""

from hatchery.core.database import to_async_url


def test_sslmode_moves_to_connect_args():
    url, connect_args = to_async_url(
        "postgresql://owner:pw@ep-1.neon.test/neondb?sslmode=require&channel_binding=require"
    )

    assert url.drivername == "postgresql+asyncpg"
    assert url.host == "ep-1.neon.test"
    assert url.database == "neondb"
    assert dict(url.query) == {}
    assert connect_args == {"ssl": "require"}


def test_plain_url_has_no_ssl():
    url, connect_args = to_async_url("postgres://owner:pw@localhost:5432/tenant")

    assert url.drivername == "postgresql+asyncpg"
    assert url.port == 5432
    assert connect_args == {}


def test_disabled_ssl_is_dropped():
    _, connect_args = to_async_url("postgresql://owner:pw@localhost/tenant?sslmode=disable")

    assert connect_args == {}
