"""Database layer - catalog sessions, tenant connections, base models."""

from hatchery.core.database.base import Base, CreatedAtMixin, UUIDMixin
from hatchery.core.database.session import (
    async_engine,
    async_session_factory,
    get_db,
    get_session_factory,
)
from hatchery.core.database.tenant import probe_connection, tenant_engine, to_async_url


__all__ = [
    "Base",
    "CreatedAtMixin",
    "UUIDMixin",
    "async_engine",
    "async_session_factory",
    "get_db",
    "get_session_factory",
    "probe_connection",
    "tenant_engine",
    "to_async_url",
]
