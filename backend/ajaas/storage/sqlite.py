"""Embedded SQLite schedule store.

Uses a single shared connection and serializes every operation through one
lock. No rows are claimed by get_schedules_due(), so only one scheduler may
poll a given database file.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from ajaas.services.crypto import FieldCodec
from ajaas.storage.sql import SQLAlchemyScheduleStore

MEMORY_PATH = ":memory:"


def sqlite_url(path: str) -> str:
    """Build an aiosqlite URL from a file path, ':memory:' or a sqlite:// URL."""
    if path in ("", MEMORY_PATH):
        return "sqlite+aiosqlite://"
    if path.startswith("sqlite+aiosqlite://"):
        return path
    if path.startswith("sqlite://"):
        return "sqlite+aiosqlite://" + path[len("sqlite://") :]
    return f"sqlite+aiosqlite:///{path}"


class SQLiteScheduleStore(SQLAlchemyScheduleStore):
    """Single-connection store for single-process deployments."""

    _insert = staticmethod(sqlite_insert)

    def __init__(self, path: str = MEMORY_PATH, codec: FieldCodec | None = None):
        engine = create_async_engine(
            sqlite_url(path),
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        super().__init__(engine, codec or FieldCodec(None))
        self.path = path
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        async with self._lock:
            async with super()._session() as session:
                yield session

    async def initialize(self) -> None:
        async with self._lock:
            await super().initialize()

    async def close(self) -> None:
        async with self._lock:
            await super().close()
