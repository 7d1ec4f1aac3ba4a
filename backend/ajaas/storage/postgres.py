"""PostgreSQL schedule store with row claiming for concurrent pollers.

get_schedules_due() locks the due rows with ``FOR UPDATE SKIP LOCKED`` inside
a claim transaction held on its own pooled connection:

- rows locked by another poller are skipped, so two pollers never receive
  the same due schedule at the same time
- next_run updates for claimed rows run inside the claim transaction
- release_claims() commits; if the process dies first, the server rolls the
  transaction back when the connection drops and the rows become due again
"""

import asyncio

from sqlalchemy import Select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from ajaas.core.logging import get_logger
from ajaas.schemas import Schedule
from ajaas.services.crypto import FieldCodec
from ajaas.storage.models import ScheduleRecord
from ajaas.storage.sql import SQLAlchemyScheduleStore

logger = get_logger("storage.postgres")

POSTGRES_SCHEMES = ("postgresql://", "postgres://", "postgresql+asyncpg://")

DEFAULT_POOL_SIZE = 10
# Seconds to wait for a pooled connection before failing
DEFAULT_POOL_TIMEOUT = 5.0
DEFAULT_POOL_RECYCLE = 1800


def is_postgres_url(url: str) -> bool:
    return url.startswith(POSTGRES_SCHEMES)


def asyncpg_url(url: str) -> str:
    """Convert postgres:// or postgresql:// URLs to the asyncpg driver form."""
    if url.startswith("postgresql+asyncpg://"):
        return url
    if url.startswith("postgres://"):
        return "postgresql+asyncpg://" + url[len("postgres://") :]
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://") :]
    raise ValueError(f"Not a PostgreSQL URL: {url}")


class PostgresScheduleStore(SQLAlchemyScheduleStore):
    """Pooled store supporting multiple scheduler processes."""

    _insert = staticmethod(pg_insert)

    def __init__(
        self,
        url: str,
        codec: FieldCodec | None = None,
        *,
        pool_size: int = DEFAULT_POOL_SIZE,
        pool_timeout: float = DEFAULT_POOL_TIMEOUT,
    ):
        engine = create_async_engine(
            asyncpg_url(url),
            pool_size=pool_size,
            max_overflow=0,
            pool_timeout=pool_timeout,
            pool_recycle=DEFAULT_POOL_RECYCLE,
            pool_pre_ping=True,
            connect_args={"timeout": pool_timeout},
        )
        super().__init__(engine, codec or FieldCodec(None))
        self._claim_session: AsyncSession | None = None
        self._claimed_ids: set[str] = set()
        self._claim_lock = asyncio.Lock()

    @property
    def claimed_ids(self) -> frozenset[str]:
        """Ids of schedules locked by the open claim transaction."""
        return frozenset(self._claimed_ids)

    def _due_query(self, before_timestamp: int) -> Select:
        return super()._due_query(before_timestamp).with_for_update(skip_locked=True)

    async def get_schedules_due(self, before_timestamp: int) -> list[Schedule]:
        self._ensure_open()
        # A claim left open by an interrupted cycle must not hold rows forever
        await self.release_claims()

        async with self._claim_lock:
            session = self._session_maker()
            try:
                result = await session.execute(self._due_query(before_timestamp))
                records = list(result.scalars().all())
                schedules = [self._to_schedule(record) for record in records]
            except BaseException:
                await session.rollback()
                await session.close()
                raise

            if not records:
                await session.commit()
                await session.close()
                return []

            self._claim_session = session
            self._claimed_ids = {record.id for record in records}
            logger.debug(f"Claimed {len(records)} due schedules")
            return schedules

    async def update_schedule_next_run(self, schedule_id: str, next_run: int) -> None:
        async with self._claim_lock:
            session = self._claim_session
            if session is not None and schedule_id in self._claimed_ids:
                # Savepoint keeps one failed update from aborting the whole claim
                async with session.begin_nested():
                    await session.execute(
                        update(ScheduleRecord)
                        .where(ScheduleRecord.id == schedule_id)
                        .values(next_run=next_run)
                    )
                return

        await super().update_schedule_next_run(schedule_id, next_run)

    async def release_claims(self) -> None:
        async with self._claim_lock:
            session = self._claim_session
            if session is None:
                return
            count = len(self._claimed_ids)
            self._claim_session = None
            self._claimed_ids = set()
            try:
                await session.commit()
            except BaseException:
                await session.rollback()
                raise
            finally:
                await session.close()
            logger.debug(f"Released {count} claimed schedules")

    async def close(self) -> None:
        if self._closed:
            return
        try:
            await self.release_claims()
        except Exception:
            logger.exception("Failed to release claimed schedules while closing")
        await super().close()
