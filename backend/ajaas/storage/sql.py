"""Shared SQLAlchemy implementation of the schedule store.

Concrete backends supply the engine, the dialect-specific upsert and, where
supported, row claiming for the due-set query.
"""

import secrets
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import Select, delete, inspect, select, text, update
from sqlalchemy.engine import Connection, CursorResult
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ajaas.core.logging import get_logger
from ajaas.schemas import Schedule, ScheduleCreate
from ajaas.services.crypto import FieldCodec
from ajaas.storage.interface import ScheduleStore, StoreClosedError
from ajaas.storage.models import Base, RevokedTokenRecord, ScheduleRecord

logger = get_logger("storage")

# Columns added after the first schema version
_LATE_SCHEDULE_COLUMNS = ("webhook_url", "webhook_secret")


def generate_schedule_id() -> str:
    """Generate an opaque 16-hex-character schedule id."""
    return secrets.token_hex(8)


def _now() -> int:
    return int(time.time())


def _migrate_schedule_columns(sync_conn: Connection) -> None:
    """Add webhook columns to schedules tables created before webhook delivery."""
    existing = {column["name"] for column in inspect(sync_conn).get_columns("schedules")}
    for column in _LATE_SCHEDULE_COLUMNS:
        if column not in existing:
            logger.info(f"Adding missing column schedules.{column}")
            sync_conn.execute(text(f"ALTER TABLE schedules ADD COLUMN {column} TEXT"))


class SQLAlchemyScheduleStore(ScheduleStore):
    """Schedule store over an async SQLAlchemy engine."""

    # Dialect-specific insert construct supporting on_conflict_do_update
    _insert: Callable[..., Any]

    def __init__(self, engine: AsyncEngine, codec: FieldCodec):
        self._engine = engine
        self._codec = codec
        self._session_maker = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._initialized = False
        self._closed = False

    # --- Session handling ---

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreClosedError(f"{type(self).__name__} is closed")

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Session scoped to a single store operation; commits on success."""
        self._ensure_open()
        async with self._session_maker() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                # Includes asyncio.CancelledError so the rollback always runs
                await session.rollback()
                raise

    async def initialize(self) -> None:
        if self._initialized:
            return
        self._ensure_open()
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            await conn.run_sync(_migrate_schedule_columns)
        self._initialized = True

    # --- Row mapping ---

    def _to_schedule(self, record: ScheduleRecord) -> Schedule:
        return Schedule(
            id=record.id,
            recipient=record.recipient,
            recipient_email=self._codec.decode(record.recipient_email),
            endpoint=record.endpoint,
            message_type=record.message_type or None,
            from_name=record.from_name or None,
            cron=record.cron,
            next_run=record.next_run,
            delivery_method=record.delivery_method,
            webhook_url=self._codec.decode(record.webhook_url) if record.webhook_url else None,
            webhook_secret=(
                self._codec.decode(record.webhook_secret) if record.webhook_secret else None
            ),
            created_by=record.created_by,
            created_at=record.created_at,
        )

    def _to_record(self, schedule_id: str, created_at: int, fields: ScheduleCreate) -> ScheduleRecord:
        return ScheduleRecord(
            id=schedule_id,
            recipient=fields.recipient,
            recipient_email=self._codec.encode(fields.recipient_email),
            endpoint=fields.endpoint,
            message_type=fields.message_type or None,
            from_name=fields.from_name or None,
            cron=fields.cron,
            next_run=fields.next_run,
            delivery_method=fields.delivery_method,
            webhook_url=self._codec.encode(fields.webhook_url) if fields.webhook_url else None,
            webhook_secret=(
                self._codec.encode(fields.webhook_secret) if fields.webhook_secret else None
            ),
            created_by=fields.created_by,
            created_at=created_at,
        )

    # --- Revocation ledger ---

    async def revoke_token(self, jti: str) -> None:
        stmt = self._insert(RevokedTokenRecord).values(jti=jti, revoked_at=_now())
        stmt = stmt.on_conflict_do_update(
            index_elements=["jti"],
            set_={"revoked_at": stmt.excluded.revoked_at},
        )
        async with self._session() as session:
            await session.execute(stmt)

    async def is_token_revoked(self, jti: str) -> bool:
        async with self._session() as session:
            result = await session.execute(
                select(RevokedTokenRecord.jti).where(RevokedTokenRecord.jti == jti)
            )
            return result.scalar_one_or_none() is not None

    async def cleanup_revoked_tokens(self, older_than: int) -> int:
        async with self._session() as session:
            result: CursorResult[Any] = await session.execute(  # type: ignore[assignment]
                delete(RevokedTokenRecord).where(RevokedTokenRecord.revoked_at < older_than)
            )
            return result.rowcount

    # --- Schedules ---

    async def create_schedule(self, schedule: ScheduleCreate) -> Schedule:
        schedule_id = generate_schedule_id()
        created_at = _now()
        record = self._to_record(schedule_id, created_at, schedule)
        async with self._session() as session:
            session.add(record)
        # Same mapping as reads, so optional "" comes back as None
        return self._to_schedule(record)

    async def get_schedule(self, schedule_id: str) -> Schedule | None:
        async with self._session() as session:
            record = await session.get(ScheduleRecord, schedule_id)
            return self._to_schedule(record) if record else None

    def _due_query(self, before_timestamp: int) -> Select:
        return (
            select(ScheduleRecord)
            .where(ScheduleRecord.next_run <= before_timestamp)
            .order_by(ScheduleRecord.next_run)
        )

    async def get_schedules_due(self, before_timestamp: int) -> list[Schedule]:
        async with self._session() as session:
            result = await session.execute(self._due_query(before_timestamp))
            return [self._to_schedule(record) for record in result.scalars().all()]

    async def release_claims(self) -> None:
        """Nothing is claimed by the default due-set query."""

    async def update_schedule_next_run(self, schedule_id: str, next_run: int) -> None:
        async with self._session() as session:
            await session.execute(
                update(ScheduleRecord)
                .where(ScheduleRecord.id == schedule_id)
                .values(next_run=next_run)
            )

    async def delete_schedule(self, schedule_id: str) -> bool:
        async with self._session() as session:
            result: CursorResult[Any] = await session.execute(  # type: ignore[assignment]
                delete(ScheduleRecord).where(ScheduleRecord.id == schedule_id)
            )
            return result.rowcount > 0

    async def list_schedules(self, created_by: str | None = None) -> list[Schedule]:
        query = select(ScheduleRecord).order_by(ScheduleRecord.created_at.desc())
        if created_by:
            query = query.where(ScheduleRecord.created_by == created_by)
        async with self._session() as session:
            result = await session.execute(query)
            return [self._to_schedule(record) for record in result.scalars().all()]

    # --- Lifecycle ---

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._engine.dispose()
        logger.info(f"{type(self).__name__} closed")
