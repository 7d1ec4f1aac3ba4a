"""Storage backend selection."""

from ajaas.core.logging import get_logger
from ajaas.services.crypto import FieldCodec
from ajaas.storage.interface import ScheduleStore
from ajaas.storage.postgres import (
    DEFAULT_POOL_SIZE,
    DEFAULT_POOL_TIMEOUT,
    PostgresScheduleStore,
    is_postgres_url,
)
from ajaas.storage.sqlite import SQLiteScheduleStore

logger = get_logger("storage.factory")


async def create_store(
    connection_url: str,
    data_encryption_key: str | None = None,
    *,
    pool_size: int = DEFAULT_POOL_SIZE,
    pool_timeout: float = DEFAULT_POOL_TIMEOUT,
) -> ScheduleStore:
    """Create and initialize a store for the given connection string.

    - ``postgresql://`` / ``postgres://`` URLs create a PostgresScheduleStore
    - anything else is a SQLite path (or ``:memory:``)
    """
    codec = FieldCodec.from_secret(data_encryption_key)

    store: ScheduleStore
    if is_postgres_url(connection_url):
        store = PostgresScheduleStore(
            connection_url,
            codec,
            pool_size=pool_size,
            pool_timeout=pool_timeout,
        )
        backend = "postgres"
    else:
        store = SQLiteScheduleStore(connection_url, codec)
        backend = "sqlite"

    try:
        await store.initialize()
    except Exception:
        await store.close()
        raise

    logger.info(
        f"Storage initialized (backend={backend}, encryption={'on' if codec.enabled else 'off'})"
    )
    return store
