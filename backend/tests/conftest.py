"""Pytest configuration and fixtures for backend tests.

PostgreSQL Handling:
- If TEST_DATABASE_URL is set, Postgres store tests run against it
- Otherwise, if testcontainers is installed and Docker is available, a
  PostgreSQL container is started on first use
- If neither is available, tests marked ``postgres`` are skipped
"""

import os
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio

# Set test environment variables before importing ajaas modules
os.environ.setdefault("DATABASE_URL", ":memory:")
os.environ.setdefault("DATA_ENCRYPTION_KEY", "")
os.environ.setdefault("LOG_LEVEL", "INFO")

from ajaas.schemas import ScheduleCreate  # noqa: E402
from ajaas.services.crypto import FieldCodec, derive_key  # noqa: E402
from ajaas.storage import SQLiteScheduleStore  # noqa: E402

TEST_DATA_KEY = "test-data-encryption-key-32chars!"


# --- PostgreSQL Container Management ---

_container = None
_postgres_url: str | None = None
_postgres_checked = False


def _try_testcontainers() -> str | None:
    """Try to start PostgreSQL using testcontainers.

    Returns database URL if successful, None otherwise.
    """
    try:
        from testcontainers.postgres import PostgresContainer
    except ImportError:
        return None

    try:
        global _container
        _container = PostgresContainer(
            image="postgres:15-alpine",
            username="test",
            password="test",
            dbname="ajaas_test",
        )
        _container.start()
        url = _container.get_connection_url()
        return url.replace("postgresql+psycopg2://", "postgresql://")
    except Exception as e:
        import warnings

        warnings.warn(f"Testcontainers not available: {e}", stacklevel=2)
        if _container:
            try:
                _container.stop()
            except Exception:
                pass
            _container = None
        return None


def _get_postgres_url() -> str | None:
    """Get a PostgreSQL URL, preferring TEST_DATABASE_URL over testcontainers."""
    global _postgres_url, _postgres_checked

    if _postgres_checked:
        return _postgres_url
    _postgres_checked = True

    _postgres_url = os.environ.get("TEST_DATABASE_URL") or _try_testcontainers()
    return _postgres_url


def pytest_sessionfinish(session, exitstatus):
    """Clean up testcontainers when tests finish."""
    global _container
    if _container:
        try:
            _container.stop()
        except Exception:
            pass
        _container = None


@pytest.fixture
def postgres_url() -> str:
    url = _get_postgres_url()
    if not url:
        pytest.skip("PostgreSQL not available (set TEST_DATABASE_URL or install testcontainers)")
    return url


# --- Schedule Fixtures ---


def make_schedule_create(**overrides: Any) -> ScheduleCreate:
    """Build a ScheduleCreate with sensible defaults."""
    fields: dict[str, Any] = {
        "recipient": "Rachel",
        "recipient_email": "rachel@example.com",
        "endpoint": "weekly",
        "cron": "0 17 * * FRI",
        "next_run": 2_000_000_000,
        "delivery_method": "email",
        "created_by": "admin@example.com",
    }
    fields.update(overrides)
    return ScheduleCreate(**fields)


@pytest.fixture
def schedule_factory():
    return make_schedule_create


@pytest.fixture
def data_key() -> bytes:
    return derive_key(TEST_DATA_KEY)


@pytest_asyncio.fixture
async def store() -> AsyncGenerator[SQLiteScheduleStore, None]:
    """In-memory SQLite store without encryption."""
    store = SQLiteScheduleStore(":memory:")
    await store.initialize()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def encrypted_store(data_key: bytes) -> AsyncGenerator[SQLiteScheduleStore, None]:
    """In-memory SQLite store with field encryption enabled."""
    store = SQLiteScheduleStore(":memory:", FieldCodec(data_key))
    await store.initialize()
    yield store
    await store.close()
