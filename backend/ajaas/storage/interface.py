"""Storage contract shared by the embedded and networked backends."""

from abc import ABC, abstractmethod

from ajaas.schemas import Schedule, ScheduleCreate


class StoreError(Exception):
    """Base exception for storage operations."""


class StoreClosedError(StoreError):
    """Raised when an operation is attempted on a closed store."""


class ScheduleStore(ABC):
    """Persists schedules and the token revocation ledger.

    Sensitive schedule fields are encrypted on write and decrypted on read;
    every Schedule returned to callers carries plaintext values.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables and indexes if missing. Idempotent."""

    # --- Revocation ledger ---

    @abstractmethod
    async def revoke_token(self, jti: str) -> None:
        """Record a revoked token. Revoking again refreshes revoked_at."""

    @abstractmethod
    async def is_token_revoked(self, jti: str) -> bool:
        """Check whether a token identifier is in the ledger."""

    @abstractmethod
    async def cleanup_revoked_tokens(self, older_than: int) -> int:
        """Delete entries revoked before older_than. Returns count removed."""

    # --- Schedules ---

    @abstractmethod
    async def create_schedule(self, schedule: ScheduleCreate) -> Schedule:
        """Persist a new schedule, assigning its id and created_at."""

    @abstractmethod
    async def get_schedule(self, schedule_id: str) -> Schedule | None:
        """Get a schedule by id."""

    @abstractmethod
    async def get_schedules_due(self, before_timestamp: int) -> list[Schedule]:
        """Get every schedule with next_run <= before_timestamp.

        Backends supporting concurrent pollers claim the returned rows until
        release_claims() so no other poller receives them.
        """

    @abstractmethod
    async def release_claims(self) -> None:
        """Release rows claimed by the last get_schedules_due() call."""

    @abstractmethod
    async def update_schedule_next_run(self, schedule_id: str, next_run: int) -> None:
        """Overwrite next_run for a schedule."""

    @abstractmethod
    async def delete_schedule(self, schedule_id: str) -> bool:
        """Delete a schedule. Returns False if it did not exist."""

    @abstractmethod
    async def list_schedules(self, created_by: str | None = None) -> list[Schedule]:
        """List schedules, newest first, optionally filtered by owner."""

    # --- Lifecycle ---

    @abstractmethod
    async def close(self) -> None:
        """Release all resources. Idempotent."""
