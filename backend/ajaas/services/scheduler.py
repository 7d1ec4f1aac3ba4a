"""Scheduler - polls for due schedules and dispatches them."""

import asyncio
import time
from collections.abc import Callable
from datetime import UTC, datetime

from ajaas.core.logging import get_logger
from ajaas.delivery import (
    EmailDelivery,
    HTTPWebhookDelivery,
    WebhookDelivery,
    WebhookPayload,
)
from ajaas.schemas import Schedule
from ajaas.services.cron import calculate_next_run
from ajaas.services.messages import MessageService
from ajaas.storage import ScheduleStore

logger = get_logger("scheduler")

DEFAULT_POLL_INTERVAL_SECONDS = 60.0
DEFAULT_REVOCATION_RETENTION_SECONDS = 30 * 24 * 60 * 60  # 30 days
DEFAULT_REVOCATION_CLEANUP_CADENCE_SECONDS = 6 * 60 * 60  # 6 hours


class Scheduler:
    """Dispatches due schedules at most once per occurrence.

    One poll runs immediately on start() and then once per poll interval.
    Each poll:

    1. purges the revocation ledger if the cleanup cadence has elapsed since
       the last successful cleanup
    2. fetches (and, on Postgres, claims) due schedules
    3. for each schedule, sequentially: builds the message, delivers it and
       advances next_run from the cron expression, whether or not delivery
       succeeded

    Failures are logged and isolated per concern; nothing a single schedule
    does can stop the loop.
    """

    def __init__(
        self,
        store: ScheduleStore,
        message_service: MessageService,
        email_delivery: EmailDelivery,
        webhook_delivery: WebhookDelivery | None = None,
        *,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        revocation_retention_seconds: int = DEFAULT_REVOCATION_RETENTION_SECONDS,
        revocation_cleanup_cadence_seconds: float = DEFAULT_REVOCATION_CLEANUP_CADENCE_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._messages = message_service
        self._email_delivery = email_delivery
        self._webhook_delivery = webhook_delivery or HTTPWebhookDelivery()
        self.poll_interval_seconds = poll_interval_seconds
        self.revocation_retention_seconds = revocation_retention_seconds
        self.revocation_cleanup_cadence_seconds = revocation_cleanup_cadence_seconds
        self._clock = clock

        self._last_revocation_cleanup: float | None = None
        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()
        self._polling = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start polling: once immediately, then every poll interval."""
        if self.running:
            logger.warning("Scheduler is already running")
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(self._poll_loop(), name="ajaas-scheduler")
        logger.info(f"Scheduler started, polling every {self.poll_interval_seconds}s")

    async def stop(self) -> None:
        """Stop polling. A poll already in progress is allowed to finish."""
        task = self._task
        if task is None:
            return

        self._stop_event.set()
        self._task = None
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Scheduler stopped")

    async def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            started = time.monotonic()
            try:
                await self.poll_once()
            except Exception:
                logger.exception("Unexpected error in scheduler poll")

            delay = max(0.0, self.poll_interval_seconds - (time.monotonic() - started))
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            except TimeoutError:
                pass

    async def poll_once(self) -> None:
        """Run a single poll cycle. Skipped if another cycle is still running."""
        if self._polling:
            logger.warning("Previous poll still in progress, skipping this tick")
            return

        self._polling = True
        try:
            now = self._clock()
            now_seconds = int(now)

            await self._maybe_cleanup_revocations(now, now_seconds)

            try:
                due = await self._store.get_schedules_due(now_seconds)
            except Exception:
                logger.exception("Failed to fetch due schedules")
                return

            if due:
                logger.info(f"Processing {len(due)} due schedules")

            try:
                for schedule in due:
                    await self._execute_schedule(schedule, now)
            finally:
                try:
                    await self._store.release_claims()
                except Exception:
                    logger.exception("Failed to release claimed schedules")
        finally:
            self._polling = False

    async def _maybe_cleanup_revocations(self, now: float, now_seconds: int) -> None:
        last = self._last_revocation_cleanup
        if last is not None and now - last < self.revocation_cleanup_cadence_seconds:
            return

        older_than = now_seconds - self.revocation_retention_seconds
        try:
            removed = await self._store.cleanup_revoked_tokens(older_than)
        except Exception:
            # Timestamp is not recorded, so the next poll retries
            logger.exception("Failed to cleanup revoked tokens")
            return

        self._last_revocation_cleanup = now
        if removed > 0:
            logger.info(f"Cleaned up {removed} expired token revocations")

    async def _execute_schedule(self, schedule: Schedule, now: float) -> None:
        try:
            message = self._messages.for_schedule(schedule)
            delivered = await self._deliver(schedule, message)
            if delivered:
                logger.info(f"Executed schedule {schedule.id} for {schedule.recipient}")
            else:
                logger.warning(f"Delivery failed for schedule {schedule.id}, not retrying")
        except Exception:
            logger.exception(f"Failed to execute schedule {schedule.id}")

        # Advance regardless of delivery outcome: at most one attempt per occurrence
        next_run = calculate_next_run(schedule.cron, base=now)
        if next_run is None:
            logger.warning(
                f"Schedule {schedule.id} has an invalid cron expression {schedule.cron!r}; "
                "next_run left unchanged, it will be due again on the next poll"
            )
            return

        try:
            await self._store.update_schedule_next_run(schedule.id, next_run)
        except Exception:
            logger.exception(f"Failed to update next run for schedule {schedule.id}")
            return

        logger.info(
            f"Next run for {schedule.id}: {datetime.fromtimestamp(next_run, tz=UTC).isoformat()}"
        )

    async def _deliver(self, schedule: Schedule, message: str) -> bool:
        if schedule.delivery_method == "webhook":
            if schedule.webhook_url:
                return await self._webhook_delivery.send_message(
                    schedule.webhook_url,
                    build_webhook_payload(schedule, message),
                    schedule.webhook_secret,
                )
            logger.warning(f"Schedule {schedule.id} has no webhook URL, falling back to email")

        return await self._email_delivery.send_message(
            schedule.recipient_email,
            schedule.recipient,
            message,
        )


def build_webhook_payload(schedule: Schedule, message: str) -> WebhookPayload:
    """Webhook body; optional keys are omitted when unset."""
    payload: WebhookPayload = {
        "recipient": schedule.recipient,
        "message": message,
        "endpoint": schedule.endpoint,
        **({"messageType": schedule.message_type} if schedule.message_type else {}),
        **({"from": schedule.from_name} if schedule.from_name else {}),
        "timestamp": datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }
    return payload
