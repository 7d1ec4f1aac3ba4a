"""AJaaS worker - runs the scheduler against the configured store."""

import asyncio
import signal

from ajaas.core import Settings, get_settings, setup_logging
from ajaas.core.logging import get_logger
from ajaas.delivery import (
    ConsoleEmailDelivery,
    EmailDelivery,
    HTTPWebhookDelivery,
    SMTPConfig,
    SMTPEmailDelivery,
)
from ajaas.services.messages import MessageService
from ajaas.services.scheduler import Scheduler
from ajaas.storage import ScheduleStore, create_store

logger = get_logger("worker")


def build_email_delivery(settings: Settings) -> EmailDelivery:
    """SMTP delivery when a host is configured, console logging otherwise."""
    if not settings.smtp_host:
        logger.info("SMTP_HOST not set, emails will be logged to the console")
        return ConsoleEmailDelivery()
    return SMTPEmailDelivery(
        SMTPConfig(
            host=settings.smtp_host,
            port=settings.smtp_port,
            secure=settings.smtp_secure,
            user=settings.smtp_user or None,
            password=settings.smtp_pass or None,
            from_address=settings.smtp_from,
        )
    )


def build_scheduler(settings: Settings, store: ScheduleStore) -> Scheduler:
    return Scheduler(
        store,
        MessageService(include_tough_love=settings.tough_love_enabled),
        build_email_delivery(settings),
        HTTPWebhookDelivery(timeout=settings.webhook_timeout_seconds),
        poll_interval_seconds=settings.schedule_poll_interval_seconds,
        revocation_retention_seconds=settings.revocation_retention_seconds,
        revocation_cleanup_cadence_seconds=settings.revocation_cleanup_cadence_seconds,
    )


async def serve(settings: Settings, stop_event: asyncio.Event | None = None) -> None:
    """Run the scheduler until stop_event is set (or SIGINT/SIGTERM)."""
    stop_event = stop_event or asyncio.Event()

    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform/loop; rely on KeyboardInterrupt
            pass

    try:
        logger.info(f"Starting {settings.app_name}")
        store = await create_store(
            settings.database_url,
            settings.data_encryption_key or None,
            pool_size=settings.db_pool_size,
            pool_timeout=settings.db_pool_timeout,
        )
        scheduler = build_scheduler(settings, store)

        try:
            await scheduler.start()
            await stop_event.wait()
        finally:
            logger.info("Shutting down...")
            await scheduler.stop()
            await store.close()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def run() -> None:
    """Console-script entry point."""
    settings = get_settings()
    setup_logging(level=settings.log_level, format_type=settings.log_format)
    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
