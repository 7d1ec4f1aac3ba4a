"""Cron expression evaluation (UTC)."""

import logging
from datetime import UTC, datetime

from croniter import croniter

logger = logging.getLogger(__name__)

CRON_FIELD_COUNT = 5


def _split_fields(expression: str) -> list[str] | None:
    if not isinstance(expression, str):
        return None
    fields = expression.split()
    # croniter reads a sixth field as seconds
    if len(fields) != CRON_FIELD_COUNT:
        return None
    return fields


def is_valid_cron(expression: str) -> bool:
    """Check whether expression is a valid five-field cron expression."""
    if _split_fields(expression) is None:
        return False
    try:
        return bool(croniter.is_valid(expression))
    except Exception:
        return False


def calculate_next_run(expression: str, base: datetime | float | None = None) -> int | None:
    """Return the next occurrence after base as unix seconds, or None if invalid.

    Named weekdays and months (e.g. ``0 17 * * FRI``) are accepted.
    """
    if _split_fields(expression) is None:
        logger.warning(f"Invalid cron expression: {expression!r}")
        return None

    if base is None:
        start = datetime.now(UTC)
    elif isinstance(base, datetime):
        start = base if base.tzinfo else base.replace(tzinfo=UTC)
    else:
        start = datetime.fromtimestamp(base, tz=UTC)

    try:
        next_dt = croniter(expression, start).get_next(datetime)
    except Exception as e:
        logger.warning(f"Invalid cron expression: {expression!r}: {e}")
        return None

    return int(next_dt.timestamp())
