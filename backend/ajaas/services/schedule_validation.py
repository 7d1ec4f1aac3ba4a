"""Validation of schedule requests before they reach the store.

Failures are returned as values, never raised, so request handlers can map
them straight to client errors.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import get_args

from pydantic import ValidationError

from ajaas.schemas import DeliveryMethod, Endpoint, MessageType, ScheduleCreate
from ajaas.services.cron import calculate_next_run

ENDPOINTS = frozenset(get_args(Endpoint))
MESSAGE_TYPES = frozenset(get_args(MessageType))
DELIVERY_METHODS = frozenset(get_args(DeliveryMethod))


@dataclass(frozen=True)
class ScheduleValidation:
    """Either a schedule ready to persist or the reason it was rejected."""

    schedule: ScheduleCreate | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.schedule is not None


def _reject(error: str) -> ScheduleValidation:
    return ScheduleValidation(error=error)


def validate_schedule(
    *,
    recipient: str,
    recipient_email: str,
    endpoint: str,
    cron: str,
    created_by: str,
    message_type: str | None = None,
    from_name: str | None = None,
    delivery_method: str = "email",
    webhook_url: str | None = None,
    webhook_secret: str | None = None,
    now: datetime | float | None = None,
) -> ScheduleValidation:
    """Check a schedule request and compute its first next_run."""
    if not recipient:
        return _reject("recipient is required")
    if not recipient_email:
        return _reject("recipientEmail is required")
    if endpoint not in ENDPOINTS:
        return _reject(f"endpoint must be one of: {', '.join(sorted(ENDPOINTS))}")
    if endpoint == "message":
        if not message_type:
            return _reject('messageType is required when endpoint is "message"')
        if message_type not in MESSAGE_TYPES:
            return _reject(f"messageType must be one of: {', '.join(sorted(MESSAGE_TYPES))}")
    if delivery_method not in DELIVERY_METHODS:
        return _reject(f"deliveryMethod must be one of: {', '.join(sorted(DELIVERY_METHODS))}")
    if delivery_method == "webhook" and not webhook_url:
        return _reject('webhookUrl is required when deliveryMethod is "webhook"')

    next_run = calculate_next_run(cron, base=now)
    if next_run is None:
        return _reject("Invalid cron expression")

    try:
        schedule = ScheduleCreate(
            recipient=recipient,
            recipient_email=recipient_email,
            endpoint=endpoint,
            message_type=message_type if endpoint == "message" else None,
            from_name=from_name or None,
            cron=cron,
            next_run=next_run,
            delivery_method=delivery_method,
            webhook_url=webhook_url if delivery_method == "webhook" else None,
            webhook_secret=webhook_secret if delivery_method == "webhook" else None,
            created_by=created_by,
        )
    except ValidationError as e:
        return _reject(str(e.errors()[0]["msg"]))

    return ScheduleValidation(schedule=schedule)
