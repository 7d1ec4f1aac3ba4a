"""Pydantic schemas for schedules."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DeliveryMethod = Literal["email", "webhook"]

Endpoint = Literal["awesome", "weekly", "random", "message"]

MessageType = Literal["animal", "absurd", "meta", "unexpected", "toughLove"]


class ScheduleCreate(BaseModel):
    """Fields supplied when creating a schedule (id and created_at are assigned by the store)."""

    recipient: str = Field(..., min_length=1)
    recipient_email: str = Field(..., min_length=1, description="Encrypted at rest")
    endpoint: str = Field(..., min_length=1)
    message_type: str | None = None
    from_name: str | None = None
    cron: str = Field(..., min_length=1)
    next_run: int = Field(..., description="Unix timestamp in seconds")
    delivery_method: DeliveryMethod = "email"
    webhook_url: str | None = Field(None, description="Encrypted at rest")
    webhook_secret: str | None = Field(None, description="Encrypted at rest")
    created_by: str = Field(..., min_length=1)


class Schedule(ScheduleCreate):
    """A persisted recurring delivery job, with sensitive fields in plaintext."""

    model_config = ConfigDict(frozen=True)

    id: str
    created_at: int
