# AJaaS Pydantic Schemas
from ajaas.schemas.schedule import (
    DeliveryMethod,
    Endpoint,
    MessageType,
    Schedule,
    ScheduleCreate,
)

__all__ = [
    "DeliveryMethod",
    "Endpoint",
    "MessageType",
    "Schedule",
    "ScheduleCreate",
]
