# AJaaS Delivery
from ajaas.delivery.email import (
    ConsoleEmailDelivery,
    EmailDelivery,
    SMTPConfig,
    SMTPEmailDelivery,
)
from ajaas.delivery.webhook import (
    ConsoleWebhookDelivery,
    HTTPWebhookDelivery,
    WebhookDelivery,
    WebhookPayload,
)

__all__ = [
    "ConsoleEmailDelivery",
    "ConsoleWebhookDelivery",
    "EmailDelivery",
    "HTTPWebhookDelivery",
    "SMTPConfig",
    "SMTPEmailDelivery",
    "WebhookDelivery",
    "WebhookPayload",
]
