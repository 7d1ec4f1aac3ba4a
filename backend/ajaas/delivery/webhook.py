"""Webhook delivery - POSTs a signed JSON payload to a subscriber URL."""

import hashlib
import hmac
import json
import logging
from typing import NotRequired, Protocol, TypedDict

import httpx

from ajaas import __version__

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-AJAAS-Signature"
USER_AGENT = f"AJAAS-Webhook/{__version__}"

_DEFAULT_TIMEOUT = 10.0


# Functional form: "from" is a Python keyword
WebhookPayload = TypedDict(
    "WebhookPayload",
    {
        "recipient": str,
        "message": str,
        "endpoint": str,
        "messageType": NotRequired[str],
        "from": NotRequired[str],
        "timestamp": str,
    },
)


class WebhookDelivery(Protocol):
    """Sends a payload to a URL, signing it when a secret is given."""

    async def send_message(
        self, url: str, payload: WebhookPayload, secret: str | None = None
    ) -> bool: ...


def serialize_payload(payload: WebhookPayload) -> bytes:
    """Serialize the payload to the exact bytes that are sent and signed."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def sign_body(body: bytes, secret: str) -> str:
    """Return the signature header value: ``sha256=<hex HMAC-SHA256>``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


class HTTPWebhookDelivery:
    """Delivers webhooks over HTTP with httpx."""

    def __init__(self, timeout: float = _DEFAULT_TIMEOUT):
        self._timeout = timeout

    async def send_message(
        self, url: str, payload: WebhookPayload, secret: str | None = None
    ) -> bool:
        body = serialize_payload(payload)
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        if secret:
            headers[SIGNATURE_HEADER] = sign_body(body, secret)

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, content=body, headers=headers)
            if not response.is_success:
                logger.error(
                    "Webhook delivery failed: HTTP %d %s for %s",
                    response.status_code,
                    response.reason_phrase,
                    url,
                )
                return False
            return True
        except httpx.HTTPError as e:
            logger.error("Webhook delivery failed: %s", e)
            return False


class ConsoleWebhookDelivery:
    """Logs webhook payloads instead of sending them."""

    async def send_message(
        self, url: str, payload: WebhookPayload, secret: str | None = None
    ) -> bool:
        logger.info("[WEBHOOK] URL: %s", url)
        logger.info("[WEBHOOK] Payload: %s", serialize_payload(payload).decode("utf-8"))
        logger.info("[WEBHOOK] Signed: %s", "yes" if secret else "no")
        return True
