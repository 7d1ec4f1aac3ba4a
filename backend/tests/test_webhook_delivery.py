"""Tests for webhook delivery."""

import hashlib
import hmac
import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from ajaas.delivery.webhook import (
    SIGNATURE_HEADER,
    USER_AGENT,
    ConsoleWebhookDelivery,
    HTTPWebhookDelivery,
    serialize_payload,
    sign_body,
)

PAYLOAD = {
    "recipient": "Rachel",
    "message": "Awesome job, Rachel!",
    "endpoint": "awesome",
    "timestamp": "2026-01-09T17:00:00.000Z",
}


def _mock_client(response=None, error=None):
    client = AsyncMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    if error is not None:
        client.post = AsyncMock(side_effect=error)
    else:
        client.post = AsyncMock(return_value=response)
    return client


def _response(status_code: int, reason: str = "OK"):
    response = MagicMock()
    response.status_code = status_code
    response.reason_phrase = reason
    response.is_success = 200 <= status_code < 300
    return response


class TestSigning:
    def test_serialization_is_compact(self):
        body = serialize_payload(PAYLOAD)
        assert b" " not in body.replace(b"Awesome job, Rachel!", b"")
        assert json.loads(body) == PAYLOAD

    def test_serialization_keeps_unicode(self):
        body = serialize_payload({**PAYLOAD, "recipient": "Zoë"})
        assert "Zoë".encode() in body

    def test_signature_is_hmac_sha256_of_body(self):
        body = serialize_payload(PAYLOAD)
        expected = hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()
        assert sign_body(body, "s3cret") == f"sha256={expected}"


@pytest.mark.asyncio
class TestHTTPWebhookDelivery:
    async def test_posts_signed_payload(self):
        client = _mock_client(_response(200))
        with patch("ajaas.delivery.webhook.httpx.AsyncClient", return_value=client) as client_cls:
            result = await HTTPWebhookDelivery(timeout=3.0).send_message(
                "https://hooks.example.com/abc", PAYLOAD, "s3cret"
            )

        assert result is True
        client_cls.assert_called_once_with(timeout=3.0)
        client.post.assert_awaited_once()
        url = client.post.await_args.args[0]
        body = client.post.await_args.kwargs["content"]
        headers = client.post.await_args.kwargs["headers"]
        assert url == "https://hooks.example.com/abc"
        assert body == serialize_payload(PAYLOAD)
        assert headers["Content-Type"] == "application/json"
        assert headers["User-Agent"] == USER_AGENT
        assert headers[SIGNATURE_HEADER] == sign_body(body, "s3cret")

    async def test_no_signature_without_secret(self):
        client = _mock_client(_response(204, "No Content"))
        with patch("ajaas.delivery.webhook.httpx.AsyncClient", return_value=client):
            result = await HTTPWebhookDelivery().send_message("https://hooks.example.com/abc", PAYLOAD)

        assert result is True
        assert SIGNATURE_HEADER not in client.post.await_args.kwargs["headers"]

    async def test_error_status_returns_false(self):
        client = _mock_client(_response(500, "Internal Server Error"))
        with patch("ajaas.delivery.webhook.httpx.AsyncClient", return_value=client):
            result = await HTTPWebhookDelivery().send_message("https://hooks.example.com/abc", PAYLOAD)

        assert result is False

    async def test_network_error_returns_false(self):
        client = _mock_client(error=httpx.ConnectError("Connection refused"))
        with patch("ajaas.delivery.webhook.httpx.AsyncClient", return_value=client):
            result = await HTTPWebhookDelivery().send_message("https://hooks.example.com/abc", PAYLOAD)

        assert result is False

    async def test_timeout_returns_false(self):
        client = _mock_client(error=httpx.ReadTimeout("timed out"))
        with patch("ajaas.delivery.webhook.httpx.AsyncClient", return_value=client):
            result = await HTTPWebhookDelivery().send_message("https://hooks.example.com/abc", PAYLOAD)

        assert result is False


@pytest.mark.asyncio
class TestConsoleWebhookDelivery:
    async def test_logs_and_succeeds(self, caplog):
        with caplog.at_level("INFO", logger="ajaas.delivery.webhook"):
            result = await ConsoleWebhookDelivery().send_message(
                "https://hooks.example.com/abc", PAYLOAD, "s3cret"
            )

        assert result is True
        assert "https://hooks.example.com/abc" in caplog.text
