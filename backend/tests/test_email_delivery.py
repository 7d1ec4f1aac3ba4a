"""Tests for email delivery."""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from ajaas.delivery.email import (
    ConsoleEmailDelivery,
    SMTPConfig,
    SMTPEmailDelivery,
    build_email,
)


def _mock_smtp():
    server = MagicMock()
    smtp_cls = MagicMock()
    smtp_cls.return_value.__enter__.return_value = server
    smtp_cls.return_value.__exit__.return_value = False
    return smtp_cls, server


class TestBuildEmail:
    def test_headers(self):
        email = build_email("ajaas@example.com", "rachel@example.com", "Rachel", "Awesome job!")

        assert email["Subject"] == "Awesome Job, Rachel!"
        assert email["From"] == "ajaas@example.com"
        assert email["To"] == "rachel@example.com"

    def test_plain_and_html_parts(self):
        email = build_email("ajaas@example.com", "rachel@example.com", "Rachel", "Tom & Jerry <3")

        plain = email.get_body(preferencelist=("plain",))
        rich = email.get_body(preferencelist=("html",))
        assert plain.get_content().strip() == "Tom & Jerry <3"
        assert "Tom &amp; Jerry &lt;3" in rich.get_content()


@pytest.mark.asyncio
class TestSMTPEmailDelivery:
    async def test_sends_with_starttls_and_login(self):
        smtp_cls, server = _mock_smtp()
        config = SMTPConfig(host="smtp.example.com", user="user", password="pass")

        with patch("ajaas.delivery.email.smtplib.SMTP", smtp_cls):
            result = await SMTPEmailDelivery(config).send_message(
                "rachel@example.com", "Rachel", "Awesome job!"
            )

        assert result is True
        assert smtp_cls.call_args.args == ("smtp.example.com", 587)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("user", "pass")
        sent = server.send_message.call_args.args[0]
        assert sent["To"] == "rachel@example.com"

    async def test_secure_uses_ssl(self):
        smtp_cls, server = _mock_smtp()
        config = SMTPConfig(host="smtp.example.com", port=465, secure=True)

        with patch("ajaas.delivery.email.smtplib.SMTP_SSL", smtp_cls):
            result = await SMTPEmailDelivery(config).send_message(
                "rachel@example.com", "Rachel", "Awesome job!"
            )

        assert result is True
        server.starttls.assert_not_called()
        server.login.assert_not_called()
        server.send_message.assert_called_once()

    async def test_smtp_error_returns_false(self):
        smtp_cls, server = _mock_smtp()
        server.send_message.side_effect = smtplib.SMTPRecipientsRefused({})

        with patch("ajaas.delivery.email.smtplib.SMTP", smtp_cls):
            result = await SMTPEmailDelivery(SMTPConfig(host="smtp.example.com")).send_message(
                "rachel@example.com", "Rachel", "Awesome job!"
            )

        assert result is False

    async def test_connection_error_returns_false(self):
        smtp_cls = MagicMock(side_effect=ConnectionRefusedError("refused"))

        with patch("ajaas.delivery.email.smtplib.SMTP", smtp_cls):
            result = await SMTPEmailDelivery(SMTPConfig(host="smtp.example.com")).send_message(
                "rachel@example.com", "Rachel", "Awesome job!"
            )

        assert result is False


@pytest.mark.asyncio
class TestConsoleEmailDelivery:
    async def test_logs_and_succeeds(self, caplog):
        with caplog.at_level("INFO", logger="ajaas.delivery.email"):
            result = await ConsoleEmailDelivery().send_message(
                "rachel@example.com", "Rachel", "Awesome job!"
            )

        assert result is True
        assert "rachel@example.com" in caplog.text
