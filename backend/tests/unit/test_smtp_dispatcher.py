"""Unit tests for the SMTP dispatcher."""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from domain.delivery.ports import RenderedMessage, TransportError
from infrastructure.mail.smtp_dispatcher import SmtpDispatcher

MESSAGE = RenderedMessage(kind="feedback", subject="You received feedback", body="Read it here.")


@pytest.fixture
def smtp():
    with patch("infrastructure.mail.smtp_dispatcher.smtplib.SMTP") as smtp_class:
        server = MagicMock()
        smtp_class.return_value.__enter__.return_value = server
        yield smtp_class, server


@pytest.fixture
def dispatcher():
    return SmtpDispatcher(
        host="smtp.example.test",
        port=587,
        from_email="relay@example.test",
        user="relay",
        password="secret",
    )


class TestSmtpDispatcher:

    @pytest.mark.asyncio
    async def test_dispatch_sends_message(self, smtp, dispatcher):
        smtp_class, server = smtp

        receipt = await dispatcher.dispatch("bob@example.com", MESSAGE)

        smtp_class.assert_called_once_with("smtp.example.test", 587, timeout=15.0)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("relay", "secret")
        sent = server.send_message.call_args.args[0]
        assert sent["To"] == "bob@example.com"
        assert sent["From"] == "relay@example.test"
        assert sent["Subject"] == "You received feedback"
        assert receipt.transport == "smtp"
        assert receipt.receipt_id == sent["Message-ID"]

    @pytest.mark.asyncio
    async def test_no_login_without_credentials(self, smtp):
        _, server = smtp
        await SmtpDispatcher(host="localhost", port=25, use_tls=False).dispatch("bob@example.com", MESSAGE)

        server.starttls.assert_not_called()
        server.login.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error, transient", [
        (smtplib.SMTPRecipientsRefused({"bob@example.com": (550, b"no such user")}), False),
        (smtplib.SMTPAuthenticationError(535, b"bad credentials"), False),
        (smtplib.SMTPDataError(451, b"try later"), True),
        (smtplib.SMTPDataError(554, b"rejected"), False),
        (smtplib.SMTPServerDisconnected("gone"), True),
        (ConnectionRefusedError("refused"), True),
    ])
    async def test_failures_map_to_transport_error(self, smtp, dispatcher, error, transient):
        _, server = smtp
        server.send_message.side_effect = error

        with pytest.raises(TransportError) as exc:
            await dispatcher.dispatch("bob@example.com", MESSAGE)

        assert exc.value.transient is transient
        assert "bob@example.com" not in str(exc.value)
