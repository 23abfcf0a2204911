"""SMTP delivery dispatcher - implementation of DeliveryDispatcherPort.

Sends plain-text mail through a submission relay with STARTTLS. One
attempt per call: retries belong to the delivery worker, which re-reads
item state before every attempt.
"""

import asyncio
import logging
import smtplib
import uuid
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Optional

from domain.delivery.ports import DeliveryDispatcherPort, DeliveryReceipt, RenderedMessage, TransportError

logger = logging.getLogger(__name__)

SMTP_TRANSPORT = "smtp"


class SmtpDispatcher(DeliveryDispatcherPort):
    """Sends RenderedMessages over SMTP."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        from_email: str = "no-reply@feedback-relay.local",
        user: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 15.0,
    ):
        self.host = host
        self.port = port
        self.from_email = from_email
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

        logger.info(f"SmtpDispatcher initialized for {host}:{port}")

    async def dispatch(self, destination: str, message: RenderedMessage) -> DeliveryReceipt:
        email = self._build_email_message(destination, message)
        await asyncio.to_thread(self._send_email, email)

        receipt_id = email["Message-ID"] or str(uuid.uuid4())
        logger.info(f"Dispatched {message.kind} message", extra={"kind": message.kind, "receipt_id": receipt_id})
        return DeliveryReceipt(
            receipt_id=receipt_id,
            accepted_at=datetime.now(timezone.utc),
            transport=SMTP_TRANSPORT,
        )

    def _build_email_message(self, destination: str, message: RenderedMessage) -> EmailMessage:
        """Build the outgoing message.

        Args:
            destination: Recipient address
            message: Rendered subject and body

        Returns:
            EmailMessage ready to send
        """
        email = EmailMessage()
        email["Subject"] = message.subject
        email["From"] = self.from_email
        email["To"] = destination
        email["Message-ID"] = make_msgid(domain=self.from_email.rsplit("@", 1)[-1])
        email.set_content(message.body)
        return email

    def _send_email(self, email: EmailMessage) -> None:
        """Send email via SMTP, mapping failures to TransportError.

        Recipient and sender refusals are permanent; everything else
        (connection loss, timeouts, 4xx replies) is transient.

        Raises:
            TransportError: On any SMTP or socket failure
        """
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(email)

        except (smtplib.SMTPRecipientsRefused, smtplib.SMTPSenderRefused) as e:
            raise TransportError(f"SMTP refused message: {type(e).__name__}", transient=False)

        except smtplib.SMTPAuthenticationError as e:
            raise TransportError(f"SMTP authentication failed: {e.smtp_code}", transient=False)

        except smtplib.SMTPResponseException as e:
            raise TransportError(
                f"SMTP error {e.smtp_code}",
                transient=400 <= e.smtp_code < 500,
                details={"smtp_code": e.smtp_code},
            )

        except (smtplib.SMTPException, OSError) as e:
            raise TransportError(f"SMTP transport error: {type(e).__name__}")
