# ==============================================================================
# EMAIL SERVICE - Outbound Mail
# ==============================================================================
# SMTP delivery when configured, otherwise messages are only logged.
# smtplib is blocking, so sends run in a worker thread.
# ==============================================================================

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Any, Dict, Iterable, Optional, Tuple

from agricsmart.core.constants import EventType
from agricsmart.core.exceptions import ServiceUnavailableError, ValidationError
from agricsmart.core.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def render_order_email(
    event_type: str,
    order: Dict[str, Any],
    recipient_name: str,
    product_names: Iterable[str],
) -> Tuple[str, str]:
    """Subject and plain-text body for an order event email."""
    order_id = order["id"]
    items = ", ".join(product_names) or "your items"
    total = f"{order.get('currency', '')} {order.get('total_amount', 0):.2f}".strip()

    if event_type == EventType.NEW_ORDER:
        subject = f"New order #{order_id}"
        body = (
            f"Hello {recipient_name},\n\n"
            f"You have received a new order #{order_id} for {items}.\n"
            f"Order total: {total}\n"
        )
    elif event_type == EventType.ORDER_STATUS_UPDATE:
        subject = f"Order #{order_id} is now {order.get('order_status')}"
        body = (
            f"Hello {recipient_name},\n\n"
            f"Your order #{order_id} ({items}) has been updated to: "
            f"{order.get('order_status')}.\n"
        )
    elif event_type == EventType.PAYMENT_RECEIVED:
        subject = f"Payment received for order #{order_id}"
        body = (
            f"Hello {recipient_name},\n\n"
            f"Payment of {total} has been received for order #{order_id}.\n"
        )
    else:
        raise ValidationError(message=f"Unknown order notification type: {event_type}")

    return subject, body + "\nThe AgricSmart team\n"


class EmailService:
    """
    Sends plain-text (and optional HTML) email.

    Without ``SMTP_HOST`` the message is written to the log and a mock
    message id is returned.
    """

    def __init__(self, config: Optional[Settings] = None) -> None:
        self._settings = config or default_settings

    @property
    def enabled(self) -> bool:
        return bool(self._settings.SMTP_HOST)

    def _build_message(
        self,
        to: str,
        subject: str,
        text: str,
        html: Optional[str],
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._settings.EMAIL_FROM
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = make_msgid(domain="agricsmart.app")
        message.set_content(text)
        if html:
            message.add_alternative(html, subtype="html")
        return message

    def _send_sync(self, message: EmailMessage) -> None:
        with smtplib.SMTP(
            self._settings.SMTP_HOST,
            self._settings.SMTP_PORT,
            timeout=30,
        ) as smtp:
            if self._settings.SMTP_USE_TLS:
                smtp.starttls()
            if self._settings.SMTP_USER and self._settings.SMTP_PASSWORD:
                smtp.login(self._settings.SMTP_USER, self._settings.SMTP_PASSWORD)
            smtp.send_message(message)

    async def send_email(
        self,
        to: str,
        subject: str,
        text: str,
        html: Optional[str] = None,
    ) -> str:
        """
        Send one email.

        Returns:
            The Message-ID (or a mock id when SMTP is not configured)

        Raises:
            ServiceUnavailableError: If the SMTP exchange fails
        """
        message = self._build_message(to, subject, text, html)

        if not self.enabled:
            logger.info(f"[EMAIL MOCK] to={to} subject={subject!r}")
            return f"mock-{message['Message-ID'].strip('<>')}"

        try:
            await asyncio.to_thread(self._send_sync, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email to {to} failed: {e}")
            raise ServiceUnavailableError(
                message=f"Email delivery failed: {e}",
                service_name="smtp",
            )

        logger.info(f"Email sent to {to}: {subject}")
        return message["Message-ID"]
