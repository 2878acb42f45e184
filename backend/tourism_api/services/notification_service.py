"""
Email gateways and the reservation email templates.

The lifecycle calls these after the status change has committed; any
failure here is logged by the caller and never reaches the client.
"""

import asyncio
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

import httpx

from tourism_api.core.config import Settings, get_settings
from tourism_api.core.exceptions import NotificationError
from tourism_api.core.logging import get_logger
from tourism_api.services.interfaces.notification import NotificationGateway

logger = get_logger(__name__)

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"


class LoggingNotificationGateway(NotificationGateway):
    """Logs emails instead of sending them. Keeps a copy of each for inspection."""

    def __init__(self):
        self.sent_emails: list[dict] = []

    async def send_email(self, to: str, subject: str, html: str) -> bool:
        self.sent_emails.append({"to": to, "subject": subject, "html": html})
        logger.info("email_logged", to=to, subject=subject)
        return True


class SmtpNotificationGateway(NotificationGateway):
    def __init__(self, settings: Settings):
        self.settings = settings

    def _send_blocking(self, to: str, subject: str, html: str) -> None:
        msg = EmailMessage()
        msg["From"] = formataddr((self.settings.SENDER_NAME, self.settings.SENDER_EMAIL))
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html, subtype="html")

        timeout = self.settings.NOTIFICATION_TIMEOUT_SECONDS
        with smtplib.SMTP(self.settings.SMTP_HOST, self.settings.SMTP_PORT, timeout=timeout) as smtp:
            if self.settings.SMTP_STARTTLS:
                smtp.starttls()
            if self.settings.SMTP_USER:
                smtp.login(self.settings.SMTP_USER, self.settings.SMTP_PASSWORD)
            smtp.send_message(msg)

    async def send_email(self, to: str, subject: str, html: str) -> bool:
        try:
            # smtplib blocks; keep it off the event loop
            await asyncio.to_thread(self._send_blocking, to, subject, html)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"SMTP delivery failed: {e}") from e
        return True


class SendGridNotificationGateway(NotificationGateway):
    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.client = client

    async def send_email(self, to: str, subject: str, html: str) -> bool:
        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.settings.SENDER_EMAIL, "name": self.settings.SENDER_NAME},
            "subject": subject,
            "content": [{"type": "text/html", "value": html}],
        }
        headers = {"Authorization": f"Bearer {self.settings.SENDGRID_API_KEY}"}
        timeout = self.settings.NOTIFICATION_TIMEOUT_SECONDS
        try:
            if self.client is not None:
                response = await self.client.post(SENDGRID_URL, json=payload, headers=headers, timeout=timeout)
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.post(SENDGRID_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise NotificationError(f"SendGrid request failed: {e}") from e

        if response.status_code >= 400:
            logger.warning("sendgrid_rejected", status_code=response.status_code, body=response.text[:200])
            return False
        return True


def build_notification_gateway(settings: Settings) -> NotificationGateway:
    if settings.EMAIL_BACKEND == "smtp":
        return SmtpNotificationGateway(settings)
    if settings.EMAIL_BACKEND == "sendgrid":
        return SendGridNotificationGateway(settings)
    return LoggingNotificationGateway()


_gateway: Optional[NotificationGateway] = None


def get_notification_gateway() -> NotificationGateway:
    """FastAPI dependency; tests override it with a recording gateway."""
    global _gateway
    if _gateway is None:
        _gateway = build_notification_gateway(get_settings())
    return _gateway


# Templates

_FOOTER = """
    <p>If you have any questions, simply reply to this email.</p>
    <hr />
    <p style="font-size: 12px; color: gray;">{sender} - automatic reservation notice</p>
"""


def _money(amount, currency: str) -> str:
    return f"{amount} {currency}"


def confirmation_email(reservation, settings: Settings) -> tuple[str, str]:
    is_event = reservation.event_id is not None
    quantity_label = "Number of tickets" if is_event else "Number of persons"
    items = [
        f"<li><strong>{quantity_label}:</strong> {reservation.quantity}</li>",
        f"<li><strong>Total price:</strong> {_money(reservation.total_price, settings.CURRENCY)}</li>",
    ]
    if is_event:
        items.append(f"<li><strong>Event:</strong> {reservation.event_id}</li>")
    html = f"""
<div style="font-family: Arial, sans-serif; padding: 20px;">
    <h2>Thank you for your reservation!</h2>
    <p>Your reservation #{reservation.id} is confirmed.</p>
    <ul>
        {''.join(items)}
    </ul>
    {_FOOTER.format(sender=settings.SENDER_NAME)}
</div>
"""
    return "Your reservation is confirmed", html


def reminder_email(reservation, settings: Settings) -> tuple[str, str]:
    visit_date = reservation.visit_date.strftime("%Y-%m-%d %H:%M") if reservation.visit_date else "-"
    html = f"""
<div style="font-family: Arial, sans-serif; padding: 20px;">
    <h2>Reminder: your upcoming visit</h2>
    <ul>
        <li><strong>Total price:</strong> {_money(reservation.total_price, settings.CURRENCY)}</li>
        <li><strong>Number of tickets:</strong> {reservation.quantity}</li>
        <li><strong>Reservation date:</strong> {visit_date}</li>
    </ul>
    {_FOOTER.format(sender=settings.SENDER_NAME)}
</div>
"""
    return "Reminder about your reservation", html
