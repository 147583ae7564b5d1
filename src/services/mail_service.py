"""
Mail Service
SMTP delivery for account and notification emails. smtplib is blocking, so
every send runs in the default thread-pool executor.
"""

import asyncio
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from html import escape
from typing import Callable, Optional

import structlog

from ..exceptions import MailDeliveryError
from ..news.schemas.responses import NotificationDto

logger = structlog.get_logger(__name__)


@dataclass
class Email:
    to: str
    subject: str
    body: str
    is_html: bool = True


def render_notification(notification: NotificationDto) -> str:
    """HTML body of the article notification email"""
    url = notification.article_url
    link = escape(url, quote=True) if url.startswith(("http://", "https://")) else "#"
    return (
        "<html><body style=\"font-family: Arial, sans-serif;\">"
        f"<h2>{escape(notification.article_title)}</h2>"
        f"<p><strong>Category:</strong> {escape(notification.category)}</p>"
        f"<p>{escape(notification.article_description)}</p>"
        f"<p><a href=\"{link}\">Read the full article</a></p>"
        f"<p style=\"color: #888; font-size: 12px;\">Sent {notification.created_at:%Y-%m-%d %H:%M} UTC</p>"
        "</body></html>"
    )


class Mailer:
    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        from_address: Optional[str] = None,
        display_name: str = "News Aggregator",
        use_tls: bool = True,
        timeout: float = 15.0,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address
        self.display_name = display_name
        self.use_tls = use_tls
        self.timeout = timeout
        self.smtp_factory = smtp_factory

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.from_address)

    def _build_message(self, email: Email) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["Subject"] = email.subject
        message["From"] = formataddr((self.display_name, self.from_address))
        message["To"] = email.to
        message.attach(MIMEText(email.body, "html" if email.is_html else "plain", "utf-8"))
        return message

    def _send_sync(self, email: Email) -> None:
        message = self._build_message(email)
        server = self.smtp_factory(self.host, self.port, timeout=self.timeout)
        try:
            if self.use_tls:
                server.ehlo()
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.sendmail(self.from_address, [email.to], message.as_string())
        finally:
            server.quit()

    async def send_email(self, email: Email) -> None:
        """
        Send one email.

        Raises:
            MailDeliveryError: Missing recipient, unconfigured mailer or SMTP failure
        """
        if not email.to or not email.to.strip():
            raise MailDeliveryError("Recipient address is missing")
        if not self.is_configured:
            raise MailDeliveryError("Mailer is not configured")

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._send_sync, email)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("email_delivery_failed", to=email.to, subject=email.subject, error=str(e))
            raise MailDeliveryError(f"Failed to send email to {email.to}: {e}") from e

        logger.info("email_sent", to=email.to, subject=email.subject)

    async def send_notification_email(self, notification: NotificationDto, address: Optional[str]) -> None:
        await self.send_email(Email(
            to=address or "",
            subject=f"New in {notification.category}: {notification.article_title}",
            body=render_notification(notification),
        ))
