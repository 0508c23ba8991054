"""Outbound mail transports.

Delivery is best-effort: a transport reports failure by returning False or
raising; the dispatcher logs either outcome and never lets it reach the
scheduling operation that triggered the mail.
"""

import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.mime.text import MIMEText
from typing import Optional, Protocol

from lessonbook.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundEmail:
    to: str
    subject: str
    body: str


class Notifier(Protocol):
    async def notify(self, to: str, subject: str, body: str) -> bool: ...


class LogNotifier:
    """Writes mail to the application log instead of sending it."""

    async def notify(self, to: str, subject: str, body: str) -> bool:
        logger.info("mail to=%s subject=%s\n%s", to, subject, body)
        return True


class SmtpNotifier:
    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        sender: str = "no-reply@example.com",
        timeout: int = 30,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.timeout = timeout

    def _send(self, to: str, subject: str, body: str) -> bool:
        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        context = ssl.create_default_context()
        if self.port == 465:
            server = smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=self.timeout)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        try:
            if self.use_tls and self.port != 465:
                server.starttls(context=context)
            if self.username and self.password:
                server.login(self.username, self.password)
            server.sendmail(self.sender, [to], msg.as_string())
        finally:
            server.quit()
        return True

    async def notify(self, to: str, subject: str, body: str) -> bool:
        return await asyncio.to_thread(self._send, to, subject, body)


def build_notifier() -> Notifier:
    if settings.notifier_backend == "smtp":
        if not settings.smtp_host:
            raise ValueError("NOTIFIER_BACKEND=smtp requires SMTP_HOST")
        return SmtpNotifier(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            sender=settings.mail_from,
        )
    return LogNotifier()
