# backend/tripbooking/services/email.py
"""
Mail transports.

``ResendMailer`` delivers through the Resend API; ``ConsoleMailer`` logs
the message instead and is used when no API key is configured.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

import resend

from ..core.config import settings

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, to_email: str, subject: str, body: str) -> Any:
        """Deliver one message; raises on provider failure."""
        ...


class ResendMailer:
    """Sends plain-text email using the Resend API."""

    def __init__(self, api_key: str, from_email: Optional[str] = None):
        if not api_key:
            raise ValueError("Resend API key must be provided")
        resend.api_key = api_key
        self.from_email = from_email or settings.from_email
        self.logger = logging.getLogger(self.__class__.__name__)

    def send(self, to_email: str, subject: str, body: str) -> Dict[str, Any]:
        email_data = {
            "from": self.from_email,
            "to": to_email,
            "subject": subject,
            "text": body,
        }
        response = resend.Emails.send(email_data)
        self.logger.info(f"Email sent successfully to {to_email} - Subject: {subject}")
        return response


class ConsoleMailer:
    """Logs messages instead of sending them. Keeps an outbox for inspection."""

    def __init__(self) -> None:
        self.outbox: List[Dict[str, str]] = []

    def send(self, to_email: str, subject: str, body: str) -> bool:
        self.outbox.append({"to": to_email, "subject": subject, "body": body})
        logger.info("[console-mail] to=%s subject=%s\n%s", to_email, subject, body)
        return True


def build_mailer() -> Mailer:
    if settings.resend_api_key:
        return ResendMailer(settings.resend_api_key, settings.from_email)
    logger.warning("Resend API key not configured - emails will be logged to console")
    return ConsoleMailer()
