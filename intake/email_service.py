"""
Email Service - delivers call summaries and SMS forwards by email.

Email goes out through an HTTP webhook (e.g. a Google Apps Script web app)
that accepts {token, to, subject, body} as JSON and sends the message.

Delivery is best effort:
1. One attempt per notification, no retries
2. Missing configuration skips delivery
3. Every failure is logged and swallowed; nothing reaches the call flow

Python 3.9 compatible - uses typing.Optional
"""

import logging
import os
from typing import Optional

import httpx

from .models import EmailWebhookPayload

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class EmailService:
    """Service for sending notification emails via the email webhook."""

    def __init__(self):
        """Read webhook settings.

        Does NOT crash if the webhook is not configured - the call dialogue
        keeps working and notifications are skipped.
        """
        self.webhook_url = (os.getenv("EMAIL_WEBHOOK_URL") or "").strip()
        self.webhook_token = (os.getenv("EMAIL_WEBHOOK_TOKEN") or "").strip()
        self.to_email = (os.getenv("SUMMARY_TO_EMAIL") or "").strip()

        try:
            self.timeout = float(os.getenv("EMAIL_WEBHOOK_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS))
        except ValueError:
            logger.warning("EmailService: invalid EMAIL_WEBHOOK_TIMEOUT_SECONDS, using default")
            self.timeout = DEFAULT_TIMEOUT_SECONDS

        if self.is_configured:
            logger.info(f"EmailService configured, sending to: {self.to_email}")
        else:
            logger.warning("EmailService: email webhook not configured - notifications will be skipped")

    @property
    def is_configured(self) -> bool:
        """Check if the email webhook is fully configured."""
        return bool(self.webhook_url and self.webhook_token and self.to_email)

    async def notify(self, subject: str, body: str) -> None:
        """Send one email. Never raises.

        Args:
            subject: Email subject line
            body: Plain-text email body
        """
        logger.info(
            f"Email attempt: has_url={bool(self.webhook_url)} "
            f"has_token={bool(self.webhook_token)} to={self.to_email or '(empty)'}"
        )

        if not self.is_configured:
            logger.info("Email skipped: webhook settings missing")
            return

        payload = EmailWebhookPayload(
            token=self.webhook_token,
            to=self.to_email,
            subject=subject,
            body=body,
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.webhook_url,
                    json=payload.model_dump(),
                    follow_redirects=True,
                )

            if response.is_success:
                logger.info(f"Email sent: {response.text[:200]}")
            else:
                logger.error(f"Email webhook failed: HTTP {response.status_code} {response.text[:500]}")

        except Exception as e:
            logger.error(f"Email webhook failed: {e}")


# Singleton instance (created lazily)
_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get or create the EmailService singleton."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
