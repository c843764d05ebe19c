"""
Outbound transactional email through Resend's HTTP API.
"""

from __future__ import annotations

from typing import Optional

import requests
from loguru import logger

from core.config import settings
from core.errors import ConfigurationError, UpstreamError


class EmailDeliveryError(UpstreamError):
    pass


class ResendMailer:
    def __init__(
        self,
        api_key: Optional[str],
        from_email: str,
        from_name: str = "PreMeet",
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key
        self.sender = f"{from_name} <{from_email}>"
        self.api_url = api_url
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "ResendMailer":
        return cls(
            settings.RESEND_API_KEY,
            settings.FROM_EMAIL,
            from_name=settings.FROM_NAME,
            api_url=settings.RESEND_API_URL,
            timeout=settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
        )

    def send(self, to: str, subject: str, html: str) -> str:
        """Send one HTML email and return the provider's message id (blocking)."""
        if not self.api_key:
            raise ConfigurationError("RESEND_API_KEY not configured")

        try:
            response = requests.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={"from": self.sender, "to": [to], "subject": subject, "html": html},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise EmailDeliveryError(f"Failed to send email: {exc}") from exc

        if not response.ok:
            logger.error("Resend rejected email ({}): {}", response.status_code, response.text[:500])
            raise EmailDeliveryError(f"Failed to send email: HTTP {response.status_code}")

        message_id = response.json().get("id", "")
        logger.info("Email '{}' accepted by Resend (id={})", subject, message_id)
        return message_id


def resolve_recipient(user_email: Optional[str]) -> Optional[str]:
    """The configured override wins over the user's own address."""
    return settings.BRIEFING_RECIPIENT_OVERRIDE or user_email
