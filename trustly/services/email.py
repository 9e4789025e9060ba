from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from trustly.config import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(RuntimeError):
    """Raised when the transactional email provider rejects or fails a send."""


def format_sender(display_name: Optional[str]) -> str:
    name = (display_name or "").strip().replace("<", "").replace(">", "").replace('"', "")
    if not name:
        return settings.EMAIL_FROM_ADDRESS
    return f"{name} <{settings.EMAIL_FROM_ADDRESS}>"


class EmailClient:
    """Minimal client for the Resend HTTP API (`POST /emails`)."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.api_key = api_key or settings.RESEND_API_KEY
        self.base_url = (base_url or settings.RESEND_API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.EMAIL_REQUEST_TIMEOUT_SECONDS

    def send(self, *, sender: str, to: list[str], subject: str, html: str) -> dict[str, Any]:
        if not self.api_key:
            raise EmailDeliveryError("RESEND_API_KEY is not configured.")

        payload = {"from": sender, "to": to, "subject": subject, "html": html}
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(f"{self.base_url}/emails", json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise EmailDeliveryError(f"Email request failed: {exc}") from exc

        if response.status_code >= 400:
            detail = response.text.strip() or "<empty response body>"
            raise EmailDeliveryError(f"Email provider returned status {response.status_code}: {detail}")

        try:
            data = response.json()
        except ValueError:
            data = {}
        logger.debug("Email accepted by provider", extra={"to": to, "email_id": data.get("id")})
        return data


def get_email_client() -> EmailClient:
    return EmailClient()
