from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from trustly.config import settings

logger = logging.getLogger(__name__)


class AuthProviderError(RuntimeError):
    """Raised when the hosted auth API rejects a request or cannot be reached."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or f"Auth provider returned status {response.status_code}"
    if isinstance(body, dict):
        for key in ("msg", "error_description", "message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return f"Auth provider returned status {response.status_code}"


class AuthProviderClient:
    """Client for the hosted auth REST API (GoTrue-style `/signup` and `/token`)."""

    def __init__(self, *, base_url: Optional[str] = None, api_key: Optional[str] = None) -> None:
        self.base_url = (base_url or settings.AUTH_API_BASE_URL or "").rstrip("/")
        self.api_key = api_key or settings.AUTH_API_KEY

    def _post(self, path: str, payload: dict[str, Any], params: Optional[dict[str, str]] = None) -> dict[str, Any]:
        if not self.base_url or not self.api_key:
            raise AuthProviderError("Authentication provider is not configured.")
        headers = {"apikey": self.api_key, "Authorization": f"Bearer {self.api_key}"}
        try:
            with httpx.Client(timeout=settings.AUTH_REQUEST_TIMEOUT_SECONDS) as client:
                response = client.post(f"{self.base_url}{path}", json=payload, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.exception("Auth provider request failed", extra={"path": path})
            raise AuthProviderError(f"Auth provider request failed: {exc}") from exc
        if response.status_code >= 400:
            raise AuthProviderError(_error_message(response), status_code=response.status_code)
        return response.json()

    def sign_up(self, *, email: str, password: str, metadata: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"email": email, "password": password}
        if metadata:
            payload["data"] = metadata
        return self._post("/signup", payload)

    def sign_in(self, *, email: str, password: str) -> dict[str, Any]:
        return self._post("/token", {"email": email, "password": password}, params={"grant_type": "password"})


def user_id_from_signup(response: dict[str, Any]) -> Optional[str]:
    """Sign-up responses carry the user at the top level or under `user`, depending on confirmation settings."""
    user = response.get("user") if isinstance(response.get("user"), dict) else response
    user_id = user.get("id") if isinstance(user, dict) else None
    return str(user_id) if user_id else None


def get_auth_provider() -> AuthProviderClient:
    return AuthProviderClient()
