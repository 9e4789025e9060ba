from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import httpx
from fastapi import HTTPException, status
from jose import jwt
from jose.exceptions import JWSError, JWTError

from trustly.config import settings

logger = logging.getLogger("auth.tokens")

SIGNING_KEYS_TTL_SECONDS = 300


class SigningKeySet:
    """Provider signing keys indexed by `kid`, refreshed every few minutes or on an unknown kid."""

    def __init__(self, ttl_seconds: int = SIGNING_KEYS_TTL_SECONDS) -> None:
        self.ttl_seconds = ttl_seconds
        self._keys: Dict[str, Dict[str, Any]] = {}
        self._loaded_at = 0.0

    def _stale(self) -> bool:
        return not self._keys or (time.time() - self._loaded_at) >= self.ttl_seconds

    def refresh(self) -> None:
        if not settings.AUTH_JWKS_URL:
            logger.error("AUTH_JWKS_URL is not configured")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication is not configured",
            )
        try:
            resp = httpx.get(settings.AUTH_JWKS_URL, timeout=settings.AUTH_REQUEST_TIMEOUT_SECONDS)
            resp.raise_for_status()
            document = resp.json()
        except httpx.HTTPError as exc:
            logger.exception("Signing key fetch failed", extra={"jwks_url": settings.AUTH_JWKS_URL})
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Unable to fetch signing keys",
            ) from exc
        self._keys = {key["kid"]: key for key in document.get("keys", []) if key.get("kid")}
        self._loaded_at = time.time()

    def get(self, kid: str) -> Dict[str, Any]:
        if self._stale():
            self.refresh()
        key = self._keys.get(kid)
        if key is None:
            # Keys may have rotated since the last fetch.
            self.refresh()
            key = self._keys.get(kid)
        if key is None:
            logger.warning("Signing key not found", extra={"kid": kid})
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Signing key not found")
        return key


signing_keys = SigningKeySet()


def _token_kid(token: str) -> str:
    try:
        header = jwt.get_unverified_header(token)
    except JWTError as exc:
        logger.warning("Invalid token header", exc_info=exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc
    kid = header.get("kid")
    if not kid:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing kid in token")
    return kid


def _audience_allowed(aud: Any) -> bool:
    if not settings.AUTH_AUDIENCE:
        return True
    claimed = [aud] if isinstance(aud, str) else list(aud or [])
    return any(item in settings.AUTH_AUDIENCE for item in claimed)


def verify_access_token(token: str, keys: Optional[SigningKeySet] = None) -> Dict[str, Any]:
    """Verify signature, expiry, issuer and audience of a provider-issued access token."""
    key = (keys or signing_keys).get(_token_kid(token))
    try:
        # jose only matches a single audience string, so audience is checked below.
        claims = jwt.decode(
            token,
            key,
            algorithms=[key.get("alg", "RS256")],
            issuer=settings.AUTH_JWT_ISSUER,
            options={"verify_aud": False, "verify_iss": bool(settings.AUTH_JWT_ISSUER)},
        )
    except (JWTError, JWSError) as exc:
        logger.warning("Token verification failed", exc_info=exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    if not _audience_allowed(claims.get("aud")):
        logger.warning("Token audience rejected", extra={"aud": claims.get("aud")})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token audience")
    logger.debug("Verified access token", extra={"kid": key.get("kid"), "sub": claims.get("sub")})
    return claims
