from dataclasses import dataclass
import logging
from typing import Any, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from trustly.auth.tokens import verify_access_token
from trustly.db.deps import get_session
from trustly.db.repositories.businesses import BusinessesRepository


bearer_scheme = HTTPBearer(auto_error=False)
logger = logging.getLogger("auth.deps")


@dataclass
class AuthContext:
    user_id: str
    business_id: str
    email: Optional[str] = None


def _business_name_from_claims(claims: dict[str, Any]) -> Optional[str]:
    metadata = claims.get("user_metadata") or {}
    if not isinstance(metadata, dict):
        return None
    return metadata.get("business_name") or metadata.get("name")


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> AuthContext:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    claims = verify_access_token(credentials.credentials)
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token claims")

    business, created = BusinessesRepository(session).get_or_create_for_user(
        user_id, _business_name_from_claims(claims)
    )
    if created:
        logger.info("Created business for user", extra={"sub": user_id, "business_id": business.id})

    logger.debug("AuthContext built", extra={"sub": user_id, "business_id": business.id})
    return AuthContext(user_id=user_id, business_id=business.id, email=claims.get("email"))
