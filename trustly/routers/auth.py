from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from trustly.db.deps import get_session
from trustly.db.repositories.businesses import BusinessesRepository
from trustly.schemas.auth import SignInRequest, SignUpRequest
from trustly.services.auth_provider import (
    AuthProviderClient,
    AuthProviderError,
    get_auth_provider,
    user_id_from_signup,
)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def sign_up(
    payload: SignUpRequest,
    session: Session = Depends(get_session),
    provider: AuthProviderClient = Depends(get_auth_provider),
) -> dict:
    metadata = {"business_name": payload.business_name} if payload.business_name else None
    try:
        response = provider.sign_up(email=payload.email, password=payload.password, metadata=metadata)
    except AuthProviderError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    user_id = user_id_from_signup(response)
    business_id = None
    if user_id:
        try:
            business, _ = BusinessesRepository(session).get_or_create_for_user(user_id, payload.business_name)
            business_id = business.id
        except SQLAlchemyError:
            # Sign-up stands; the business is created lazily on first authenticated request.
            session.rollback()
            logger.exception("Business creation failed after sign-up", extra={"sub": user_id})
    else:
        logger.warning("Sign-up response carried no user id", extra={"email": payload.email})

    return {"user_id": user_id, "business_id": business_id, "session": response.get("session")}


@router.post("/signin")
def sign_in(
    payload: SignInRequest,
    provider: AuthProviderClient = Depends(get_auth_provider),
) -> dict:
    try:
        return provider.sign_in(email=payload.email, password=payload.password)
    except AuthProviderError as exc:
        if exc.status_code is not None and exc.status_code < 500:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
