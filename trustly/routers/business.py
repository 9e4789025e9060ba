from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from trustly.auth.dependencies import AuthContext, get_current_user
from trustly.config import settings
from trustly.db.deps import get_session
from trustly.db.models import Business
from trustly.db.repositories.businesses import BusinessesRepository
from trustly.schemas.businesses import BrandingSettings, BusinessOut, BusinessUpdateRequest, EmailSettings
from trustly.services.businesses import (
    branding_fields,
    branding_for,
    dashboard_summary,
    email_settings_fields,
    email_settings_for,
    widget_snippet,
)
from trustly.services.email import EmailClient, EmailDeliveryError, get_email_client
from trustly.services.media_storage import (
    MediaStorage,
    MediaStorageError,
    file_extension,
    get_media_storage,
    guess_content_type,
)
from trustly.services.notifications import send_test_notification

router = APIRouter(prefix="/business", tags=["business"])
logger = logging.getLogger(__name__)


def get_current_business(
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Business:
    business = BusinessesRepository(session).get(auth.business_id)
    if not business:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Business not found")
    return business


def _business_out(business: Business) -> dict:
    return jsonable_encoder(BusinessOut.model_validate(business))


@router.get("")
def get_business(business: Business = Depends(get_current_business)) -> dict:
    return _business_out(business)


@router.patch("")
def update_business(
    payload: BusinessUpdateRequest,
    business: Business = Depends(get_current_business),
    session: Session = Depends(get_session),
) -> dict:
    fields = payload.model_dump(exclude_unset=True)
    if "business_name" in fields:
        name = (fields["business_name"] or "").strip()
        if not name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Business name is required")
        fields["business_name"] = name
    if "logo_url" in fields:
        fields["logo_url"] = (fields["logo_url"] or "").strip() or None
    if "brand_color" in fields and not fields["brand_color"]:
        fields.pop("brand_color")
    updated = BusinessesRepository(session).update(business, **fields)
    return _business_out(updated)


@router.get("/dashboard")
def get_dashboard(
    business: Business = Depends(get_current_business),
    session: Session = Depends(get_session),
) -> dict:
    return dashboard_summary(session, business)


@router.post("/logo")
async def upload_logo(
    file: UploadFile = File(...),
    target: str = Form("logo"),
    business: Business = Depends(get_current_business),
    session: Session = Depends(get_session),
    storage: MediaStorage = Depends(get_media_storage),
) -> dict:
    content_type = guess_content_type(file.filename, (file.content_type or "").split(";")[0].strip().lower())
    if not content_type or not content_type.startswith("image/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please upload an image file")
    data = await file.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")
    if len(data) > settings.LOGO_MAX_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Logo must be less than {settings.LOGO_MAX_BYTES // (1024 * 1024)}MB",
        )

    key = f"{business.id}/logo-{int(time.time() * 1000)}.{file_extension(file.filename, 'png')}"
    try:
        url = storage.upload_bytes(
            bucket=settings.LOGO_BUCKET,
            key=key,
            data=data,
            content_type=content_type,
        )
    except MediaStorageError as exc:
        logger.exception("Logo upload failed", extra={"business_id": business.id})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to upload logo: {exc}") from exc

    field = "custom_logo_url" if target == "branding" else "logo_url"
    updated = BusinessesRepository(session).update(business, **{field: url})
    return {"url": url, "business": _business_out(updated)}


@router.get("/branding")
def get_branding(business: Business = Depends(get_current_business)) -> dict:
    return branding_for(business).model_dump()


@router.put("/branding")
def update_branding(
    payload: BrandingSettings,
    business: Business = Depends(get_current_business),
    session: Session = Depends(get_session),
) -> dict:
    updated = BusinessesRepository(session).update(business, **branding_fields(payload))
    return branding_for(updated).model_dump()


@router.post("/branding/reset")
def reset_branding(
    business: Business = Depends(get_current_business),
    session: Session = Depends(get_session),
) -> dict:
    updated = BusinessesRepository(session).update(business, **branding_fields(BrandingSettings()))
    return branding_for(updated).model_dump()


@router.get("/email-settings")
def get_email_settings(business: Business = Depends(get_current_business)) -> dict:
    return email_settings_for(business).model_dump()


@router.put("/email-settings")
def update_email_settings(
    payload: EmailSettings,
    business: Business = Depends(get_current_business),
    session: Session = Depends(get_session),
) -> dict:
    fields = email_settings_fields(payload)
    if fields["notification_email"] and "@" not in fields["notification_email"]:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please enter a valid email address")
    updated = BusinessesRepository(session).update(business, **fields)
    return email_settings_for(updated).model_dump()


@router.post("/email-settings/test")
def send_test_email(
    business: Business = Depends(get_current_business),
    email_client: EmailClient = Depends(get_email_client),
) -> dict:
    to = (business.notification_email or "").strip()
    if not to:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please enter an email address first")
    try:
        send_test_notification(email_client, business, to)
    except EmailDeliveryError as exc:
        logger.warning("Test notification failed", extra={"business_id": business.id}, exc_info=exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return {"success": True, "sent_to": to}


@router.get("/widget")
def get_widget(business: Business = Depends(get_current_business)) -> dict:
    return widget_snippet(business)
