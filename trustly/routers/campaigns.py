from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from trustly.auth.dependencies import AuthContext, get_current_user
from trustly.config import settings
from trustly.db.deps import get_session
from trustly.db.models import Campaign
from trustly.db.repositories.campaigns import CampaignsRepository
from trustly.db.repositories.recipients import CampaignRecipientsRepository
from trustly.db.repositories.testimonials import TestimonialsRepository
from trustly.schemas.campaigns import (
    CampaignCreateRequest,
    CampaignOut,
    CampaignStats,
    CampaignUpdateRequest,
    RecipientOut,
)
from trustly.schemas.form_config import FormConfig
from trustly.schemas.testimonials import TestimonialOut
from trustly.services.form_config import campaign_form_config, serialize_form_config
from trustly.services.media_storage import (
    MediaStorage,
    MediaStorageError,
    file_extension,
    get_media_storage,
    guess_content_type,
)

router = APIRouter(prefix="/campaigns", tags=["campaigns"])
logger = logging.getLogger(__name__)


def _clean_optional(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def _campaign_or_404(session: Session, auth: AuthContext, campaign_id: str) -> Campaign:
    campaign = CampaignsRepository(session).get(business_id=auth.business_id, campaign_id=campaign_id)
    if not campaign:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Campaign not found")
    return campaign


def _campaign_out(campaign: Campaign) -> dict:
    return jsonable_encoder(CampaignOut.model_validate(campaign))


def campaign_link(campaign: Campaign) -> str:
    return f"{settings.app_base_url}/submit/{campaign.unique_slug}"


@router.get("")
def list_campaigns(
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> list:
    return [_campaign_out(c) for c in CampaignsRepository(session).list(auth.business_id)]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_campaign(
    payload: CampaignCreateRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    fields = payload.model_dump(exclude={"name"})
    fields["description"] = _clean_optional(payload.description)
    fields["welcome_video_url"] = _clean_optional(payload.welcome_video_url)
    campaign = CampaignsRepository(session).create(auth.business_id, payload.name, **fields)
    logger.info("Created campaign", extra={"campaign_id": campaign.id, "business_id": auth.business_id})
    return _campaign_out(campaign)


@router.get("/{campaign_id}")
def get_campaign(
    campaign_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    return _campaign_out(_campaign_or_404(session, auth, campaign_id))


@router.patch("/{campaign_id}")
def update_campaign(
    campaign_id: str,
    payload: CampaignUpdateRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    fields = payload.model_dump(exclude_unset=True)
    for key in ("description", "welcome_video_url"):
        if key in fields:
            fields[key] = _clean_optional(fields[key])
    if "name" in fields and fields["name"] is None:
        fields.pop("name")
    for key in ("video_autoplay", "allow_video", "allow_photo", "allow_text", "allow_rating", "custom_questions"):
        if key in fields and fields[key] is None:
            fields.pop(key)
    campaign = CampaignsRepository(session).update(auth.business_id, campaign_id, **fields)
    if not campaign:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Campaign not found")
    return _campaign_out(campaign)


@router.delete("/{campaign_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_campaign(
    campaign_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> None:
    deleted = CampaignsRepository(session).delete(auth.business_id, campaign_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Campaign not found")
    logger.info("Deleted campaign", extra={"campaign_id": campaign_id, "business_id": auth.business_id})


@router.get("/{campaign_id}/link")
def get_campaign_link(
    campaign_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    campaign = _campaign_or_404(session, auth, campaign_id)
    return {"campaign_id": campaign.id, "unique_slug": campaign.unique_slug, "url": campaign_link(campaign)}


@router.post("/{campaign_id}/welcome-video")
async def upload_welcome_video(
    campaign_id: str,
    file: UploadFile = File(...),
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
    storage: MediaStorage = Depends(get_media_storage),
) -> dict:
    campaign = _campaign_or_404(session, auth, campaign_id)
    content_type = guess_content_type(file.filename, (file.content_type or "").split(";")[0].strip().lower())
    if not content_type or not content_type.startswith("video/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please upload a video file")
    data = await file.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")
    if len(data) > settings.WELCOME_VIDEO_MAX_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Video must be less than {settings.WELCOME_VIDEO_MAX_BYTES // (1024 * 1024)}MB",
        )

    key = f"{auth.business_id}-{int(time.time() * 1000)}.{file_extension(file.filename, 'mp4')}"
    try:
        url = storage.upload_bytes(
            bucket=settings.WELCOME_VIDEO_BUCKET,
            key=key,
            data=data,
            content_type=content_type,
        )
    except MediaStorageError as exc:
        logger.exception("Welcome video upload failed", extra={"campaign_id": campaign.id})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to upload video: {exc}") from exc

    updated = CampaignsRepository(session).update(auth.business_id, campaign.id, welcome_video_url=url)
    return _campaign_out(updated)


@router.get("/{campaign_id}/stats")
def get_campaign_stats(
    campaign_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    campaign = _campaign_or_404(session, auth, campaign_id)
    testimonials = TestimonialsRepository(session).list(auth.business_id, campaign_id=campaign.id)
    total = len(testimonials)
    average = sum(t.rating for t in testimonials) / total if total else 0.0
    stats = CampaignStats(
        total=total,
        approved=sum(1 for t in testimonials if t.status.value == "approved"),
        pending=sum(1 for t in testimonials if t.status.value == "pending"),
        rejected=sum(1 for t in testimonials if t.status.value == "rejected"),
        average_rating=round(average, 1),
        total_sent=campaign.total_sent or 0,
        total_submitted=campaign.total_submitted or 0,
    )
    return stats.model_dump()


@router.get("/{campaign_id}/testimonials")
def list_campaign_testimonials(
    campaign_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> list:
    campaign = _campaign_or_404(session, auth, campaign_id)
    testimonials = TestimonialsRepository(session).list(auth.business_id, campaign_id=campaign.id)
    return [jsonable_encoder(TestimonialOut.model_validate(t)) for t in testimonials]


@router.get("/{campaign_id}/recipients")
def list_campaign_recipients(
    campaign_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> list:
    campaign = _campaign_or_404(session, auth, campaign_id)
    recipients = CampaignRecipientsRepository(session).list(campaign.id)
    return [jsonable_encoder(RecipientOut.model_validate(r)) for r in recipients]


@router.get("/{campaign_id}/form-config")
def get_form_config(
    campaign_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    campaign = _campaign_or_404(session, auth, campaign_id)
    return serialize_form_config(campaign_form_config(campaign))


@router.put("/{campaign_id}/form-config")
def save_form_config(
    campaign_id: str,
    payload: FormConfig,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    campaign = _campaign_or_404(session, auth, campaign_id)
    updated = CampaignsRepository(session).update(
        auth.business_id, campaign.id, form_config=serialize_form_config(payload)
    )
    return serialize_form_config(campaign_form_config(updated))
