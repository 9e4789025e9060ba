from __future__ import annotations

import json
import logging
from typing import Callable, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from trustly.db.deps import get_session
from trustly.db.enums import ModerationStatusEnum
from trustly.db.repositories.businesses import BusinessesRepository
from trustly.db.repositories.campaigns import CampaignsRepository
from trustly.db.repositories.recipients import CampaignRecipientsRepository
from trustly.db.repositories.testimonials import TestimonialsRepository
from trustly.schemas.testimonials import PhotoOut, PublicTestimonialOut, TestimonialOut, VideoOut
from trustly.services.businesses import public_branding
from trustly.services.email import EmailClient, get_email_client
from trustly.services.form_config import campaign_form_config, serialize_form_config
from trustly.services.media_storage import MediaStorage, get_media_storage_provider
from trustly.services.submissions import (
    DuplicateSubmissionError,
    SubmissionInput,
    SubmissionTargetNotFound,
    SubmissionValidationError,
    UploadedMedia,
    submit_testimonial,
)

router = APIRouter(prefix="/public", tags=["public"])
logger = logging.getLogger(__name__)


@router.get("/campaigns/{slug}")
def get_public_campaign(slug: str, session: Session = Depends(get_session)) -> dict:
    campaign = CampaignsRepository(session).get_by_slug(slug)
    business = BusinessesRepository(session).get(campaign.business_id) if campaign else None
    if not campaign or not business:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Campaign not found")
    return {
        "campaign": {
            "id": campaign.id,
            "business_id": campaign.business_id,
            "name": campaign.name,
            "description": campaign.description,
            "welcome_video_url": campaign.welcome_video_url,
            "video_autoplay": campaign.video_autoplay,
            "custom_questions": campaign.custom_questions or [],
            "allow_video": campaign.allow_video,
            "allow_photo": campaign.allow_photo,
            "allow_text": campaign.allow_text,
            "allow_rating": campaign.allow_rating,
            "unique_slug": campaign.unique_slug,
        },
        "business": public_branding(business).model_dump(),
        "form_config": serialize_form_config(campaign_form_config(campaign)),
    }


@router.get("/businesses/{business_id}")
def get_public_business(business_id: str, session: Session = Depends(get_session)) -> dict:
    business = BusinessesRepository(session).get(business_id)
    if not business:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Business not found")
    return public_branding(business).model_dump()


@router.get("/businesses/{business_id}/testimonials")
def list_public_testimonials(business_id: str, session: Session = Depends(get_session)) -> list:
    if not BusinessesRepository(session).get(business_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Business not found")
    items = []
    for testimonial in TestimonialsRepository(session).list_approved(business_id):
        out = PublicTestimonialOut(
            id=testimonial.id,
            name=testimonial.name,
            rating=testimonial.rating,
            text=testimonial.text,
            created_at=testimonial.created_at,
            photos=[p.photo_url for p in testimonial.photos if p.status == ModerationStatusEnum.approved],
            videos=[v.video_url for v in testimonial.videos if v.status == ModerationStatusEnum.approved],
        )
        items.append(jsonable_encoder(out))
    return items


@router.get("/recipients/{token}")
def get_public_recipient(token: str, session: Session = Depends(get_session)) -> dict:
    recipient = CampaignRecipientsRepository(session).get_by_token(token)
    if not recipient:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipient not found")
    return {"customer_name": recipient.customer_name, "customer_email": recipient.customer_email}


def _parse_answers(raw: Optional[str]) -> dict:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid custom answers") from exc
    if not isinstance(parsed, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid custom answers")
    return parsed


async def _read_uploads(files: Optional[list[UploadFile]]) -> list[UploadedMedia]:
    uploads = []
    for file in files or []:
        data = await file.read()
        if not data:
            continue
        uploads.append(UploadedMedia(filename=file.filename or "upload", content_type=file.content_type, data=data))
    return uploads


@router.post("/submissions", status_code=status.HTTP_201_CREATED)
async def create_submission(
    campaign_slug: Optional[str] = Form(default=None),
    business_id: Optional[str] = Form(default=None),
    recipient_token: Optional[str] = Form(default=None),
    name: str = Form(default=""),
    email: Optional[str] = Form(default=None),
    rating: Optional[int] = Form(default=None),
    text: Optional[str] = Form(default=None),
    custom_answers: Optional[str] = Form(default=None),
    photos: Optional[list[UploadFile]] = File(default=None),
    videos: Optional[list[UploadFile]] = File(default=None),
    session: Session = Depends(get_session),
    storage_provider: Callable[[], MediaStorage] = Depends(get_media_storage_provider),
    email_client: EmailClient = Depends(get_email_client),
) -> dict:
    data = SubmissionInput(
        campaign_slug=(campaign_slug or "").strip() or None,
        business_id=(business_id or "").strip() or None,
        recipient_token=(recipient_token or "").strip() or None,
        name=name,
        email=email,
        rating=rating,
        text=text,
        custom_answers=_parse_answers(custom_answers),
        photos=await _read_uploads(photos),
        videos=await _read_uploads(videos),
    )
    try:
        result = submit_testimonial(
            session,
            data,
            storage_provider=storage_provider,
            email_client=email_client,
        )
    except SubmissionTargetNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except SubmissionValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except DuplicateSubmissionError as exc:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(exc)) from exc

    customization = result.form_config.customization
    return {
        "testimonial": jsonable_encoder(TestimonialOut.model_validate(result.testimonial)),
        "photos": [jsonable_encoder(PhotoOut.model_validate(p)) for p in result.photos],
        "videos": [jsonable_encoder(VideoOut.model_validate(v)) for v in result.videos],
        "warnings": result.warnings,
        "success_title": customization.successTitle,
        "success_message": customization.successMessage,
    }
