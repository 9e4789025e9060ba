from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from trustly.auth.dependencies import AuthContext, get_current_user
from trustly.config import settings
from trustly.db.deps import get_session
from trustly.db.enums import MediaKindEnum, ModerationStatusEnum
from trustly.db.models import Testimonial
from trustly.db.repositories.businesses import BusinessesRepository
from trustly.db.repositories.media import MediaRow, TestimonialMediaRepository, media_url
from trustly.db.repositories.testimonials import TestimonialsRepository
from trustly.schemas.testimonials import (
    PhotoOut,
    StatusUpdateRequest,
    TestimonialOut,
    TestimonialWithCampaignOut,
    VideoOut,
)
from trustly.services.email import EmailClient, get_email_client
from trustly.services.media_storage import MediaStorage, MediaStorageError, get_media_storage, guess_content_type
from trustly.services.moderation import add_media, delete_media, set_testimonial_status

router = APIRouter(prefix="/testimonials", tags=["testimonials"])
logger = logging.getLogger(__name__)

_MEDIA_PATHS = {"photos": MediaKindEnum.photo, "videos": MediaKindEnum.video}


def _testimonial_or_404(session: Session, auth: AuthContext, testimonial_id: str) -> Testimonial:
    testimonial = TestimonialsRepository(session).get(auth.business_id, testimonial_id)
    if not testimonial:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Testimonial not found")
    return testimonial


def _kind_or_404(media_path: str) -> MediaKindEnum:
    kind = _MEDIA_PATHS.get(media_path)
    if not kind:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return kind


def _media_or_404(session: Session, kind: MediaKindEnum, testimonial_id: str, media_id: str) -> MediaRow:
    row = TestimonialMediaRepository(session).get(kind, testimonial_id, media_id)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{kind.value.capitalize()} not found")
    return row


def _media_out(kind: MediaKindEnum, row: MediaRow) -> dict:
    schema = PhotoOut if kind == MediaKindEnum.photo else VideoOut
    return jsonable_encoder(schema.model_validate(row))


def _with_campaign(testimonial: Testimonial) -> dict:
    out = TestimonialWithCampaignOut.model_validate(testimonial)
    out.campaign_name = testimonial.campaign.name if testimonial.campaign else None
    return jsonable_encoder(out)


@router.get("")
def list_testimonials(
    status_filter: Optional[ModerationStatusEnum] = Query(default=None, alias="status"),
    campaign_id: Optional[str] = None,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> list:
    testimonials = TestimonialsRepository(session).list(
        auth.business_id, status=status_filter, campaign_id=campaign_id
    )
    return [_with_campaign(t) for t in testimonials]


@router.get("/{testimonial_id}")
def get_testimonial(
    testimonial_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    return _with_campaign(_testimonial_or_404(session, auth, testimonial_id))


@router.patch("/{testimonial_id}")
def update_testimonial_status(
    testimonial_id: str,
    payload: StatusUpdateRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
    email_client: EmailClient = Depends(get_email_client),
) -> dict:
    testimonial = _testimonial_or_404(session, auth, testimonial_id)
    business = BusinessesRepository(session).get(auth.business_id)
    updated = set_testimonial_status(
        session,
        business=business,
        testimonial=testimonial,
        status=payload.status,
        email_client=email_client,
    )
    return jsonable_encoder(TestimonialOut.model_validate(updated))


@router.get("/{testimonial_id}/media")
def list_testimonial_media(
    testimonial_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    testimonial = _testimonial_or_404(session, auth, testimonial_id)
    repo = TestimonialMediaRepository(session)
    return {
        "photos": [_media_out(MediaKindEnum.photo, p) for p in repo.list(MediaKindEnum.photo, testimonial.id)],
        "videos": [_media_out(MediaKindEnum.video, v) for v in repo.list(MediaKindEnum.video, testimonial.id)],
    }


@router.post("/{testimonial_id}/media", status_code=status.HTTP_201_CREATED)
async def upload_testimonial_media(
    testimonial_id: str,
    kind: MediaKindEnum = Form(...),
    files: list[UploadFile] = File(...),
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
    storage: MediaStorage = Depends(get_media_storage),
) -> dict:
    testimonial = _testimonial_or_404(session, auth, testimonial_id)
    prefix = "image/" if kind == MediaKindEnum.photo else "video/"

    uploads: list[tuple[UploadFile, bytes, str]] = []
    for file in files:
        content_type = guess_content_type(file.filename, (file.content_type or "").split(";")[0].strip().lower())
        if not content_type or not content_type.startswith(prefix):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unsupported {kind.value} type: {file.filename or 'upload'}",
            )
        data = await file.read()
        if not data:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{file.filename or 'Upload'} is empty",
            )
        if len(data) > settings.TESTIMONIAL_MEDIA_MAX_BYTES:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"{file.filename or 'Upload'} is larger than "
                f"{settings.TESTIMONIAL_MEDIA_MAX_BYTES // (1024 * 1024)}MB",
            )
        uploads.append((file, data, content_type))

    created = []
    warnings = []
    for file, data, content_type in uploads:
        try:
            row = add_media(
                session,
                testimonial=testimonial,
                kind=kind,
                filename=file.filename or "upload",
                content_type=content_type,
                data=data,
                storage=storage,
            )
        except MediaStorageError as exc:
            logger.warning(
                "Owner media upload failed",
                extra={"testimonial_id": testimonial.id, "upload_name": file.filename},
                exc_info=exc,
            )
            warnings.append(f"Failed to upload {kind.value}: {exc}")
            continue
        created.append(_media_out(kind, row))
    return {"items": created, "warnings": warnings}


@router.patch("/{testimonial_id}/{media_path}/{media_id}")
def update_media_status(
    testimonial_id: str,
    media_path: str,
    media_id: str,
    payload: StatusUpdateRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    kind = _kind_or_404(media_path)
    testimonial = _testimonial_or_404(session, auth, testimonial_id)
    row = _media_or_404(session, kind, testimonial.id, media_id)
    updated = TestimonialMediaRepository(session).set_status(row, payload.status)
    return _media_out(kind, updated)


@router.delete("/{testimonial_id}/{media_path}/{media_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_testimonial_media(
    testimonial_id: str,
    media_path: str,
    media_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
    storage: MediaStorage = Depends(get_media_storage),
) -> None:
    kind = _kind_or_404(media_path)
    testimonial = _testimonial_or_404(session, auth, testimonial_id)
    row = _media_or_404(session, kind, testimonial.id, media_id)
    try:
        delete_media(session, kind=kind, row=row, storage=storage)
    except MediaStorageError as exc:
        logger.exception("Media delete failed", extra={"media_id": media_id, "kind": kind.value})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to delete {kind.value}: {exc}") from exc


@router.get("/{testimonial_id}/{media_path}/{media_id}/download")
def download_testimonial_media(
    testimonial_id: str,
    media_path: str,
    media_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> RedirectResponse:
    kind = _kind_or_404(media_path)
    testimonial = _testimonial_or_404(session, auth, testimonial_id)
    row = _media_or_404(session, kind, testimonial.id, media_id)
    return RedirectResponse(url=media_url(row), status_code=status.HTTP_302_FOUND)
