from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from trustly.config import settings
from trustly.db.enums import MediaKindEnum
from trustly.db.models import Business, Campaign, Testimonial, TestimonialPhoto, TestimonialVideo, utcnow
from trustly.db.repositories.businesses import BusinessesRepository
from trustly.db.repositories.campaigns import CampaignsRepository
from trustly.db.repositories.media import TestimonialMediaRepository
from trustly.db.repositories.recipients import CampaignRecipientsRepository
from trustly.db.repositories.testimonials import TestimonialsRepository
from trustly.schemas.form_config import FormConfig
from trustly.services.email import EmailClient
from trustly.services.form_config import campaign_form_config
from trustly.services.media_storage import (
    MediaStorage,
    MediaStorageConfigurationError,
    MediaStorageError,
    file_extension,
    guess_content_type,
)
from trustly.services.notifications import notify_new_testimonial
from trustly.services.sanitize import sanitize_text

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 255
TEXT_MAX_LENGTH = 2000
ANSWER_MAX_LENGTH = 1000

DUPLICATE_SUBMISSION_MESSAGE = "Please wait a few minutes before submitting another testimonial"


class SubmissionTargetNotFound(LookupError):
    pass


class SubmissionValidationError(ValueError):
    pass


class DuplicateSubmissionError(RuntimeError):
    pass


@dataclass
class UploadedMedia:
    filename: str
    content_type: Optional[str]
    data: bytes


@dataclass
class SubmissionInput:
    campaign_slug: Optional[str] = None
    business_id: Optional[str] = None
    recipient_token: Optional[str] = None
    name: str = ""
    email: Optional[str] = None
    rating: Optional[int] = None
    text: Optional[str] = None
    custom_answers: dict[str, Any] = field(default_factory=dict)
    photos: list[UploadedMedia] = field(default_factory=list)
    videos: list[UploadedMedia] = field(default_factory=list)


@dataclass
class SubmissionTarget:
    business: Business
    campaign: Optional[Campaign]

    @property
    def form_config(self) -> FormConfig:
        if self.campaign is None:
            return FormConfig()
        return campaign_form_config(self.campaign)


@dataclass
class CleanSubmission:
    name: str
    email: Optional[str]
    rating: int
    text: str
    custom_answers: dict[str, str]


@dataclass
class SubmissionResult:
    testimonial: Testimonial
    photos: list[TestimonialPhoto]
    videos: list[TestimonialVideo]
    warnings: list[str]
    form_config: FormConfig


def resolve_target(
    session: Session, *, campaign_slug: Optional[str], business_id: Optional[str]
) -> SubmissionTarget:
    if campaign_slug:
        campaign = CampaignsRepository(session).get_by_slug(campaign_slug)
        if not campaign:
            raise SubmissionTargetNotFound("Campaign not found")
        business = BusinessesRepository(session).get(campaign.business_id)
        if not business:
            raise SubmissionTargetNotFound("Business not found")
        return SubmissionTarget(business=business, campaign=campaign)
    if business_id:
        business = BusinessesRepository(session).get(business_id)
        if not business:
            raise SubmissionTargetNotFound("Business not found")
        return SubmissionTarget(business=business, campaign=None)
    raise SubmissionTargetNotFound("Campaign not found")


def _allows(target: SubmissionTarget, kind: str) -> bool:
    config = target.form_config
    field_config = getattr(config.fields, kind)
    if not field_config.enabled:
        return False
    if target.campaign is None:
        return True
    return bool(getattr(target.campaign, f"allow_{kind}", True))


def _check_media(items: list[UploadedMedia], *, kind: str) -> None:
    for item in items:
        content_type = guess_content_type(item.filename, item.content_type) or ""
        if not content_type.startswith(f"{'image' if kind == 'photo' else 'video'}/"):
            raise SubmissionValidationError(f"Unsupported {kind} type: {item.filename or 'upload'}")
        if len(item.data) > settings.TESTIMONIAL_MEDIA_MAX_BYTES:
            limit_mb = settings.TESTIMONIAL_MEDIA_MAX_BYTES // (1024 * 1024)
            raise SubmissionValidationError(f"{item.filename or 'Upload'} is larger than {limit_mb}MB")


def validate_submission(target: SubmissionTarget, data: SubmissionInput) -> CleanSubmission:
    """
    Validate and sanitize a public submission. Runs before any write; raises
    SubmissionValidationError with a user-facing message.
    """
    if not data.rating:
        raise SubmissionValidationError("Please select a rating")
    if data.rating < 1 or data.rating > 5:
        raise SubmissionValidationError("Rating must be between 1 and 5")

    config = target.form_config
    name = sanitize_text(data.name)
    email = sanitize_text(data.email)
    text = sanitize_text(data.text)

    if len(name) < NAME_MIN_LENGTH:
        raise SubmissionValidationError("Please enter your name (at least 2 characters)")
    if len(name) > NAME_MAX_LENGTH:
        raise SubmissionValidationError("Name must be less than 100 characters")

    if email:
        if "@" not in email:
            raise SubmissionValidationError("Please enter a valid email address")
        if len(email) > EMAIL_MAX_LENGTH:
            raise SubmissionValidationError("Email must be less than 255 characters")
    elif config.fields.email.enabled and config.fields.email.required:
        raise SubmissionValidationError("Please enter your email address")

    if text:
        if not _allows(target, "text"):
            raise SubmissionValidationError("Written testimonials are not enabled for this campaign")
        if len(text) > TEXT_MAX_LENGTH:
            raise SubmissionValidationError("Text must be less than 2000 characters")
    elif _allows(target, "text") and config.fields.text.required:
        raise SubmissionValidationError("Please share your experience")

    answers: dict[str, str] = {}
    for key, value in (data.custom_answers or {}).items():
        if value is None:
            continue
        if not isinstance(value, str):
            raise SubmissionValidationError("Answers must be text")
        cleaned = sanitize_text(value)
        if len(cleaned) > ANSWER_MAX_LENGTH:
            raise SubmissionValidationError("Answer must be less than 1000 characters")
        if cleaned:
            answers[str(key)] = cleaned

    questions = (target.campaign.custom_questions or []) if target.campaign else []
    for index, question in enumerate(questions):
        if question.get("required", False) and not answers.get(f"q{index}"):
            raise SubmissionValidationError(f"Please answer: {question.get('question', '')}")

    if data.photos:
        if not _allows(target, "photo"):
            raise SubmissionValidationError("Photo uploads are not enabled for this campaign")
        _check_media(data.photos, kind="photo")
    if data.videos:
        if not _allows(target, "video"):
            raise SubmissionValidationError("Video uploads are not enabled for this campaign")
        _check_media(data.videos, kind="video")

    return CleanSubmission(
        name=name,
        email=email or None,
        rating=int(data.rating),
        text=text,
        custom_answers=answers,
    )


def ensure_not_duplicate(session: Session, email: Optional[str], *, now: datetime) -> None:
    """Best-effort guard; two concurrent submissions from one address can both pass."""
    if not email:
        return
    window_start = now - timedelta(seconds=settings.DUPLICATE_SUBMISSION_WINDOW_SECONDS)
    if TestimonialsRepository(session).exists_recent_for_email(email, window_start):
        raise DuplicateSubmissionError(DUPLICATE_SUBMISSION_MESSAGE)


def _upload_media(
    session: Session,
    *,
    testimonial: Testimonial,
    items: list[UploadedMedia],
    kind: MediaKindEnum,
    storage_provider: Callable[[], MediaStorage],
    warnings: list[str],
) -> list:
    bucket = settings.PHOTO_BUCKET if kind == MediaKindEnum.photo else settings.VIDEO_BUCKET
    media_repo = TestimonialMediaRepository(session)
    rows = []
    for item in items:
        key = f"{testimonial.id}/{secrets.token_hex(8)}.{file_extension(item.filename)}"
        try:
            storage = storage_provider()
            url = storage.upload_bytes(
                bucket=bucket,
                key=key,
                data=item.data,
                content_type=guess_content_type(item.filename, item.content_type),
            )
            rows.append(media_repo.create(kind, testimonial_id=testimonial.id, url=url, storage_key=key))
        except (MediaStorageError, MediaStorageConfigurationError) as exc:
            logger.warning(
                "Testimonial media upload failed",
                extra={"testimonial_id": testimonial.id, "kind": kind.value, "upload_name": item.filename},
                exc_info=exc,
            )
            warnings.append(f"Failed to upload {kind.value}: {exc}")
    return rows


def submit_testimonial(
    session: Session,
    data: SubmissionInput,
    *,
    storage_provider: Callable[[], MediaStorage],
    email_client: EmailClient,
    now: Optional[datetime] = None,
) -> SubmissionResult:
    now = now or utcnow()
    target = resolve_target(session, campaign_slug=data.campaign_slug, business_id=data.business_id)
    clean = validate_submission(target, data)
    ensure_not_duplicate(session, clean.email, now=now)

    testimonial = TestimonialsRepository(session).create(
        business_id=target.business.id,
        campaign_id=target.campaign.id if target.campaign else None,
        name=clean.name,
        email=clean.email,
        rating=clean.rating,
        text=clean.text,
        custom_answers=clean.custom_answers,
        created_at=now,
    )
    logger.info(
        "Testimonial submitted",
        extra={
            "testimonial_id": testimonial.id,
            "business_id": target.business.id,
            "campaign_id": testimonial.campaign_id,
        },
    )

    warnings: list[str] = []
    photos = _upload_media(
        session,
        testimonial=testimonial,
        items=data.photos,
        kind=MediaKindEnum.photo,
        storage_provider=storage_provider,
        warnings=warnings,
    )
    videos = _upload_media(
        session,
        testimonial=testimonial,
        items=data.videos,
        kind=MediaKindEnum.video,
        storage_provider=storage_provider,
        warnings=warnings,
    )

    if data.recipient_token:
        _mark_recipient_submitted(session, data.recipient_token, target=target, now=now)

    notify_new_testimonial(email_client, target.business, testimonial)

    return SubmissionResult(
        testimonial=testimonial,
        photos=photos,
        videos=videos,
        warnings=warnings,
        form_config=target.form_config,
    )


def _mark_recipient_submitted(
    session: Session, token: str, *, target: SubmissionTarget, now: datetime
) -> None:
    recipients = CampaignRecipientsRepository(session)
    recipient = recipients.get_by_token(token)
    if not recipient:
        logger.warning("Unknown recipient token on submission", extra={"token": token})
        return
    campaign = recipient.campaign
    if campaign.business_id != target.business.id or (target.campaign and campaign.id != target.campaign.id):
        logger.warning(
            "Recipient token does not belong to the submission target",
            extra={"token": token, "business_id": target.business.id},
        )
        return
    recipients.mark_submitted(recipient, submitted_at=now)
    CampaignsRepository(session).increment_submitted(recipient.campaign_id)
