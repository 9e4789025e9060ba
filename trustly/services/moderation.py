from __future__ import annotations

import logging
import secrets
from typing import Optional

from sqlalchemy.orm import Session

from trustly.config import settings
from trustly.db.enums import MediaKindEnum, ModerationStatusEnum
from trustly.db.models import Business, Testimonial
from trustly.db.repositories.media import MediaRow, TestimonialMediaRepository, media_url
from trustly.db.repositories.testimonials import TestimonialsRepository
from trustly.services.email import EmailClient
from trustly.services.media_storage import MediaStorage, file_extension, guess_content_type
from trustly.services.notifications import notify_testimonial_approved

logger = logging.getLogger(__name__)


def media_bucket(kind: MediaKindEnum) -> str:
    return settings.PHOTO_BUCKET if kind == MediaKindEnum.photo else settings.VIDEO_BUCKET


def set_testimonial_status(
    session: Session,
    *,
    business: Business,
    testimonial: Testimonial,
    status: ModerationStatusEnum,
    email_client: EmailClient,
) -> Testimonial:
    """Any status may move to any other; approval notifies the owner when enabled."""
    previous = testimonial.status
    updated = TestimonialsRepository(session).set_status(testimonial, status)
    logger.info(
        "Testimonial status changed",
        extra={"testimonial_id": testimonial.id, "from": str(previous), "to": status.value},
    )
    if status == ModerationStatusEnum.approved and previous != ModerationStatusEnum.approved:
        notify_testimonial_approved(email_client, business, updated)
    return updated


def add_media(
    session: Session,
    *,
    testimonial: Testimonial,
    kind: MediaKindEnum,
    filename: str,
    content_type: Optional[str],
    data: bytes,
    storage: MediaStorage,
) -> MediaRow:
    key = f"{testimonial.id}/{secrets.token_hex(8)}.{file_extension(filename)}"
    url = storage.upload_bytes(
        bucket=media_bucket(kind),
        key=key,
        data=data,
        content_type=guess_content_type(filename, content_type),
    )
    return TestimonialMediaRepository(session).create(
        kind, testimonial_id=testimonial.id, url=url, storage_key=key
    )


def delete_media(
    session: Session,
    *,
    kind: MediaKindEnum,
    row: MediaRow,
    storage: MediaStorage,
) -> None:
    """Remove the stored object, then the row. The parent testimonial is left untouched."""
    bucket = media_bucket(kind)
    key = row.storage_key or storage.key_from_public_url(bucket, media_url(row))
    if key:
        storage.delete_object(bucket=bucket, key=key)
    else:
        logger.warning("No storage key for media row", extra={"media_id": row.id, "kind": kind.value})
    TestimonialMediaRepository(session).delete(row)
