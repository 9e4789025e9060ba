from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from trustly.db.enums import MediaKindEnum, ModerationStatusEnum
from trustly.db.models import TestimonialPhoto, TestimonialVideo, utcnow

MediaRow = Union[TestimonialPhoto, TestimonialVideo]

_MODELS = {
    MediaKindEnum.photo: TestimonialPhoto,
    MediaKindEnum.video: TestimonialVideo,
}


def media_url(row: MediaRow) -> str:
    if isinstance(row, TestimonialPhoto):
        return row.photo_url
    return row.video_url


class TestimonialMediaRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list(self, kind: MediaKindEnum, testimonial_id: str) -> List[MediaRow]:
        model = _MODELS[kind]
        stmt = (
            select(model)
            .where(model.testimonial_id == testimonial_id)
            .order_by(model.uploaded_at.desc())
        )
        return list(self.session.scalars(stmt).all())

    def get(self, kind: MediaKindEnum, testimonial_id: str, media_id: str) -> Optional[MediaRow]:
        model = _MODELS[kind]
        stmt = select(model).where(model.testimonial_id == testimonial_id, model.id == media_id)
        return self.session.scalars(stmt).first()

    def create(self, kind: MediaKindEnum, *, testimonial_id: str, url: str, storage_key: Optional[str]) -> MediaRow:
        if kind == MediaKindEnum.photo:
            row: MediaRow = TestimonialPhoto(testimonial_id=testimonial_id, photo_url=url, storage_key=storage_key)
        else:
            row = TestimonialVideo(testimonial_id=testimonial_id, video_url=url, storage_key=storage_key)
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def set_status(
        self, row: MediaRow, status: ModerationStatusEnum, now: Optional[datetime] = None
    ) -> MediaRow:
        row.status = status
        row.approved_at = (now or utcnow()) if status == ModerationStatusEnum.approved else None
        self.session.commit()
        self.session.refresh(row)
        return row

    def delete(self, row: MediaRow) -> None:
        self.session.delete(row)
        self.session.commit()
