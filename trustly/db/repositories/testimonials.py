from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from trustly.db.enums import ModerationStatusEnum
from trustly.db.models import Testimonial


class TestimonialsRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list(
        self,
        business_id: str,
        *,
        status: Optional[ModerationStatusEnum] = None,
        campaign_id: Optional[str] = None,
        created_since: Optional[datetime] = None,
    ) -> List[Testimonial]:
        stmt = (
            select(Testimonial)
            .options(selectinload(Testimonial.campaign))
            .where(Testimonial.business_id == business_id)
        )
        if status:
            stmt = stmt.where(Testimonial.status == status)
        if campaign_id:
            stmt = stmt.where(Testimonial.campaign_id == campaign_id)
        if created_since:
            stmt = stmt.where(Testimonial.created_at >= created_since)
        stmt = stmt.order_by(Testimonial.created_at.desc())
        return list(self.session.scalars(stmt).all())

    def list_approved(self, business_id: str) -> List[Testimonial]:
        stmt = (
            select(Testimonial)
            .options(selectinload(Testimonial.photos), selectinload(Testimonial.videos))
            .where(
                Testimonial.business_id == business_id,
                Testimonial.status == ModerationStatusEnum.approved,
            )
            .order_by(Testimonial.created_at.desc())
        )
        return list(self.session.scalars(stmt).all())

    def get(self, business_id: str, testimonial_id: str) -> Optional[Testimonial]:
        stmt = select(Testimonial).where(
            Testimonial.business_id == business_id, Testimonial.id == testimonial_id
        )
        return self.session.scalars(stmt).first()

    def count_by_status(self, business_id: str) -> dict[str, int]:
        stmt = (
            select(Testimonial.status, func.count(Testimonial.id))
            .where(Testimonial.business_id == business_id)
            .group_by(Testimonial.status)
        )
        counts = {status.value: 0 for status in ModerationStatusEnum}
        for status, count in self.session.execute(stmt).all():
            counts[ModerationStatusEnum(status).value] = count
        return counts

    def exists_recent_for_email(self, email: str, since: datetime) -> bool:
        stmt = (
            select(Testimonial.id)
            .where(Testimonial.email == email, Testimonial.created_at >= since)
            .limit(1)
        )
        return self.session.execute(stmt).first() is not None

    def create(
        self,
        *,
        business_id: str,
        campaign_id: Optional[str],
        name: str,
        email: Optional[str],
        rating: int,
        text: str,
        custom_answers: dict[str, Any],
        created_at: Optional[datetime] = None,
    ) -> Testimonial:
        testimonial = Testimonial(
            business_id=business_id,
            campaign_id=campaign_id,
            name=name,
            email=email,
            rating=rating,
            text=text,
            custom_answers=custom_answers,
            status=ModerationStatusEnum.pending,
        )
        if created_at is not None:
            testimonial.created_at = created_at
        self.session.add(testimonial)
        self.session.commit()
        self.session.refresh(testimonial)
        return testimonial

    def set_status(self, testimonial: Testimonial, status: ModerationStatusEnum) -> Testimonial:
        testimonial.status = status
        self.session.commit()
        self.session.refresh(testimonial)
        return testimonial
