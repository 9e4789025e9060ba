from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from trustly.db.models import Business

DEFAULT_BUSINESS_NAME = "My Business"


class BusinessesRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, business_id: str) -> Optional[Business]:
        return self.session.get(Business, business_id)

    def get_for_user(self, user_id: str) -> Optional[Business]:
        stmt = select(Business).where(Business.user_id == user_id)
        return self.session.scalars(stmt).first()

    def get_owned(self, business_id: str, user_id: str) -> Optional[Business]:
        stmt = select(Business).where(Business.id == business_id, Business.user_id == user_id)
        return self.session.scalars(stmt).first()

    def create(self, user_id: str, business_name: Optional[str] = None, **fields) -> Business:
        name = (business_name or "").strip() or DEFAULT_BUSINESS_NAME
        business = Business(user_id=user_id, business_name=name, **fields)
        self.session.add(business)
        self.session.commit()
        self.session.refresh(business)
        return business

    def get_or_create_for_user(self, user_id: str, business_name: Optional[str] = None) -> tuple[Business, bool]:
        existing = self.get_for_user(user_id)
        if existing:
            return existing, False
        return self.create(user_id, business_name), True

    def update(self, business: Business, **fields) -> Business:
        for key, value in fields.items():
            setattr(business, key, value)
        self.session.commit()
        self.session.refresh(business)
        return business
