import re
import secrets
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from trustly.db.models import Campaign, Testimonial


class CampaignsRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    @staticmethod
    def _slugify(value: str) -> str:
        text = (value or "").strip().lower()
        text = re.sub(r"[^a-z0-9]+", "-", text)
        text = re.sub(r"-{2,}", "-", text).strip("-")
        return text or "campaign"

    def _generate_unique_slug(self, name: str) -> str:
        base = self._slugify(name)
        while True:
            slug = f"{base}-{secrets.token_hex(3)}"
            exists = self.session.execute(select(Campaign.id).where(Campaign.unique_slug == slug)).first()
            if not exists:
                return slug

    def list(self, business_id: str) -> List[Campaign]:
        stmt = (
            select(Campaign)
            .where(Campaign.business_id == business_id)
            .order_by(Campaign.created_at.desc())
        )
        return list(self.session.scalars(stmt).all())

    def get(self, business_id: str, campaign_id: str) -> Optional[Campaign]:
        stmt = select(Campaign).where(Campaign.business_id == business_id, Campaign.id == campaign_id)
        return self.session.scalars(stmt).first()

    def get_by_id(self, campaign_id: str) -> Optional[Campaign]:
        return self.session.get(Campaign, campaign_id)

    def get_by_slug(self, slug: str) -> Optional[Campaign]:
        stmt = select(Campaign).where(Campaign.unique_slug == slug)
        return self.session.scalars(stmt).first()

    def create(self, business_id: str, name: str, **fields) -> Campaign:
        campaign = Campaign(
            business_id=business_id,
            name=name,
            unique_slug=self._generate_unique_slug(name),
            **fields,
        )
        self.session.add(campaign)
        self.session.commit()
        self.session.refresh(campaign)
        return campaign

    def update(self, business_id: str, campaign_id: str, **fields) -> Optional[Campaign]:
        campaign = self.get(business_id, campaign_id)
        if not campaign:
            return None
        for key, value in fields.items():
            setattr(campaign, key, value)
        self.session.commit()
        self.session.refresh(campaign)
        return campaign

    def delete(self, business_id: str, campaign_id: str) -> bool:
        campaign = self.get(business_id, campaign_id)
        if not campaign:
            return False
        # Testimonials outlive their campaign.
        self.session.execute(
            update(Testimonial).where(Testimonial.campaign_id == campaign.id).values(campaign_id=None)
        )
        self.session.delete(campaign)
        self.session.commit()
        return True

    def set_total_sent(self, campaign: Campaign, total_sent: int) -> Campaign:
        campaign.total_sent = total_sent
        self.session.commit()
        self.session.refresh(campaign)
        return campaign

    def increment_submitted(self, campaign_id: str) -> Optional[Campaign]:
        """Read-modify-write bump of total_submitted; concurrent submissions can lose updates."""
        campaign = self.get_by_id(campaign_id)
        if not campaign:
            return None
        current = campaign.total_submitted or 0
        campaign.total_submitted = current + 1
        self.session.commit()
        self.session.refresh(campaign)
        return campaign
