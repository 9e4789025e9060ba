from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from trustly.db.enums import RecipientStatusEnum
from trustly.db.models import CampaignRecipient, utcnow


class CampaignRecipientsRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list(self, campaign_id: str) -> List[CampaignRecipient]:
        stmt = (
            select(CampaignRecipient)
            .where(CampaignRecipient.campaign_id == campaign_id)
            .order_by(CampaignRecipient.created_at.asc())
        )
        return list(self.session.scalars(stmt).all())

    def get_by_token(self, token: str) -> Optional[CampaignRecipient]:
        stmt = select(CampaignRecipient).where(CampaignRecipient.unique_token == token)
        return self.session.scalars(stmt).first()

    def create(self, *, campaign_id: str, customer_name: str, customer_email: str, unique_token: str) -> CampaignRecipient:
        recipient = CampaignRecipient(
            campaign_id=campaign_id,
            customer_name=customer_name,
            customer_email=customer_email,
            unique_token=unique_token,
            status=RecipientStatusEnum.pending,
        )
        self.session.add(recipient)
        self.session.commit()
        self.session.refresh(recipient)
        return recipient

    def mark_sent(self, recipient: CampaignRecipient, sent_at: Optional[datetime] = None) -> CampaignRecipient:
        recipient.status = RecipientStatusEnum.sent
        recipient.sent_at = sent_at or utcnow()
        self.session.commit()
        self.session.refresh(recipient)
        return recipient

    def mark_submitted(
        self, recipient: CampaignRecipient, submitted_at: Optional[datetime] = None
    ) -> CampaignRecipient:
        recipient.status = RecipientStatusEnum.submitted
        recipient.submitted_at = submitted_at or utcnow()
        self.session.commit()
        self.session.refresh(recipient)
        return recipient
