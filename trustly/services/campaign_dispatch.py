from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Sequence
from urllib.parse import urlencode

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from trustly.config import settings
from trustly.db.models import Business, Campaign
from trustly.db.repositories.campaigns import CampaignsRepository
from trustly.db.repositories.recipients import CampaignRecipientsRepository
from trustly.services.csv_import import Customer
from trustly.services.email import EmailClient, EmailDeliveryError, format_sender
from trustly.services.email_templates import INVITATION_SUBJECT, render_invitation

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    campaign: Campaign
    sent_count: int
    total_customers: int


def recipient_link(business_id: str, token: str) -> str:
    query = urlencode({"b": business_id, "t": token})
    return f"{settings.app_base_url}/submit?{query}"


def dispatch_campaign(
    session: Session,
    *,
    business: Business,
    campaign_name: str,
    customers: Sequence[Customer],
    email_client: EmailClient,
) -> DispatchResult:
    """
    Create a campaign and invite each customer in turn.

    Each customer gets a pending recipient row, a personal link and one email; a
    successful send flips the row to `sent`. A failure for one customer is logged
    and skipped. `total_sent` is overwritten with the success count at the end.
    """
    campaigns = CampaignsRepository(session)
    recipients = CampaignRecipientsRepository(session)

    logger.info(
        "Starting campaign dispatch",
        extra={"business_id": business.id, "campaign_name": campaign_name, "customers": len(customers)},
    )
    campaign = campaigns.create(business.id, campaign_name)

    sent_count = 0
    sender = format_sender(business.business_name)
    for customer in customers:
        token = str(uuid.uuid4())
        try:
            recipient = recipients.create(
                campaign_id=campaign.id,
                customer_name=customer.name,
                customer_email=customer.email,
                unique_token=token,
            )
            html = render_invitation(
                business_name=business.business_name,
                brand_color=business.brand_color,
                customer_name=customer.name,
                link=recipient_link(business.id, token),
            )
            email_client.send(sender=sender, to=[customer.email], subject=INVITATION_SUBJECT, html=html)
            recipients.mark_sent(recipient)
            sent_count += 1
        except SQLAlchemyError:
            session.rollback()
            logger.exception(
                "Failed to record campaign recipient",
                extra={"campaign_id": campaign.id, "email": customer.email},
            )
        except EmailDeliveryError:
            logger.exception(
                "Failed to send campaign email",
                extra={"campaign_id": campaign.id, "email": customer.email},
            )

    campaigns.set_total_sent(campaign, sent_count)
    logger.info(
        "Campaign dispatch complete",
        extra={"campaign_id": campaign.id, "sent": f"{sent_count}/{len(customers)}"},
    )
    return DispatchResult(campaign=campaign, sent_count=sent_count, total_customers=len(customers))
