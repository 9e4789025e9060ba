from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from trustly.auth.dependencies import AuthContext, get_current_user
from trustly.db.deps import get_session
from trustly.db.repositories.businesses import BusinessesRepository
from trustly.schemas.email_campaigns import EmailCampaignRequest, EmailCampaignResponse
from trustly.services.campaign_dispatch import DispatchResult, dispatch_campaign
from trustly.services.csv_import import Customer, parse_customers_csv
from trustly.services.email import EmailClient, get_email_client

router = APIRouter(prefix="/email-campaigns", tags=["email-campaigns"])


def _dispatch_response(result: DispatchResult) -> dict:
    return EmailCampaignResponse(
        success=True,
        campaign_id=result.campaign.id,
        sent_count=result.sent_count,
        total_customers=result.total_customers,
    ).model_dump()


@router.post("")
def send_email_campaign(
    payload: EmailCampaignRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
    email_client: EmailClient = Depends(get_email_client),
) -> dict:
    business = BusinessesRepository(session).get_owned(payload.business_id, auth.user_id)
    if not business:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Business not found or unauthorized")
    result = dispatch_campaign(
        session,
        business=business,
        campaign_name=payload.campaign_name,
        customers=[Customer(name=c.name, email=c.email) for c in payload.customers],
        email_client=email_client,
    )
    return _dispatch_response(result)


@router.post("/csv")
async def send_email_campaign_from_csv(
    campaign_name: str = Form(...),
    file: UploadFile = File(...),
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
    email_client: EmailClient = Depends(get_email_client),
) -> dict:
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please upload a CSV file")
    name = campaign_name.strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please enter a campaign name")

    customers = parse_customers_csv(await file.read())
    if not customers:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No valid customers found in CSV")

    business = BusinessesRepository(session).get_owned(auth.business_id, auth.user_id)
    if not business:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Business not found or unauthorized")
    result = dispatch_campaign(
        session,
        business=business,
        campaign_name=name,
        customers=customers,
        email_client=email_client,
    )
    return _dispatch_response(result)
