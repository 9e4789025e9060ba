from fastapi.testclient import TestClient
from sqlalchemy import select

from trustly.db.enums import RecipientStatusEnum
from trustly.db.models import Campaign, CampaignRecipient
from trustly.main import app
from trustly.services.campaign_dispatch import dispatch_campaign, recipient_link
from trustly.services.csv_import import Customer
from trustly.services.email_templates import INVITATION_SUBJECT

CUSTOMERS = [
    {"name": "Ann Lee", "email": "ann@example.com"},
    {"name": "Bob Ray", "email": "bob@example.com"},
    {"name": "Cat Poe", "email": "cat@example.com"},
]


def _recipients(db_session, campaign_id):
    db_session.expire_all()
    stmt = select(CampaignRecipient).where(CampaignRecipient.campaign_id == campaign_id)
    return {r.customer_email: r for r in db_session.scalars(stmt).all()}


def test_send_campaign_all_succeed(api_client, db_session, business, fake_email):
    resp = api_client.post(
        "/email-campaigns",
        json={"business_id": business.id, "campaign_name": "Spring Outreach", "customers": CUSTOMERS},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["sent_count"] == 3
    assert body["total_customers"] == 3

    campaign = db_session.get(Campaign, body["campaign_id"])
    assert campaign.name == "Spring Outreach"
    assert campaign.total_sent == 3
    assert campaign.unique_slug.startswith("spring-outreach-")

    recipients = _recipients(db_session, campaign.id)
    assert {r.status for r in recipients.values()} == {RecipientStatusEnum.sent}
    assert all(r.sent_at is not None for r in recipients.values())
    assert len({r.unique_token for r in recipients.values()}) == 3

    assert len(fake_email.sent) == 3
    first = fake_email.sent[0]
    assert first["subject"] == INVITATION_SUBJECT
    assert first["from"] == "Acme Bakery <hello@trustly.example>"
    assert first["to"] == ["ann@example.com"]
    token = recipients["ann@example.com"].unique_token
    assert recipient_link(business.id, token) in first["html"].replace("&amp;", "&")
    assert "Ann Lee" in first["html"]


def test_send_campaign_partial_failure(api_client, db_session, business, fake_email):
    fake_email.fail_for.add("bob@example.com")

    resp = api_client.post(
        "/email-campaigns",
        json={"business_id": business.id, "campaign_name": "Partial", "customers": CUSTOMERS},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["sent_count"] == 2
    assert body["total_customers"] == 3

    campaign = db_session.get(Campaign, body["campaign_id"])
    assert campaign.total_sent == 2
    recipients = _recipients(db_session, campaign.id)
    assert recipients["bob@example.com"].status == RecipientStatusEnum.pending
    assert recipients["bob@example.com"].sent_at is None
    assert recipients["ann@example.com"].status == RecipientStatusEnum.sent
    assert recipients["cat@example.com"].status == RecipientStatusEnum.sent


def test_send_campaign_for_unowned_business_is_forbidden(api_client, db_session, other_business, fake_email):
    resp = api_client.post(
        "/email-campaigns",
        json={"business_id": other_business.id, "campaign_name": "Nope", "customers": CUSTOMERS},
    )

    assert resp.status_code == 403
    assert resp.json()["detail"] == "Business not found or unauthorized"
    assert fake_email.sent == []
    assert db_session.scalars(select(Campaign)).all() == []


def test_send_campaign_requires_auth(override_dependencies, business):
    with TestClient(app) as client:
        resp = client.post(
            "/email-campaigns",
            json={"business_id": business.id, "campaign_name": "Anon", "customers": CUSTOMERS},
        )
    assert resp.status_code == 401


def test_send_campaign_rejects_empty_customer_list(api_client, business):
    resp = api_client.post(
        "/email-campaigns",
        json={"business_id": business.id, "campaign_name": "Empty", "customers": []},
    )
    assert resp.status_code == 422


def test_csv_campaign_sends_to_parsed_customers(api_client, db_session, fake_email):
    content = b"name,email\nAnn Lee,ann@example.com\n\nBroken,broken-address\n"

    resp = api_client.post(
        "/email-campaigns/csv",
        data={"campaign_name": "  From CSV  "},
        files={"file": ("customers.csv", content, "text/csv")},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["sent_count"] == 1
    assert body["total_customers"] == 1
    assert db_session.get(Campaign, body["campaign_id"]).name == "From CSV"
    assert [m["to"] for m in fake_email.sent] == [["ann@example.com"]]


def test_csv_campaign_input_errors(api_client, fake_email):
    wrong_type = api_client.post(
        "/email-campaigns/csv",
        data={"campaign_name": "List"},
        files={"file": ("customers.txt", b"name,email\nAnn,ann@example.com\n", "text/plain")},
    )
    assert wrong_type.status_code == 400
    assert wrong_type.json()["detail"] == "Please upload a CSV file"

    blank_name = api_client.post(
        "/email-campaigns/csv",
        data={"campaign_name": "   "},
        files={"file": ("customers.csv", b"name,email\nAnn,ann@example.com\n", "text/csv")},
    )
    assert blank_name.status_code == 400
    assert blank_name.json()["detail"] == "Please enter a campaign name"

    no_customers = api_client.post(
        "/email-campaigns/csv",
        data={"campaign_name": "List"},
        files={"file": ("customers.csv", b"name,email\nAnn,no-at-sign\n", "text/csv")},
    )
    assert no_customers.status_code == 400
    assert no_customers.json()["detail"] == "No valid customers found in CSV"
    assert fake_email.sent == []


def test_dispatch_uses_default_brand_color_when_unset(db_session, business, fake_email):
    business.brand_color = None
    db_session.commit()

    result = dispatch_campaign(
        db_session,
        business=business,
        campaign_name="Direct",
        customers=[Customer(name="Dee", email="dee@example.com")],
        email_client=fake_email,
    )

    assert result.sent_count == 1
    assert "#14b8a6" in fake_email.sent[0]["html"]
