import itertools

from trustly.db.repositories.campaigns import CampaignsRepository
from trustly.db.repositories.testimonials import TestimonialsRepository
from trustly.main import app
from trustly.routers import business as business_router
from trustly.schemas.businesses import DEFAULT_PRIMARY_COLOR, DEFAULT_SECONDARY_COLOR
from trustly.services.media_storage import MediaStorageConfigurationError, get_media_storage


def test_get_and_update_business(api_client, business):
    assert api_client.get("/business").json()["business_name"] == "Acme Bakery"

    resp = api_client.patch("/business", json={"business_name": "  Acme Bread Co  ", "brand_color": "#112233"})

    assert resp.status_code == 200
    assert resp.json()["business_name"] == "Acme Bread Co"
    assert resp.json()["brand_color"] == "#112233"


def test_branding_falls_back_to_brand_color(api_client, db_session, business):
    business.brand_color = "#abcdef"
    db_session.commit()

    branding = api_client.get("/business/branding").json()

    assert branding == {
        "primary_color": "#abcdef",
        "secondary_color": DEFAULT_SECONDARY_COLOR,
        "custom_logo_url": None,
        "show_branding": True,
    }


def test_branding_save_and_reset(api_client, business):
    saved = api_client.put(
        "/business/branding",
        json={
            "primary_color": "#000000",
            "secondary_color": "#ffffff",
            "custom_logo_url": "https://cdn.example.com/logo.png",
            "show_branding": False,
        },
    )
    assert saved.status_code == 200
    assert saved.json()["primary_color"] == "#000000"
    assert saved.json()["show_branding"] is False

    business_body = api_client.get("/business").json()
    assert business_body["brand_color"] == "#000000"
    assert business_body["custom_colors"] == {"primary": "#000000", "secondary": "#ffffff"}

    reset = api_client.post("/business/branding/reset").json()
    assert reset == {
        "primary_color": DEFAULT_PRIMARY_COLOR,
        "secondary_color": DEFAULT_SECONDARY_COLOR,
        "custom_logo_url": None,
        "show_branding": True,
    }


def test_public_business_branding(public_client, business):
    body = public_client.get(f"/public/businesses/{business.id}").json()
    assert body["business_name"] == "Acme Bakery"
    assert body["primary_color"] == DEFAULT_PRIMARY_COLOR
    assert public_client.get("/public/businesses/missing").status_code == 404


def test_logo_upload(api_client, business, fake_storage, monkeypatch):
    ticks = itertools.count(1_700_000_000)
    monkeypatch.setattr(business_router.time, "time", lambda: float(next(ticks)))

    resp = api_client.post("/business/logo", files={"file": ("brand.png", b"png-bytes", "image/png")})

    assert resp.status_code == 200
    url = resp.json()["url"]
    key = url.split("/business-logos/", 1)[1]
    assert key.startswith(f"{business.id}/logo-") and key.endswith(".png")
    assert resp.json()["business"]["logo_url"] == url
    assert fake_storage.objects[("business-logos", key)] == b"png-bytes"

    branding = api_client.post(
        "/business/logo",
        data={"target": "branding"},
        files={"file": ("brand.png", b"png-bytes", "image/png")},
    )
    branding_url = branding.json()["business"]["custom_logo_url"]
    assert branding_url != url
    assert branding_url.startswith(f"https://media.trustly.example/business-logos/{business.id}/logo-")

    not_image = api_client.post("/business/logo", files={"file": ("brand.txt", b"text", "text/plain")})
    assert not_image.status_code == 400


def test_email_settings_round_trip(api_client, business):
    current = api_client.get("/business/email-settings").json()
    assert current == {
        "notification_email": "owner@example.com",
        "notify_new_testimonial": True,
        "notify_on_approval": False,
        "email_enabled": True,
    }

    updated = api_client.put(
        "/business/email-settings",
        json={
            "notification_email": " alerts@example.com ",
            "notify_new_testimonial": False,
            "notify_on_approval": True,
            "email_enabled": True,
        },
    ).json()
    assert updated["notification_email"] == "alerts@example.com"
    assert updated["notify_on_approval"] is True

    invalid = api_client.put("/business/email-settings", json={"notification_email": "not-an-email"})
    assert invalid.status_code == 400


def test_test_email(api_client, db_session, business, fake_email):
    sent = api_client.post("/business/email-settings/test")
    assert sent.status_code == 200
    assert sent.json() == {"success": True, "sent_to": "owner@example.com"}
    assert fake_email.sent[0]["to"] == ["owner@example.com"]

    fake_email.fail_for.add("owner@example.com")
    failed = api_client.post("/business/email-settings/test")
    assert failed.status_code == 502

    business.notification_email = None
    db_session.commit()
    missing = api_client.post("/business/email-settings/test")
    assert missing.status_code == 400
    assert missing.json()["detail"] == "Please enter an email address first"


def test_widget_snippet(api_client, business):
    body = api_client.get("/business/widget").json()

    assert body["business_id"] == business.id
    assert f'data-business-id="{business.id}"' in body["embed_code"]
    assert body["submission_link"] == f"https://app.trustly.example/submit?b={business.id}"


def test_dashboard_summary(api_client, db_session, business):
    campaigns = CampaignsRepository(db_session)
    campaign = campaigns.create(business.id, "Launch")
    campaigns.set_total_sent(campaign, 4)
    campaigns.increment_submitted(campaign.id)
    TestimonialsRepository(db_session).create(
        business_id=business.id,
        campaign_id=campaign.id,
        name="Reviewer",
        email=None,
        rating=5,
        text="",
        custom_answers={},
    )

    body = api_client.get("/business/dashboard").json()

    assert body["campaign_count"] == 1
    assert body["total_testimonials"] == 1
    assert body["pending_testimonials"] == 1
    assert body["total_sent"] == 4
    assert body["total_submitted"] == 1
    assert body["response_rate"] == 25


def test_logo_upload_without_storage_configuration(api_client, business):
    def unconfigured_storage():
        raise MediaStorageConfigurationError("MEDIA_STORAGE_ENDPOINT is required")

    app.dependency_overrides[get_media_storage] = unconfigured_storage

    resp = api_client.post("/business/logo", files={"file": ("brand.png", b"png-bytes", "image/png")})

    assert resp.status_code == 500
    assert resp.json() == {"detail": "MEDIA_STORAGE_ENDPOINT is required"}
    assert api_client.get("/business").json()["logo_url"] is None
