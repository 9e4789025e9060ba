import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from trustly.auth import dependencies as auth_dependencies
from trustly.auth import tokens
from trustly.db.models import Business
from trustly.main import app
from trustly.services.auth_provider import AuthProviderError, user_id_from_signup


def test_health_endpoints(public_client):
    assert public_client.get("/health").json() == {"ok": True}
    assert "db" in public_client.get("/health/db").json()


def test_protected_routes_require_bearer_token(public_client):
    resp = public_client.get("/campaigns")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Missing bearer token"


def test_first_authenticated_request_creates_business(override_dependencies, db_session, monkeypatch):
    monkeypatch.setattr(
        auth_dependencies,
        "verify_access_token",
        lambda _token: {"sub": "user-fresh", "email": "fresh@example.com", "user_metadata": {"business_name": "Fresh Co"}},
    )

    with TestClient(app) as client:
        first = client.get("/business", headers={"Authorization": "Bearer token"})
        second = client.get("/business", headers={"Authorization": "Bearer token"})

    assert first.status_code == 200
    assert first.json()["business_name"] == "Fresh Co"
    assert first.json()["user_id"] == "user-fresh"
    assert second.json()["id"] == first.json()["id"]
    assert len(db_session.scalars(select(Business).where(Business.user_id == "user-fresh")).all()) == 1


def test_business_name_defaults_without_metadata(override_dependencies, monkeypatch):
    monkeypatch.setattr(auth_dependencies, "verify_access_token", lambda _token: {"sub": "user-plain"})

    with TestClient(app) as client:
        resp = client.get("/business", headers={"Authorization": "Bearer token"})

    assert resp.json()["business_name"] == "My Business"


def test_token_without_subject_is_rejected(override_dependencies, monkeypatch):
    monkeypatch.setattr(auth_dependencies, "verify_access_token", lambda _token: {"email": "x@example.com"})

    with TestClient(app) as client:
        resp = client.get("/business", headers={"Authorization": "Bearer token"})

    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token claims"


def test_audience_check_accepts_any_configured_audience(monkeypatch):
    monkeypatch.setattr(tokens.settings, "AUTH_AUDIENCE", ["authenticated", "service"])

    assert tokens._audience_allowed("authenticated")
    assert tokens._audience_allowed(["other", "service"])
    assert not tokens._audience_allowed("anon")
    assert not tokens._audience_allowed(None)


def test_signup_creates_business(public_client, db_session, fake_auth_provider):
    fake_auth_provider.signup_response = {"user": {"id": "user-signup"}, "session": {"access_token": "abc"}}

    resp = public_client.post(
        "/auth/signup",
        json={"email": "new@example.com", "password": "secret123", "business_name": "New Bakery"},
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["user_id"] == "user-signup"
    assert body["session"] == {"access_token": "abc"}
    business = db_session.get(Business, body["business_id"])
    assert business.business_name == "New Bakery"
    assert fake_auth_provider.calls[0] == (
        "sign_up",
        {"email": "new@example.com", "metadata": {"business_name": "New Bakery"}},
    )


def test_signup_validation_and_provider_errors(public_client, fake_auth_provider):
    short = public_client.post("/auth/signup", json={"email": "new@example.com", "password": "123"})
    assert short.status_code == 422

    fake_auth_provider.error = AuthProviderError("User already registered", status_code=422)
    taken = public_client.post("/auth/signup", json={"email": "new@example.com", "password": "secret123"})
    assert taken.status_code == 400
    assert taken.json()["detail"] == "User already registered"


@pytest.mark.parametrize(
    "error, expected",
    [
        (AuthProviderError("Invalid login credentials", status_code=400), 401),
        (AuthProviderError("Auth provider request failed: timeout"), 502),
    ],
)
def test_signin_errors(public_client, fake_auth_provider, error, expected):
    fake_auth_provider.error = error
    resp = public_client.post("/auth/signin", json={"email": "owner@example.com", "password": "secret123"})
    assert resp.status_code == expected


def test_signin_returns_provider_session(public_client):
    resp = public_client.post("/auth/signin", json={"email": "owner@example.com", "password": "secret123"})
    assert resp.status_code == 200
    assert resp.json()["access_token"] == "token-123"


def test_user_id_from_signup_shapes():
    assert user_id_from_signup({"user": {"id": "a"}}) == "a"
    assert user_id_from_signup({"id": "b", "email": "b@example.com"}) == "b"
    assert user_id_from_signup({"user": None}) is None
