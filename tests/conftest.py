import os
import tempfile
from pathlib import Path

_TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="trustly-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DB_DIR / 'trustly-test.db'}")
os.environ.setdefault("PUBLIC_APP_BASE_URL", "https://app.trustly.example")
os.environ.setdefault("EMAIL_FROM_ADDRESS", "hello@trustly.example")

import pytest
from fastapi.testclient import TestClient

from trustly.auth.dependencies import AuthContext, get_current_user
from trustly.db import models  # noqa: F401
from trustly.db.base import Base, SessionLocal, engine, init_db
from trustly.db.deps import get_session
from trustly.db.repositories.businesses import BusinessesRepository
from trustly.main import app
from trustly.services.auth_provider import AuthProviderError, get_auth_provider
from trustly.services.email import EmailDeliveryError, get_email_client
from trustly.services.media_storage import MediaStorageError, get_media_storage, get_media_storage_provider

TEST_USER_ID = "user-owner-1"


class FakeEmailClient:
    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.fail_for: set[str] = set()

    def send(self, *, sender: str, to: list[str], subject: str, html: str) -> dict:
        if any(address in self.fail_for for address in to):
            raise EmailDeliveryError(f"Email provider returned status 422: rejected {to[0]}")
        message = {"from": sender, "to": to, "subject": subject, "html": html}
        self.sent.append(message)
        return {"id": f"email-{len(self.sent)}"}

    def subjects(self) -> list[str]:
        return [message["subject"] for message in self.sent]


class FakeMediaStorage:
    public_base_url = "https://media.trustly.example"

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}
        self.deleted: list[tuple[str, str]] = []
        self.upload_calls = 0
        self.fail_on_calls: set[int] = set()

    def public_url(self, bucket: str, key: str) -> str:
        return f"{self.public_base_url}/{bucket}/{key}"

    def key_from_public_url(self, bucket: str, url: str):
        marker = f"/{bucket}/"
        if marker not in (url or ""):
            return None
        return url.split(marker, 1)[1] or None

    def upload_bytes(self, *, bucket: str, key: str, data: bytes, content_type, cache_control=None) -> str:
        self.upload_calls += 1
        if self.upload_calls in self.fail_on_calls:
            raise MediaStorageError("storage unavailable")
        self.objects[(bucket, key)] = data
        return self.public_url(bucket, key)

    def delete_object(self, *, bucket: str, key: str) -> None:
        self.objects.pop((bucket, key), None)
        self.deleted.append((bucket, key))


class FakeAuthProvider:
    def __init__(self) -> None:
        self.signup_response: dict = {"user": {"id": "user-new-1"}, "session": None}
        self.signin_response: dict = {"access_token": "token-123", "token_type": "bearer"}
        self.error: AuthProviderError | None = None
        self.calls: list[tuple[str, dict]] = []

    def sign_up(self, *, email: str, password: str, metadata=None) -> dict:
        self.calls.append(("sign_up", {"email": email, "metadata": metadata}))
        if self.error:
            raise self.error
        return self.signup_response

    def sign_in(self, *, email: str, password: str) -> dict:
        self.calls.append(("sign_in", {"email": email}))
        if self.error:
            raise self.error
        return self.signin_response


@pytest.fixture(autouse=True)
def reset_schema():
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield


@pytest.fixture()
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def business(db_session):
    return BusinessesRepository(db_session).create(
        TEST_USER_ID,
        "Acme Bakery",
        notification_email="owner@example.com",
    )


@pytest.fixture()
def other_business(db_session):
    return BusinessesRepository(db_session).create("user-other-2", "Other Shop")


@pytest.fixture()
def auth_context(business) -> AuthContext:
    return AuthContext(user_id=TEST_USER_ID, business_id=business.id, email="owner@example.com")


@pytest.fixture()
def fake_email() -> FakeEmailClient:
    return FakeEmailClient()


@pytest.fixture()
def fake_storage() -> FakeMediaStorage:
    return FakeMediaStorage()


@pytest.fixture()
def fake_auth_provider() -> FakeAuthProvider:
    return FakeAuthProvider()


@pytest.fixture()
def override_dependencies(db_session, fake_email, fake_storage, fake_auth_provider):
    def get_session_override():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_email_client] = lambda: fake_email
    app.dependency_overrides[get_media_storage] = lambda: fake_storage
    app.dependency_overrides[get_media_storage_provider] = lambda: (lambda: fake_storage)
    app.dependency_overrides[get_auth_provider] = lambda: fake_auth_provider
    try:
        yield
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def public_client(override_dependencies):
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def api_client(override_dependencies, auth_context):
    app.dependency_overrides[get_current_user] = lambda: auth_context
    with TestClient(app) as client:
        yield client
