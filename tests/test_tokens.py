import time

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import HTTPException
from jose import jwk, jwt

from trustly.auth import tokens


@pytest.fixture(scope="module")
def rsa_keys():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    public_jwk["kid"] = "key-1"
    return private_pem, public_jwk


@pytest.fixture()
def key_set(rsa_keys):
    _, public_jwk = rsa_keys
    keys = tokens.SigningKeySet()
    keys._keys = {"key-1": public_jwk}
    keys._loaded_at = time.time()
    return keys


def _token(private_pem, **claims):
    payload = {"sub": "user-1", "aud": "authenticated", "exp": int(time.time()) + 600, **claims}
    return jwt.encode(payload, private_pem, algorithm="RS256", headers={"kid": "key-1"})


def test_valid_token_returns_claims(rsa_keys, key_set, monkeypatch):
    monkeypatch.setattr(tokens.settings, "AUTH_JWT_ISSUER", None)
    private_pem, _ = rsa_keys

    claims = tokens.verify_access_token(_token(private_pem, email="a@example.com"), keys=key_set)

    assert claims["sub"] == "user-1"
    assert claims["email"] == "a@example.com"


def test_wrong_audience_is_rejected(rsa_keys, key_set, monkeypatch):
    monkeypatch.setattr(tokens.settings, "AUTH_JWT_ISSUER", None)
    monkeypatch.setattr(tokens.settings, "AUTH_AUDIENCE", ["authenticated"])
    private_pem, _ = rsa_keys

    with pytest.raises(HTTPException) as excinfo:
        tokens.verify_access_token(_token(private_pem, aud="anon"), keys=key_set)
    assert excinfo.value.status_code == 401
    assert excinfo.value.detail == "Invalid token audience"


def test_expired_token_is_rejected(rsa_keys, key_set, monkeypatch):
    monkeypatch.setattr(tokens.settings, "AUTH_JWT_ISSUER", None)
    private_pem, _ = rsa_keys

    with pytest.raises(HTTPException) as excinfo:
        tokens.verify_access_token(_token(private_pem, exp=int(time.time()) - 60), keys=key_set)
    assert excinfo.value.detail == "Invalid token"


def test_issuer_is_checked_when_configured(rsa_keys, key_set, monkeypatch):
    monkeypatch.setattr(tokens.settings, "AUTH_JWT_ISSUER", "https://auth.example.com")
    private_pem, _ = rsa_keys

    ok = tokens.verify_access_token(_token(private_pem, iss="https://auth.example.com"), keys=key_set)
    assert ok["iss"] == "https://auth.example.com"
    with pytest.raises(HTTPException):
        tokens.verify_access_token(_token(private_pem, iss="https://evil.example.com"), keys=key_set)


def test_unknown_kid_without_jwks_url_is_unavailable(rsa_keys, monkeypatch):
    monkeypatch.setattr(tokens.settings, "AUTH_JWKS_URL", None)
    private_pem, _ = rsa_keys

    with pytest.raises(HTTPException) as excinfo:
        tokens.verify_access_token(_token(private_pem), keys=tokens.SigningKeySet())
    assert excinfo.value.status_code == 503


def test_garbage_token_is_rejected(key_set):
    with pytest.raises(HTTPException) as excinfo:
        tokens.verify_access_token("not-a-jwt", keys=key_set)
    assert excinfo.value.status_code == 401
