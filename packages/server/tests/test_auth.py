"""
Tests for credential primitives.

Covers:
- API key generation, hashing, parsing
- Access and refresh JWTs: claims, issuer, expiry, nbf, signing method
- Refresh token hashing
- Security headers middleware
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.auth import (
    Principal,
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_api_key,
    hash_api_key,
    hash_token,
    parse_api_key,
    token_user_id,
    workspace_key_prefix,
)
from app.core.config import get_settings
from app.core.middleware import SECURITY_HEADERS, SecurityHeadersMiddleware

settings = get_settings()


# ---------------------------------------------------------------------------
# Unit Tests: API Key
# ---------------------------------------------------------------------------

class TestAPIKey:
    def test_generate_key_format(self):
        ws = uuid.uuid4()
        plain, display = generate_api_key(ws)
        assert re.fullmatch(r"nik_[0-9a-f]{7}_[0-9a-f]{64}", plain)
        assert plain.startswith(f"nik_{workspace_key_prefix(ws)}_")
        assert display == f"nik_{workspace_key_prefix(ws)}..."

    def test_workspace_prefix_is_seven_hex(self):
        ws = uuid.UUID("0123abcd-4567-89ef-0123-456789abcdef")
        assert workspace_key_prefix(ws) == "0123bcd"

    def test_keys_are_unique(self):
        ws = uuid.uuid4()
        assert generate_api_key(ws)[0] != generate_api_key(ws)[0]

    def test_hash_is_sha256_hex(self):
        plain, _ = generate_api_key(uuid.uuid4())
        hashed = hash_api_key(plain)
        assert re.fullmatch(r"[0-9a-f]{64}", hashed)
        assert hashed == hash_api_key(plain)

    def test_parse_key(self):
        ws = uuid.uuid4()
        plain, _ = generate_api_key(ws)
        prefix, random_part = parse_api_key(plain)
        assert prefix == workspace_key_prefix(ws)
        assert len(random_part) == 64

    def test_parse_invalid_prefix(self):
        with pytest.raises(ValueError, match="Invalid API key prefix"):
            parse_api_key("sk_live_abc")

    def test_parse_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid API key format"):
            parse_api_key("nik_abc_tooshort")


# ---------------------------------------------------------------------------
# Unit Tests: JWT
# ---------------------------------------------------------------------------

class TestJWT:
    def test_access_token_claims(self):
        uid = uuid.uuid4()
        payload = decode_token(create_access_token(uid, "a@example.com"))
        assert payload["iss"] == "nikode-api"
        assert payload["sub"] == str(uid)
        assert payload["user_id"] == str(uid)
        assert payload["email"] == "a@example.com"
        assert payload["exp"] - payload["iat"] == settings.access_token_expire_minutes * 60
        assert token_user_id(payload) == uid

    def test_expired_token_rejected(self):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = create_access_token(uuid.uuid4(), "a@example.com", now=past)
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_token(token)

    def test_not_yet_valid_token_rejected(self):
        future = datetime.now(timezone.utc) + timedelta(hours=1)
        token = create_access_token(uuid.uuid4(), "a@example.com", now=future)
        with pytest.raises(jwt.ImmatureSignatureError):
            decode_token(token)

    def test_wrong_issuer_rejected(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"iss": "someone-else", "sub": str(uuid.uuid4()), "iat": now, "nbf": now,
             "exp": now + timedelta(minutes=5)},
            settings.jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidIssuerError):
            decode_token(token)

    def test_wrong_secret_rejected(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"iss": "nikode-api", "sub": str(uuid.uuid4()), "iat": now, "nbf": now,
             "exp": now + timedelta(minutes=5)},
            "not-the-secret",
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidSignatureError):
            decode_token(token)

    def test_unsigned_token_rejected(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"iss": "nikode-api", "sub": str(uuid.uuid4()), "iat": now, "nbf": now,
             "exp": now + timedelta(minutes=5)},
            None,
            algorithm="none",
        )
        with pytest.raises(jwt.InvalidAlgorithmError):
            decode_token(token)

    def test_refresh_token_lifetime_and_jti(self):
        now = datetime.now(timezone.utc)
        token, expires_at = create_refresh_token(uuid.uuid4(), now=now)
        assert expires_at - now == timedelta(hours=24)
        assert "jti" in decode_token(token)

    def test_refresh_tokens_unique_for_same_instant(self):
        """The jti keeps two tokens minted in the same second distinct."""
        uid = uuid.uuid4()
        now = datetime.now(timezone.utc)
        first, _ = create_refresh_token(uid, now=now)
        second, _ = create_refresh_token(uid, now=now)
        assert first != second
        assert hash_token(first) != hash_token(second)


class TestTokenHash:
    def test_hash_format(self):
        assert re.fullmatch(r"[0-9a-f]{64}", hash_token("anything"))

    def test_deterministic(self):
        assert hash_token("same") == hash_token("same")

    def test_distinct_inputs(self):
        assert hash_token("one") != hash_token("two")


class TestPrincipal:
    def test_user_principal(self):
        uid = uuid.uuid4()
        principal = Principal.for_user(uid, "a@example.com")
        assert principal.is_user and not principal.is_api_key
        assert principal.user_id == uid

    def test_api_key_principal(self):
        ws = uuid.uuid4()
        principal = Principal.for_api_key(ws)
        assert principal.is_api_key and not principal.is_user
        assert principal.workspace_id == ws
        assert principal.user_id is None


# ---------------------------------------------------------------------------
# Unit Tests: Security Headers
# ---------------------------------------------------------------------------

class TestSecurityHeaders:
    def test_headers_present(self):
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware)

        @app.get("/test")
        async def test_endpoint():
            return {"ok": True}

        client = TestClient(app)
        resp = client.get("/test")
        for header, value in SECURITY_HEADERS.items():
            assert resp.headers.get(header) == value
