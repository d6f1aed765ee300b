"""
Credential primitives for the Nikode API.

Supports:
- JWT access tokens (HS256, issuer-checked) for users
- JWT refresh tokens with a unique jti, revocable server-side by hash
- Workspace API keys: nik_<7 hex workspace prefix>_<64 hex random>
- The Principal container produced by request authentication
"""

from __future__ import annotations

import hashlib
import re
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from app.core.config import get_settings

settings = get_settings()

API_KEY_PREFIX = "nik_"
API_KEY_PATTERN = re.compile(r"^nik_([0-9a-f]{7})_([0-9a-f]{64})$")

PRINCIPAL_USER = "user"
PRINCIPAL_API_KEY = "api_key"


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------

def sha256_hex(value: str) -> str:
    """Lowercase hex SHA-256, used for API keys and refresh tokens."""
    return hashlib.sha256(value.encode()).hexdigest()


def hash_token(token: str) -> str:
    return sha256_hex(token)


# ---------------------------------------------------------------------------
# API Key generation & hashing
# ---------------------------------------------------------------------------

def workspace_key_prefix(workspace_id: uuid.UUID) -> str:
    """Seven hex characters: the first eight of the workspace UUID minus the fifth."""
    head = str(workspace_id)[:8]
    return head[:4] + head[5:8]


def generate_api_key(workspace_id: uuid.UUID) -> tuple[str, str]:
    """Generate a workspace API key. Returns (plain_key, display_prefix)."""
    prefix = workspace_key_prefix(workspace_id)
    random_part = secrets.token_bytes(32).hex()
    plain = f"{API_KEY_PREFIX}{prefix}_{random_part}"
    return plain, f"{API_KEY_PREFIX}{prefix}..."


def hash_api_key(key: str) -> str:
    return sha256_hex(key)


def parse_api_key(key: str) -> tuple[str, str]:
    """Split an API key into (workspace_prefix, random_part).

    Raises ValueError if the key is not in the nik_ wire format.
    """
    if not key.startswith(API_KEY_PREFIX):
        raise ValueError("Invalid API key prefix")
    match = API_KEY_PATTERN.match(key)
    if not match:
        raise ValueError("Invalid API key format")
    return match.group(1), match.group(2)


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def _registered_claims(user_id: uuid.UUID, now: datetime, lifetime: timedelta) -> dict:
    return {
        "iss": settings.jwt_issuer,
        "sub": str(user_id),
        "iat": now,
        "nbf": now,
        "exp": now + lifetime,
    }


def create_access_token(
    user_id: uuid.UUID,
    email: str,
    *,
    now: Optional[datetime] = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed access token carrying user_id and email claims."""
    now = now or datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload = _registered_claims(user_id, now, lifetime)
    payload.update({"user_id": str(user_id), "email": email})
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_refresh_token(
    user_id: uuid.UUID,
    *,
    now: Optional[datetime] = None,
    expires_delta: timedelta | None = None,
) -> tuple[str, datetime]:
    """Create a signed refresh token. Returns (token, expires_at)."""
    now = now or datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(hours=settings.refresh_token_expire_hours)
    payload = _registered_claims(user_id, now, lifetime)
    payload["jti"] = str(uuid.uuid4())
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, now + lifetime


def decode_token(token: str) -> dict:
    """Decode and verify a token. Raises jwt.PyJWTError on failure.

    Only HMAC algorithms are accepted; the issuer must match.
    """
    header = jwt.get_unverified_header(token)
    if not str(header.get("alg", "")).startswith("HS"):
        raise jwt.InvalidAlgorithmError("unexpected signing method")
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        issuer=settings.jwt_issuer,
        options={"require": ["exp", "iat", "nbf", "iss", "sub"]},
    )


def token_user_id(payload: dict) -> uuid.UUID:
    """Extract the user UUID from the custom claim, falling back to sub."""
    return uuid.UUID(payload.get("user_id") or payload["sub"])


# ---------------------------------------------------------------------------
# Principal
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Principal:
    """The authenticated subject of a request: a user or a workspace API key."""

    kind: str
    user_id: Optional[uuid.UUID] = None
    workspace_id: Optional[uuid.UUID] = None
    email: Optional[str] = None

    @classmethod
    def for_user(cls, user_id: uuid.UUID, email: Optional[str] = None) -> "Principal":
        return cls(kind=PRINCIPAL_USER, user_id=user_id, email=email)

    @classmethod
    def for_api_key(cls, workspace_id: uuid.UUID) -> "Principal":
        return cls(kind=PRINCIPAL_API_KEY, workspace_id=workspace_id)

    @property
    def is_user(self) -> bool:
        return self.kind == PRINCIPAL_USER

    @property
    def is_api_key(self) -> bool:
        return self.kind == PRINCIPAL_API_KEY
