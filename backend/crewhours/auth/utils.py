"""Password hashing and JWT helpers."""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from crewhours.config import Settings


@dataclass
class TokenPayload:
    sub: uuid.UUID
    role: str
    type: str
    exp: datetime


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def _encode(claims: dict, lifetime: timedelta, settings: Settings) -> str:
    payload = {**claims, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def create_access_token(user_id: uuid.UUID, role: str, settings: Settings) -> str:
    return _encode(
        {"sub": str(user_id), "role": role, "type": "access"},
        timedelta(minutes=settings.access_token_expire_minutes),
        settings,
    )


def create_refresh_token(user_id: uuid.UUID, settings: Settings) -> str:
    # jti keeps two tokens minted in the same second distinct.
    return _encode(
        {"sub": str(user_id), "type": "refresh", "jti": uuid.uuid4().hex},
        timedelta(days=settings.refresh_token_expire_days),
        settings,
    )


def decode_token(
    token: str, settings: Settings, expected_type: str = "access"
) -> TokenPayload | None:
    """Decode and verify *token*; None if invalid, expired or of another type."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        token_type = payload.get("type", "access")
        if token_type != expected_type:
            return None
        return TokenPayload(
            sub=uuid.UUID(payload["sub"]),
            role=payload.get("role", "monter"),
            type=token_type,
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except (JWTError, ValueError, KeyError):
        return None


def hash_token(token: str) -> str:
    """SHA-256 of a refresh token; only the hash is stored."""
    return hashlib.sha256(token.encode()).hexdigest()
