from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt

from core.config import settings


# Roles the campus auth service puts in the `role` claim that this backend acts on.
ROLES = ("ADMIN", "STUDENT")


def normalize_role(role: str | None) -> str:
    return str(role or "").strip().upper()


def create_access_token(*, user_id: str, role: str, expires_minutes: int = 60) -> str:
    """Mint a token shaped like the ones the campus auth service issues.

    Only local tooling and tests call this; the API itself never issues tokens.
    """

    role = normalize_role(role)
    if role not in ROLES:
        raise ValueError(f"Unsupported role: {role!r}")

    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """Verify signature and expiry; raises `jose.JWTError` otherwise."""
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
