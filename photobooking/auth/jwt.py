"""JWT access and refresh tokens carrying the user id and role."""

import uuid
from datetime import datetime, timedelta, timezone

from jose import jwt

from photobooking.config import settings

ACCESS = "access"
REFRESH = "refresh"


def _encode(data: dict, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = {**data, "iat": now, "exp": now + lifetime, "type": token_type}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a short-lived access token.

    Args:
        data: Payload data. Must include ``sub`` (user UUID as string).
        expires_delta: Custom lifetime. Defaults to
            ``settings.jwt_access_token_expire_minutes`` minutes.
    """
    return _encode(data, ACCESS, expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes))


def create_refresh_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a long-lived refresh token (``settings.jwt_refresh_token_expire_days`` by default)."""
    return _encode(data, REFRESH, expires_delta or timedelta(days=settings.jwt_refresh_token_expire_days))


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token.

    Raises:
        jose.JWTError: If the token is invalid, expired, or malformed.
    """
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def create_token_pair(user_id: uuid.UUID | str, role: str) -> dict[str, str]:
    """Create both access and refresh tokens for a user."""
    payload = {"sub": str(user_id), "role": role}
    return {
        "access_token": create_access_token(payload),
        "refresh_token": create_refresh_token(payload),
        "token_type": "bearer",
    }
