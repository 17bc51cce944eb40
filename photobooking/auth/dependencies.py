"""FastAPI authentication dependencies for route protection."""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from photobooking.auth.jwt import ACCESS, decode_token
from photobooking.booking.errors import Unauthorized
from photobooking.booking.lifecycle import Actor
from photobooking.database import get_db
from photobooking.models.user import User

_bearer_scheme = HTTPBearer(auto_error=False)


def _unauthenticated(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Validate the Bearer access token and return the authenticated user.

    Raises:
        HTTPException 401: Missing, invalid or expired token, refresh token
            used as access token, or unknown user.
    """
    if credentials is None:
        raise _unauthenticated("Not authenticated")

    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        raise _unauthenticated() from None

    if payload.get("type") != ACCESS:
        raise _unauthenticated("Invalid token type")

    try:
        user_id = uuid.UUID(payload.get("sub") or "")
    except ValueError:
        raise _unauthenticated() from None

    user = await db.get(User, user_id)
    if user is None:
        raise _unauthenticated()
    return user


async def get_current_active_user(user: User = Depends(get_current_user)) -> User:
    """Return the current user only if their account is active.

    Raises:
        HTTPException 401: If the user account is inactive.
    """
    if not user.is_active:
        raise _unauthenticated("User account is inactive")
    return user


async def require_admin(user: User = Depends(get_current_active_user)) -> User:
    if not user.is_admin:
        raise Unauthorized("Admin privileges required")
    return user


async def get_current_actor(user: User = Depends(get_current_active_user)) -> Actor:
    """The acting principal handed to booking operations."""
    return Actor(id=user.id, role=user.role)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Like ``get_current_active_user`` but returns ``None`` instead of raising.

    Used by public endpoints that show more to signed-in admins.
    """
    if credentials is None:
        return None
    try:
        return await get_current_active_user(await get_current_user(credentials, db))
    except HTTPException:
        return None
