"""Auth API router: register, login, refresh, me."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from photobooking.api.deps import get_current_active_user, get_db
from photobooking.auth.jwt import REFRESH, create_token_pair, decode_token
from photobooking.auth.passwords import hash_password, verify_password
from photobooking.booking.lifecycle import ROLE_CLIENT
from photobooking.models.user import User
from photobooking.schemas.auth import (
    AuthResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _invalid_token(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# ---------------------------------------------------------------------------
# POST /register
# ---------------------------------------------------------------------------


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)) -> AuthResponse:
    """Register a new client account with email and password."""
    email = body.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    user = User(
        email=email,
        hashed_password=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
        role=ROLE_CLIENT,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    logger.info("Registered user %s", user.id)

    return AuthResponse(
        user=UserResponse.model_validate(user),
        tokens=TokenResponse(**create_token_pair(user.id, user.role)),
    )


# ---------------------------------------------------------------------------
# POST /login
# ---------------------------------------------------------------------------


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)) -> AuthResponse:
    """Authenticate with email and password."""
    result = await db.execute(select(User).where(User.email == body.email.lower()))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(body.password, user.hashed_password):
        raise _invalid_token("Invalid email or password")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    return AuthResponse(
        user=UserResponse.model_validate(user),
        tokens=TokenResponse(**create_token_pair(user.id, user.role)),
    )


# ---------------------------------------------------------------------------
# POST /refresh
# ---------------------------------------------------------------------------


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)) -> TokenResponse:
    """Exchange a valid refresh token for a new token pair."""
    try:
        payload = decode_token(body.refresh_token)
    except JWTError:
        raise _invalid_token("Invalid or expired refresh token") from None

    if payload.get("type") != REFRESH:
        raise _invalid_token("Invalid token type")

    try:
        user_id = uuid.UUID(payload.get("sub") or "")
    except ValueError:
        raise _invalid_token("Invalid token payload") from None

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise _invalid_token("User not found or inactive")

    return TokenResponse(**create_token_pair(user.id, user.role))


# ---------------------------------------------------------------------------
# GET /me
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_active_user)) -> User:
    """Return the authenticated user's profile."""
    return current_user
