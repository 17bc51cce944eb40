"""Shared test configuration and fixtures.

Uses a transactional rollback strategy per test for full isolation:
- Each test runs inside a transaction that is rolled back afterwards.
- The database comes from ``TEST_DATABASE_URL`` and defaults to an
  in-memory SQLite database (aiosqlite).
"""

import os
import uuid
from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from photobooking.auth.jwt import create_token_pair
from photobooking.auth.passwords import hash_password
from photobooking.booking.lifecycle import PAYMENT_PENDING, PENDING
from photobooking.database import Base, discard_after_commit, get_db, run_after_commit
from photobooking.main import app
from photobooking.models.booking import Booking
from photobooking.models.service import Service
from photobooking.models.user import User
from photobooking.services.email import EmailMessage

# ---------------------------------------------------------------------------
# Test database engine
# ---------------------------------------------------------------------------

_test_db_url = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


def _make_engine():
    if _test_db_url.startswith("sqlite"):
        # One shared connection so every session sees the same in-memory database
        return create_async_engine(
            _test_db_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(_test_db_url, echo=False, pool_pre_ping=True)


# ---------------------------------------------------------------------------
# Session-scoped: create / drop all tables once per test session
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def test_engine():
    """Create a session-scoped engine tied to the session event loop."""
    engine = _make_engine()
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def setup_test_db(test_engine):
    """Create all tables at the start of the session and drop them at the end."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ---------------------------------------------------------------------------
# Per-test: transactional rollback for isolation
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_session(test_engine, setup_test_db) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session wrapped in a transaction that always rolls back."""
    async with test_engine.connect() as connection:
        transaction = await connection.begin()
        session = AsyncSession(bind=connection, expire_on_commit=False)

        try:
            yield session
        finally:
            await session.close()
            await transaction.rollback()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to use the test DB session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        # The outer transaction never commits; the end of a request stands in for it.
        try:
            yield db_session
        except Exception:
            discard_after_commit(db_session)
            raise
        await run_after_commit(db_session)

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Email collaborator
# ---------------------------------------------------------------------------


class CapturingEmailSender:
    """Collects sent messages instead of delivering them."""

    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []

    async def send(self, message: EmailMessage) -> None:
        self.sent.append(message)


@pytest_asyncio.fixture
async def outbox() -> AsyncGenerator[CapturingEmailSender, None]:
    """Swap the application's email sender for a capturing one."""
    original = app.state.email_sender
    sender = CapturingEmailSender()
    app.state.email_sender = sender
    yield sender
    app.state.email_sender = original


# ---------------------------------------------------------------------------
# Convenience fixtures: users and auth headers
# ---------------------------------------------------------------------------


async def _create_user(db_session: AsyncSession, role: str = "client", prefix: str = "client") -> User:
    unique = uuid.uuid4().hex[:8]
    user = User(
        email=f"{prefix}-{unique}@test.com",
        hashed_password=hash_password("testpass123"),
        first_name="Test",
        last_name=prefix.capitalize(),
        role=role,
        is_active=True,
    )
    db_session.add(user)
    await db_session.flush()
    await db_session.refresh(user)
    return user


def _headers_for(user: User) -> dict[str, str]:
    tokens = create_token_pair(user.id, user.role)
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """A client account."""
    return await _create_user(db_session)


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict[str, str]:
    return _headers_for(test_user)


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second client who owns nothing the first client booked."""
    return await _create_user(db_session, prefix="other")


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict[str, str]:
    return _headers_for(other_user)


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, role="admin", prefix="admin")


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict[str, str]:
    return _headers_for(admin_user)


# ---------------------------------------------------------------------------
# Convenience fixtures: service and booking helpers
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_service(db_session: AsyncSession) -> Service:
    """An active one-hour portrait service for up to 10 people at 500.00."""
    service = Service(
        name="Portrait Session",
        description="Studio portrait session",
        price=Decimal("500.00"),
        duration=60,
        category="photo",
        service_type="portrait",
        max_participants=10,
        location_type="studio",
        tags=["portrait"],
        is_active=True,
    )
    db_session.add(service)
    await db_session.flush()
    await db_session.refresh(service)
    return service


async def _insert_booking(
    db_session: AsyncSession,
    client: User,
    service: Service,
    day: date,
    start: str,
    end: str,
    status: str = PENDING,
    payment_status: str = PAYMENT_PENDING,
    **extra,
) -> Booking:
    """Write a booking row directly, bypassing creation rules (e.g. past dates)."""
    total_amount = extra.pop("total_amount", service.price)
    booking = Booking(
        client_id=client.id,
        service_id=service.id,
        booking_date=day,
        start_time=start,
        end_time=end,
        status=status,
        base_price=service.price,
        total_amount=total_amount,
        payment_status=payment_status,
        created_by=client.id,
        **extra,
    )
    db_session.add(booking)
    await db_session.flush()
    await db_session.refresh(booking)
    return booking


@pytest_asyncio.fixture
async def make_booking(db_session: AsyncSession):
    """Factory fixture: ``await make_booking(client, service, day, start, end, **fields)``."""

    async def _make(client: User, service: Service, day: date, start: str, end: str, **fields) -> Booking:
        return await _insert_booking(db_session, client, service, day, start, end, **fields)

    return _make


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession):
    """Factory fixture returning ``(user, auth_headers)`` for a new account."""

    async def _make(role: str = "client", prefix: str = "client") -> tuple[User, dict[str, str]]:
        user = await _create_user(db_session, role=role, prefix=prefix)
        return user, _headers_for(user)

    return _make
