"""Async SQLAlchemy engine, session factory, and declarative base."""

import logging
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from photobooking.config import settings

logger = logging.getLogger(__name__)


def _engine_kwargs() -> dict:
    """Build driver-specific engine options; every query is bounded by a timeout."""
    if settings.is_sqlite:
        return {"connect_args": {"timeout": settings.db_statement_timeout_seconds}}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "connect_args": {"command_timeout": settings.db_statement_timeout_seconds},
    }


engine = create_async_engine(
    settings.async_database_url,
    echo=settings.debug,
    **_engine_kwargs(),
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def utcnow() -> datetime:
    """Current time as naive UTC, the representation stored in every timestamp column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class TimestampMixin:
    """Mixin that adds created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)


class UUIDPrimaryKeyMixin:
    """Mixin that adds a UUID primary key column."""

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)


# ---------------------------------------------------------------------------
# Unit of work
# ---------------------------------------------------------------------------

_AFTER_COMMIT_KEY = "after_commit"


def after_commit(session: AsyncSession, callback: Callable[[], Awaitable[object]]) -> None:
    """Queue ``callback`` to run once ``session`` has committed.

    Side effects that must not outlive a rolled-back request (emails, for
    instance) are registered here instead of being performed inline.
    """
    session.info.setdefault(_AFTER_COMMIT_KEY, []).append(callback)


def discard_after_commit(session: AsyncSession) -> int:
    """Drop every queued callback; returns how many were dropped."""
    return len(session.info.pop(_AFTER_COMMIT_KEY, []))


async def run_after_commit(session: AsyncSession) -> int:
    """Run and clear the queued callbacks in registration order."""
    callbacks = session.info.pop(_AFTER_COMMIT_KEY, [])
    for callback in callbacks:
        await callback()
    return len(callbacks)


async def get_db() -> AsyncIterator[AsyncSession]:
    """Yield an async database session for FastAPI dependency injection.

    The session commits when the request handler returns and rolls back on
    any exception, so each request is one unit of work::

        @app.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...

    Callbacks queued with ``after_commit`` run only after a successful commit.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            dropped = discard_after_commit(session)
            if dropped:
                logger.info("Rolled back; dropped %d after-commit callback(s)", dropped)
            raise
        await run_after_commit(session)
