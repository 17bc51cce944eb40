"""PhotoBooking FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from photobooking.api.v1.auth import router as auth_router
from photobooking.api.v1.bookings import router as bookings_router
from photobooking.api.v1.notifications import router as notifications_router
from photobooking.api.v1.payments import router as payments_router
from photobooking.api.v1.services import router as services_router
from photobooking.api.v1.webhooks import router as webhooks_router
from photobooking.booking.errors import BookingError
from photobooking.config import settings
from photobooking.database import engine
from photobooking.services.email import LoggingEmailSender

# Configure root logger so all photobooking.* loggers output to stderr.
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info("%s %s starting (%s)", settings.app_name, settings.app_version, settings.environment)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Booking backend for a photography studio: services, time slots, payments, notifications.",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Collaborators built once per process
app.state.email_sender = LoggingEmailSender()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": exc.kind},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# Routers
app.include_router(auth_router)
app.include_router(services_router)
app.include_router(bookings_router)
app.include_router(payments_router)
app.include_router(notifications_router)
app.include_router(webhooks_router)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
