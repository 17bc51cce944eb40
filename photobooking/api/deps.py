"""Shared API dependencies: single import point for all routers.

Re-exports database session and authentication dependencies so that router
modules can import everything they need from one place::

    from photobooking.api.deps import get_db, get_current_actor
"""

from fastapi import Request

from photobooking.auth.dependencies import (
    get_current_active_user,
    get_current_actor,
    get_current_user,
    get_optional_user,
    require_admin,
)
from photobooking.database import get_db
from photobooking.services.email import EmailSender


def get_email_sender(request: Request) -> EmailSender | None:
    """The email collaborator built at startup and stored on ``app.state``."""
    return getattr(request.app.state, "email_sender", None)


__all__ = [
    "get_db",
    "get_current_user",
    "get_current_active_user",
    "get_current_actor",
    "get_optional_user",
    "require_admin",
    "get_email_sender",
]
