"""SQLAlchemy models for PhotoBooking.

All models are imported here so that ``Base.metadata`` knows every table
before ``create_all`` runs. If you add a new model, import it in this file.
"""

from photobooking.models.booking import Booking, BookingStatusEvent
from photobooking.models.notification import Notification
from photobooking.models.schedule import ScheduleDay
from photobooking.models.service import Service
from photobooking.models.user import User

__all__ = [
    "Booking",
    "BookingStatusEvent",
    "Notification",
    "ScheduleDay",
    "Service",
    "User",
]
