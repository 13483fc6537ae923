"""SQLAlchemy models."""

from tableready.models.venue import Venue, VenueTable
from tableready.models.waitlist import (
    WaitlistEntry,
    WaitlistStatus,
    ReservationType,
    CancelledBy,
    TERMINAL_STATUSES,
    ACTIVE_STATUSES,
)
from tableready.models.analytics import WaitlistAnalytics, OrderAnalytics, VenueCapacitySnapshot

__all__ = [
    "Venue",
    "VenueTable",
    "WaitlistEntry",
    "WaitlistStatus",
    "ReservationType",
    "CancelledBy",
    "TERMINAL_STATUSES",
    "ACTIVE_STATUSES",
    "WaitlistAnalytics",
    "OrderAnalytics",
    "VenueCapacitySnapshot",
]
