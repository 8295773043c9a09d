"""Models module exporting all database models."""

from .booking import TERMINAL_STATUSES, Booking, BookingStatus, PaymentStatus
from .tenant import Tenant
from .user import User, UserRole
from .venue import Venue

__all__ = [
    # Tenancy
    "Tenant",
    "User",
    "UserRole",

    # Venue entity
    "Venue",

    # Booking entity
    "Booking",
    "BookingStatus",
    "PaymentStatus",
    "TERMINAL_STATUSES",
]
