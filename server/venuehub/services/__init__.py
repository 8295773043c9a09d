"""Service layer package."""

from .booking_service import BookingService
from .venue_service import VenueService

__all__ = [
    "BookingService",
    "VenueService",
]
