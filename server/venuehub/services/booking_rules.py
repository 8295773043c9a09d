"""Pure booking rules: interval overlap, pricing, the booking window and the status guard."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from ..core.exceptions import ValidationError
from ..models.booking import TERMINAL_STATUSES, BookingStatus
from ..schemas.booking import MAX_BOOKING_DURATION, MIN_BOOKING_DURATION

_MICROSECONDS_PER_HOUR = Decimal(3_600_000_000)


def to_utc(value: datetime) -> datetime:
    """Normalize a timestamp to aware UTC; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """
    Half-open overlap test: ``[a_start, a_end)`` and ``[b_start, b_end)``
    share an instant iff each starts before the other ends.

    Touching intervals (``a_end == b_start``) do not overlap.
    """
    return a_start < b_end and b_start < a_end


def duration_hours(start_time: datetime, end_time: datetime) -> Decimal:
    """Exact length of ``[start_time, end_time)`` in hours."""
    micros = (to_utc(end_time) - to_utc(start_time)) // timedelta(microseconds=1)
    return Decimal(micros) / _MICROSECONDS_PER_HOUR


def price_for_interval(price_per_hour: Decimal, start_time: datetime, end_time: datetime) -> Decimal:
    """
    Hourly rate times duration, fractional hours included.

    No currency rounding is applied here.
    """
    return Decimal(price_per_hour) * duration_hours(start_time, end_time)


def ensure_mutable(status: str) -> None:
    """
    Reject any change to a booking in a terminal status.

    Raises:
        ValidationError: If the booking is cancelled or completed
    """
    if status in TERMINAL_STATUSES:
        raise ValidationError(
            f"Cannot update a {BookingStatus(status).value} booking",
            code="BOOKING_TERMINAL"
        )


def ensure_bookable_interval(start_time: datetime, end_time: datetime, now: datetime | None = None) -> None:
    """
    Enforce the booking window on a requested interval.

    The interval must start in the future, end after it starts and last
    between one and twenty-four hours.

    Raises:
        ValidationError: If any of those conditions fails
    """
    start_time = to_utc(start_time)
    end_time = to_utc(end_time)
    if end_time <= start_time:
        raise ValidationError("End time must be after start time", code="INVALID_INTERVAL")
    if start_time <= (now or utcnow()):
        raise ValidationError("Start time must be in the future", code="INVALID_INTERVAL")
    if not MIN_BOOKING_DURATION <= end_time - start_time <= MAX_BOOKING_DURATION:
        raise ValidationError("Booking duration must be between 1 and 24 hours", code="INVALID_INTERVAL")
