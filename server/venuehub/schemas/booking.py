"""Booking-related Pydantic schemas."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.booking import BookingStatus, PaymentStatus
from .common import PaginatedResponse

MIN_BOOKING_DURATION = timedelta(hours=1)
MAX_BOOKING_DURATION = timedelta(hours=24)
MAX_NOTES_LENGTH = 1000


class CreateBookingRequest(BaseModel):
    """
    Request schema for creating a booking.

    Carries the temporal booking policy: the slot must start in the future,
    end after it starts and last between one and twenty-four hours.
    """

    venue_id: UUID = Field(..., description="Venue to book")
    start_time: AwareDatetime = Field(..., description="Slot start (ISO 8601, with offset)")
    end_time: AwareDatetime = Field(..., description="Slot end, exclusive (ISO 8601, with offset)")
    notes: str | None = Field(None, max_length=MAX_NOTES_LENGTH, description="Free-form notes")

    @model_validator(mode="after")
    def check_interval(self) -> "CreateBookingRequest":
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        if self.start_time <= datetime.now(timezone.utc):
            raise ValueError("Start time must be in the future")
        duration = self.end_time - self.start_time
        if not MIN_BOOKING_DURATION <= duration <= MAX_BOOKING_DURATION:
            raise ValueError("Booking duration must be between 1 and 24 hours")
        return self


class CheckAvailabilityRequest(BaseModel):
    """Request schema for an availability query."""

    venue_id: UUID = Field(..., description="Venue to check")
    start_time: AwareDatetime = Field(..., description="Slot start (ISO 8601, with offset)")
    end_time: AwareDatetime = Field(..., description="Slot end, exclusive (ISO 8601, with offset)")

    @model_validator(mode="after")
    def check_interval(self) -> "CheckAvailabilityRequest":
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class UpdateBookingStatusRequest(BaseModel):
    """Request schema for a status transition."""

    status: BookingStatus = Field(..., description="Target status")


class UpdateBookingRequest(BaseModel):
    """
    Partial update of a booking's slot or notes.

    Only fields present in the payload are applied; an explicit ``null`` for
    ``notes`` clears them.
    """

    start_time: AwareDatetime | None = Field(None, description="New slot start")
    end_time: AwareDatetime | None = Field(None, description="New slot end, exclusive")
    notes: str | None = Field(None, max_length=MAX_NOTES_LENGTH, description="New notes")

    @model_validator(mode="after")
    def check_interval(self) -> "UpdateBookingRequest":
        if self.start_time is not None and self.end_time is not None:
            if self.end_time <= self.start_time:
                raise ValueError("End time must be after start time")
            duration = self.end_time - self.start_time
            if not MIN_BOOKING_DURATION <= duration <= MAX_BOOKING_DURATION:
                raise ValueError("Booking duration must be between 1 and 24 hours")
        return self

    def provided_fields(self) -> dict[str, Any]:
        """Fields the client actually sent, keyed by column name."""
        return self.model_dump(exclude_unset=True)


class Booking(BaseModel):
    """Booking response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Unique booking ID")
    venue_id: UUID = Field(..., description="Booked venue")
    customer_id: UUID = Field(..., description="Customer who owns the booking")
    start_time: datetime = Field(..., description="Slot start (ISO 8601)")
    end_time: datetime = Field(..., description="Slot end, exclusive (ISO 8601)")
    status: BookingStatus = Field(..., description="Booking status")
    total_amount: Decimal = Field(..., ge=0, description="Price of the slot")
    payment_status: PaymentStatus = Field(..., description="Payment status")
    stripe_payment_intent_id: str | None = Field(None, description="Linked payment intent")
    notes: str | None = Field(None, description="Free-form notes")
    created_at: datetime = Field(..., description="Creation time (ISO 8601)")
    updated_at: datetime = Field(..., description="Last modification time (ISO 8601)")

    @field_validator("start_time", "end_time", "created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # Stores without zone support hand back naive UTC values
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class BookingDetails(Booking):
    """Booking flattened with venue and customer display fields."""

    venue_name: str = Field(..., description="Venue name")
    venue_address: dict[str, Any] = Field(..., description="Venue address")
    customer_first_name: str = Field(..., description="Customer first name")
    customer_last_name: str = Field(..., description="Customer last name")
    customer_email: str = Field(..., description="Customer email")


class AvailabilityResponse(BaseModel):
    """Availability query result."""

    venue_id: UUID
    start_time: datetime
    end_time: datetime
    available: bool


class BookingList(BaseModel):
    """Unpaginated booking listing."""

    items: list[BookingDetails] = Field(..., description="Bookings, latest start first")


class BookingPage(PaginatedResponse):
    """One page of a tenant's bookings."""

    items: list[BookingDetails] = Field(..., description="Bookings, latest start first")
