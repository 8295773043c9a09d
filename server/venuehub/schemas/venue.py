"""Venue-related Pydantic schemas."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import PaginatedResponse


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Address(BaseModel):
    """Postal address of a venue."""

    street: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    postcode: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)
    coordinates: Coordinates | None = None


class CreateVenueRequest(BaseModel):
    """Request schema for creating a venue."""

    name: str = Field(..., min_length=1, max_length=255, description="Venue name")
    description: str | None = Field(None, max_length=5000, description="Venue description")
    address: Address = Field(..., description="Venue address")
    capacity: int = Field(..., gt=0, description="Maximum number of guests")
    price_per_hour: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2, description="Hourly rate")
    amenities: list[str] = Field(default_factory=list, description="Amenity tags")
    images: list[str] = Field(default_factory=list, description="Image URLs")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Venue name is required")
        return v.strip()


class UpdateVenueRequest(BaseModel):
    """
    Partial venue update.

    Every attribute is optional; only attributes present in the payload are
    written, each to its own named column.
    """

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    address: Address | None = None
    capacity: int | None = Field(None, gt=0)
    price_per_hour: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    amenities: list[str] | None = None
    images: list[str] | None = None
    is_active: bool | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if not v.strip():
            raise ValueError("Venue name is required")
        return v.strip()

    def provided_fields(self) -> dict[str, Any]:
        """Fields the client actually sent, keyed by column name."""
        return self.model_dump(exclude_unset=True)


class VenueSearchParams(BaseModel):
    """Filters for searching active venues."""

    city: str | None = Field(None, description="Case-insensitive substring of the city")
    capacity_min: int | None = Field(None, ge=1)
    capacity_max: int | None = Field(None, ge=1)
    price_max: Decimal | None = Field(None, ge=0)
    amenities: list[str] | None = Field(
        None, description="Amenity tags every match must offer, comma-separated or repeated"
    )
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)

    @field_validator("amenities", mode="before")
    @classmethod
    def split_amenities(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = [v]
        if isinstance(v, list):
            return [tag.strip() for item in v for tag in str(item).split(",") if tag.strip()] or None
        return v


class Venue(BaseModel):
    """Venue response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    name: str
    description: str | None = None
    address: dict[str, Any]
    capacity: int
    price_per_hour: Decimal
    amenities: list[str]
    images: list[str]
    is_active: bool
    created_by: UUID | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class VenuePage(PaginatedResponse):
    """One page of venues."""

    items: list[Venue] = Field(..., description="Venues, newest first")
