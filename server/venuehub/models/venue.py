"""Venue model definition."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import expression

from ..core.database import Base

if TYPE_CHECKING:
    from .booking import Booking
    from .tenant import Tenant

# JSONB on PostgreSQL, plain JSON elsewhere
JsonDocument = JSON().with_variant(JSONB(), "postgresql")


class Venue(Base):
    """A bookable physical space with an hourly price and a capacity."""

    __tablename__ = "venues"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Owning tenant
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Venue details
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    address: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_hour: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    amenities: Mapped[list[str]] = mapped_column(JsonDocument, nullable=False, default=list)
    images: Mapped[list[str]] = mapped_column(JsonDocument, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=expression.true()
    )
    created_by: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_venue_capacity_positive"),
        CheckConstraint("price_per_hour >= 0", name="ck_venue_price_non_negative"),
        CheckConstraint("length(name) > 0", name="ck_venue_name_not_empty"),
    )

    # Relationships
    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="venues")
    bookings: Mapped[list["Booking"]] = relationship(
        "Booking",
        back_populates="venue",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    def __repr__(self) -> str:
        return (
            f"<Venue(id={self.id}, name='{self.name}', tenant_id={self.tenant_id}, "
            f"price_per_hour={self.price_per_hour}, is_active={self.is_active})>"
        )
