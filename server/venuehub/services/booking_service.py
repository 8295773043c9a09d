"""Booking service for business logic operations."""

import logging
from contextlib import nullcontext
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError, SlotUnavailableError, ValidationError
from ..core.locks import VenueLocks
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingStatus, PaymentStatus
from ..models.user import User
from ..models.venue import Venue
from ..schemas.booking import Booking as BookingSchema
from ..schemas.booking import BookingDetails, CreateBookingRequest, UpdateBookingRequest
from .booking_rules import ensure_bookable_interval, ensure_mutable, price_for_interval, to_utc, utcnow
from .venue_service import VenueService

logger = logging.getLogger(__name__)

# Name of the PostgreSQL exclusion constraint that forbids overlapping live bookings
OVERLAP_CONSTRAINT = "ex_bookings_venue_no_overlap"

# Booking columns an update may set to NULL
_NULLABLE_UPDATE_FIELDS = frozenset({"notes"})


class BookingService:
    """Service for booking-related operations."""

    def __init__(self, db: AsyncSession, locks: VenueLocks | None = None):
        self.db = db
        self.locks = locks if locks is not None else VenueLocks()
        self.venue_service = VenueService(db)

    async def check_availability(
        self,
        venue_id: UUID,
        start_time: datetime,
        end_time: datetime,
        exclude_booking_id: UUID | None = None
    ) -> bool:
        """
        Check whether ``[start_time, end_time)`` is free at a venue.

        A slot is free when no booking of the venue other than a cancelled
        one intersects it. Adjacent bookings do not intersect.

        Args:
            venue_id: Venue to check
            start_time: Slot start
            end_time: Slot end, exclusive
            exclude_booking_id: Booking to ignore, used when rescheduling it

        Returns:
            True if no live booking overlaps the slot
        """
        conditions = [
            Booking.venue_id == venue_id,
            Booking.status != BookingStatus.CANCELLED.value,
            Booking.start_time < to_utc(end_time),
            Booking.end_time > to_utc(start_time),
        ]
        if exclude_booking_id is not None:
            conditions.append(Booking.id != exclude_booking_id)

        stmt = select(Booking.id).where(*conditions).limit(1)
        conflicting_id = await self.db.scalar(stmt)

        if conflicting_id is not None:
            logger.debug(
                "Slot overlaps an existing booking",
                extra={
                    "venue_id": str(venue_id),
                    "conflicting_booking_id": str(conflicting_id),
                    "start_time": start_time.isoformat(),
                    "end_time": end_time.isoformat()
                }
            )

        return conflicting_id is None

    async def calculate_total_amount(self, venue_id: UUID, start_time: datetime, end_time: datetime) -> Decimal:
        """
        Price a slot at the venue's hourly rate.

        Raises:
            NotFoundError: If venue not found
        """
        venue = await self.venue_service.get_venue_or_raise(venue_id)
        return price_for_interval(venue.price_per_hour, start_time, end_time)

    async def create_booking(self, customer_id: UUID, request: CreateBookingRequest) -> Booking:
        """
        Create a pending booking if the venue is bookable and the slot is free.

        The availability check and the insert run while the venue's lock is
        held, so two requests for overlapping slots cannot both succeed.

        Args:
            customer_id: Customer placing the booking
            request: Booking creation request

        Returns:
            Created booking entity

        Raises:
            NotFoundError: If venue not found
            ValidationError: If venue is inactive
            SlotUnavailableError: If the slot overlaps a live booking
        """
        venue_key = str(request.venue_id)
        start_time = to_utc(request.start_time)
        end_time = to_utc(request.end_time)

        async with self.locks.hold(self.db, venue_key):
            venue = await self.venue_service.get_venue_or_raise(request.venue_id)

            if not venue.is_active:
                logger.warning(
                    "Booking creation failed - venue inactive",
                    extra={"venue_id": venue_key, "customer_id": str(customer_id)}
                )
                raise ValidationError("Venue is not available for booking", code="VENUE_INACTIVE")

            if not await self.check_availability(venue.id, start_time, end_time):
                metrics_collector.record_booking_conflict()
                logger.warning(
                    "Booking creation failed - slot unavailable",
                    extra={
                        "venue_id": venue_key,
                        "customer_id": str(customer_id),
                        "start_time": start_time.isoformat(),
                        "end_time": end_time.isoformat()
                    }
                )
                raise SlotUnavailableError(venue_key)

            now = utcnow()
            booking = Booking(
                venue_id=venue.id,
                customer_id=customer_id,
                start_time=start_time,
                end_time=end_time,
                status=BookingStatus.PENDING.value,
                total_amount=price_for_interval(venue.price_per_hour, start_time, end_time),
                payment_status=PaymentStatus.PENDING.value,
                stripe_payment_intent_id=None,
                notes=request.notes,
                created_at=now,
                updated_at=now
            )
            self.db.add(booking)

            try:
                await self.db.commit()
            except IntegrityError as exc:
                await self.db.rollback()
                if OVERLAP_CONSTRAINT in str(exc.orig):
                    metrics_collector.record_booking_conflict()
                    logger.warning(
                        "Booking creation failed - overlap rejected by database",
                        extra={"venue_id": venue_key, "customer_id": str(customer_id)}
                    )
                    raise SlotUnavailableError(venue_key) from exc
                raise

        metrics_collector.record_booking_created()
        logger.info(
            "Booking created successfully",
            extra={
                "booking_id": str(booking.id),
                "venue_id": venue_key,
                "customer_id": str(customer_id),
                "start_time": start_time.isoformat(),
                "end_time": end_time.isoformat(),
                "total_amount": str(booking.total_amount)
            }
        )

        return booking

    async def update_booking_status(self, booking_id: UUID, new_status: BookingStatus) -> Booking:
        """
        Move a booking to ``new_status``.

        Any non-terminal booking may move to any status; cancelled and
        completed bookings are frozen.

        Raises:
            NotFoundError: If booking not found
            ValidationError: If the booking is cancelled or completed
        """
        booking = await self._get_booking_for_update(booking_id)
        ensure_mutable(booking.status)

        previous_status = BookingStatus(booking.status).value
        target_status = BookingStatus(new_status).value

        booking.status = target_status
        booking.updated_at = utcnow()
        await self.db.commit()

        metrics_collector.record_status_transition(previous_status, target_status)
        logger.info(
            "Booking status updated",
            extra={
                "booking_id": str(booking_id),
                "from_status": previous_status,
                "to_status": target_status
            }
        )

        return booking

    async def cancel_booking(self, booking_id: UUID) -> Booking:
        """Cancel a booking; its slot becomes bookable again."""
        return await self.update_booking_status(booking_id, BookingStatus.CANCELLED)

    async def update_booking(self, booking_id: UUID, request: UpdateBookingRequest) -> Booking:
        """
        Reschedule a booking or change its notes.

        Only the fields present in ``request`` are applied. A new interval is
        re-checked against the venue's other bookings and re-priced.

        Raises:
            ValidationError: If nothing to update, the booking is terminal or the new interval
                falls outside the booking window
            NotFoundError: If booking not found
            SlotUnavailableError: If the new interval overlaps another live booking
        """
        changes = request.provided_fields()
        if not changes:
            raise ValidationError("No fields to update")

        nulled = sorted(
            field for field, value in changes.items()
            if value is None and field not in _NULLABLE_UPDATE_FIELDS
        )
        if nulled:
            raise ValidationError(
                f"Fields cannot be null: {', '.join(nulled)}",
                errors={field: "cannot be null" for field in nulled}
            )

        booking = await self._get_booking_for_update(booking_id)
        ensure_mutable(booking.status)

        current_start = to_utc(booking.start_time)
        current_end = to_utc(booking.end_time)
        start_time = to_utc(changes.get("start_time", current_start))
        end_time = to_utc(changes.get("end_time", current_end))
        reschedule = (start_time, end_time) != (current_start, current_end)

        if reschedule:
            ensure_bookable_interval(start_time, end_time)

        venue_key = str(booking.venue_id)
        guard = self.locks.hold(self.db, venue_key) if reschedule else nullcontext()

        async with guard:
            if reschedule:
                if not await self.check_availability(
                    booking.venue_id, start_time, end_time, exclude_booking_id=booking.id
                ):
                    metrics_collector.record_booking_conflict()
                    logger.warning(
                        "Booking reschedule failed - slot unavailable",
                        extra={
                            "booking_id": str(booking_id),
                            "venue_id": venue_key,
                            "start_time": start_time.isoformat(),
                            "end_time": end_time.isoformat()
                        }
                    )
                    raise SlotUnavailableError(venue_key)

                booking.total_amount = await self.calculate_total_amount(booking.venue_id, start_time, end_time)
                booking.start_time = start_time
                booking.end_time = end_time

            if "notes" in changes:
                booking.notes = changes["notes"]
            booking.updated_at = utcnow()

            try:
                await self.db.commit()
            except IntegrityError as exc:
                await self.db.rollback()
                if OVERLAP_CONSTRAINT in str(exc.orig):
                    raise SlotUnavailableError(venue_key) from exc
                raise

        logger.info(
            "Booking updated",
            extra={
                "booking_id": str(booking_id),
                "fields": sorted(changes),
                "rescheduled": reschedule
            }
        )

        return booking

    async def get_booking_by_id_or_raise(self, booking_id: UUID) -> Booking:
        """Get booking entity by ID or raise NotFoundError."""
        stmt = select(Booking).where(Booking.id == booking_id)
        result = await self.db.execute(stmt)
        booking = result.scalar_one_or_none()
        if not booking:
            logger.warning("Booking not found", extra={"booking_id": str(booking_id)})
            raise NotFoundError(
                resource_type="booking",
                resource_id=str(booking_id),
                detail="Booking not found"
            )
        return booking

    async def get_booking_by_id(
        self,
        booking_id: UUID,
        tenant_id: UUID | None = None,
        customer_id: UUID | None = None
    ) -> BookingDetails:
        """
        Get a booking with its venue and customer display fields.

        When both scopes are given a booking matching either one is found, so
        customers keep access to bookings they made at other tenants' venues.

        Args:
            booking_id: Booking to fetch
            tenant_id: Only find a booking at one of this tenant's venues
            customer_id: Only find a booking placed by this customer

        Raises:
            NotFoundError: If booking not found
        """
        stmt = self._details_query().where(Booking.id == booking_id)
        scopes = []
        if tenant_id is not None:
            scopes.append(Venue.tenant_id == tenant_id)
        if customer_id is not None:
            scopes.append(Booking.customer_id == customer_id)
        if scopes:
            stmt = stmt.where(or_(*scopes))

        result = await self.db.execute(stmt)
        row = result.one_or_none()
        if row is None:
            logger.warning(
                "Booking not found",
                extra={
                    "booking_id": str(booking_id),
                    "tenant_id": str(tenant_id) if tenant_id else None
                }
            )
            raise NotFoundError(
                resource_type="booking",
                resource_id=str(booking_id),
                detail="Booking not found"
            )
        return self._to_details(row)

    async def get_bookings_by_venue(
        self,
        venue_id: UUID,
        status: BookingStatus | None = None,
        tenant_id: UUID | None = None
    ) -> list[BookingDetails]:
        """
        List a venue's bookings, latest start first.

        Raises:
            NotFoundError: If ``tenant_id`` is given and the venue is not one of its venues
        """
        if tenant_id is not None:
            await self.venue_service.get_venue_for_tenant(venue_id, tenant_id)

        stmt = self._details_query().where(Booking.venue_id == venue_id)
        if status is not None:
            stmt = stmt.where(Booking.status == BookingStatus(status).value)

        result = await self.db.execute(stmt)
        return [self._to_details(row) for row in result]

    async def get_bookings_by_customer(
        self,
        customer_id: UUID,
        status: BookingStatus | None = None
    ) -> list[BookingDetails]:
        """List a customer's bookings, latest start first."""
        stmt = self._details_query().where(Booking.customer_id == customer_id)
        if status is not None:
            stmt = stmt.where(Booking.status == BookingStatus(status).value)

        result = await self.db.execute(stmt)
        return [self._to_details(row) for row in result]

    async def get_all_bookings(
        self,
        tenant_id: UUID,
        page: int = 1,
        limit: int = 20
    ) -> tuple[list[BookingDetails], int]:
        """
        Page through every booking at a tenant's venues.

        Returns:
            Tuple of (bookings on the requested page, total across all pages)
        """
        total = await self.db.scalar(
            select(func.count(Booking.id))
            .join(Venue, Booking.venue_id == Venue.id)
            .where(Venue.tenant_id == tenant_id)
        )

        stmt = (
            self._details_query()
            .where(Venue.tenant_id == tenant_id)
            .limit(limit)
            .offset((page - 1) * limit)
        )
        result = await self.db.execute(stmt)
        return [self._to_details(row) for row in result], total or 0

    async def _get_booking_for_update(self, booking_id: UUID) -> Booking:
        # FOR UPDATE is omitted by dialects without row locks
        stmt = (
            select(Booking)
            .where(Booking.id == booking_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        booking = result.scalar_one_or_none()
        if not booking:
            logger.warning("Booking not found", extra={"booking_id": str(booking_id)})
            raise NotFoundError(
                resource_type="booking",
                resource_id=str(booking_id),
                detail="Booking not found"
            )
        return booking

    @staticmethod
    def _details_query():
        return (
            select(
                Booking,
                Venue.name,
                Venue.address,
                User.first_name,
                User.last_name,
                User.email
            )
            .join(Venue, Booking.venue_id == Venue.id)
            .join(User, Booking.customer_id == User.id)
            .order_by(Booking.start_time.desc(), Booking.id)
        )

    @staticmethod
    def _to_details(row) -> BookingDetails:
        booking, venue_name, venue_address, first_name, last_name, email = row
        return BookingDetails(
            **BookingSchema.model_validate(booking).model_dump(),
            venue_name=venue_name,
            venue_address=venue_address,
            customer_first_name=first_name,
            customer_last_name=last_name,
            customer_email=email
        )
