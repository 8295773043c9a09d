"""Booking router for booking operations."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import CurrentUser, PageParams, Pagination, RequiredAuth, StaffOnly, VenueLockRegistry
from ..core.exceptions import AuthorizationError
from ..core.locks import VenueLocks
from ..models.booking import BookingStatus
from ..schemas.booking import (
    AvailabilityResponse,
    Booking,
    BookingDetails,
    BookingList,
    BookingPage,
    CheckAvailabilityRequest,
    CreateBookingRequest,
    UpdateBookingRequest,
    UpdateBookingStatusRequest,
)
from ..schemas.common import PaginatedResponse
from ..services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/bookings", tags=["bookings"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)


def _convert_booking_to_schema(booking_model) -> dict:
    """Convert booking model to a JSON-ready dict."""
    return Booking.model_validate(booking_model).model_dump(mode="json")


async def _authorize_booking_access(
    booking_service: BookingService,
    booking_id: UUID,
    user: CurrentUser
) -> BookingDetails:
    """
    Load a booking the caller may act on.

    Staff reach every booking at their tenant's venues. Customers reach their
    own bookings wherever the venue is.
    """
    if user.is_staff:
        booking = await booking_service.get_booking_by_id(booking_id, tenant_id=user.tenant_id)
    else:
        booking = await booking_service.get_booking_by_id(
            booking_id, tenant_id=user.tenant_id, customer_id=user.user_id
        )
    if not user.is_staff and booking.customer_id != user.user_id:
        logger.warning(
            "Booking access denied",
            extra={"booking_id": str(booking_id), "user_id": str(user.user_id)}
        )
        raise AuthorizationError("You can only access your own bookings")
    return booking


@router.post("", response_model=Booking, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: CreateBookingRequest,
    user: CurrentUser = RequiredAuth,
    locks: VenueLocks = VenueLockRegistry,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Book a venue for ``[start_time, end_time)``.

    The booking starts out pending and unpaid.
    """
    booking_service = BookingService(db, locks)
    booking = await booking_service.create_booking(user.user_id, request)

    return JSONResponse(
        status_code=201,
        content=_convert_booking_to_schema(booking)
    )


@router.get("", response_model=BookingPage)
async def list_bookings(
    user: CurrentUser = StaffOnly,
    pagination: PageParams = Pagination,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Page through every booking at the caller's tenant venues."""
    booking_service = BookingService(db)
    bookings, total = await booking_service.get_all_bookings(
        user.tenant_id, page=pagination.page, limit=pagination.limit
    )

    response_data = BookingPage(
        items=bookings,
        total=total,
        page=pagination.page,
        limit=pagination.limit,
        total_pages=PaginatedResponse.count_pages(total, pagination.limit)
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get("/my-bookings", response_model=BookingList)
async def list_my_bookings(
    booking_status: BookingStatus | None = Query(None, alias="status", description="Only bookings in this status"),
    user: CurrentUser = RequiredAuth,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """List the caller's own bookings, latest start first."""
    booking_service = BookingService(db)
    bookings = await booking_service.get_bookings_by_customer(user.user_id, status=booking_status)

    return JSONResponse(
        status_code=200,
        content=BookingList(items=bookings).model_dump(mode="json")
    )


@router.post("/check-availability", response_model=AvailabilityResponse)
async def check_availability(
    request: CheckAvailabilityRequest,
    user: CurrentUser = RequiredAuth,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Report whether a slot is free. Nothing is reserved."""
    booking_service = BookingService(db)
    available = await booking_service.check_availability(
        request.venue_id, request.start_time, request.end_time
    )

    response_data = AvailabilityResponse(
        venue_id=request.venue_id,
        start_time=request.start_time,
        end_time=request.end_time,
        available=available
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get("/venue/{venue_id}", response_model=BookingList)
async def list_venue_bookings(
    venue_id: UUID,
    booking_status: BookingStatus | None = Query(None, alias="status", description="Only bookings in this status"),
    user: CurrentUser = StaffOnly,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """List a venue's bookings, latest start first."""
    booking_service = BookingService(db)
    bookings = await booking_service.get_bookings_by_venue(
        venue_id, status=booking_status, tenant_id=user.tenant_id
    )

    return JSONResponse(
        status_code=200,
        content=BookingList(items=bookings).model_dump(mode="json")
    )


@router.get("/{booking_id}", response_model=BookingDetails)
async def get_booking(
    booking_id: UUID,
    user: CurrentUser = RequiredAuth,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Get a booking with venue and customer details."""
    booking_service = BookingService(db)
    booking = await _authorize_booking_access(booking_service, booking_id, user)

    return JSONResponse(status_code=200, content=booking.model_dump(mode="json"))


@router.patch("/{booking_id}", response_model=Booking)
async def update_booking(
    booking_id: UUID,
    request: UpdateBookingRequest,
    user: CurrentUser = RequiredAuth,
    locks: VenueLocks = VenueLockRegistry,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Reschedule a booking or change its notes."""
    booking_service = BookingService(db, locks)
    await _authorize_booking_access(booking_service, booking_id, user)
    booking = await booking_service.update_booking(booking_id, request)

    return JSONResponse(status_code=200, content=_convert_booking_to_schema(booking))


@router.put("/{booking_id}/status", response_model=Booking)
async def update_booking_status(
    booking_id: UUID,
    request: UpdateBookingStatusRequest,
    user: CurrentUser = StaffOnly,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Move a booking to another status. Cancelled and completed bookings are final."""
    booking_service = BookingService(db)
    await booking_service.get_booking_by_id(booking_id, tenant_id=user.tenant_id)
    booking = await booking_service.update_booking_status(booking_id, request.status)

    logger.info(
        "Booking status changed via API",
        extra={
            "booking_id": str(booking_id),
            "status": request.status.value,
            "user_id": str(user.user_id)
        }
    )

    return JSONResponse(status_code=200, content=_convert_booking_to_schema(booking))


@router.delete("/{booking_id}", response_model=Booking)
async def cancel_booking(
    booking_id: UUID,
    user: CurrentUser = RequiredAuth,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Cancel a booking.

    The record is kept with status ``cancelled`` and its slot is released.
    """
    booking_service = BookingService(db)
    await _authorize_booking_access(booking_service, booking_id, user)
    booking = await booking_service.cancel_booking(booking_id)

    return JSONResponse(status_code=200, content=_convert_booking_to_schema(booking))
