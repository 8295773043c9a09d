"""Venue router for venue management operations."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import CurrentUser, PageParams, Pagination, RequiredAuth, StaffOnly
from ..schemas.common import PaginatedResponse
from ..schemas.venue import CreateVenueRequest, UpdateVenueRequest, Venue, VenuePage, VenueSearchParams
from ..services.venue_service import VenueService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/venues", tags=["venues"])

DB_DEPENDENCY = Depends(get_db)


def _venue_page(venues, total: int, page: int, limit: int) -> VenuePage:
    return VenuePage(
        items=[Venue.model_validate(venue) for venue in venues],
        total=total,
        page=page,
        limit=limit,
        total_pages=PaginatedResponse.count_pages(total, limit)
    )


@router.post("", response_model=Venue, status_code=status.HTTP_201_CREATED)
async def create_venue(
    request: CreateVenueRequest,
    user: CurrentUser = StaffOnly,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Create a venue owned by the caller's tenant."""
    venue_service = VenueService(db)
    venue = await venue_service.create_venue(user.tenant_id, request, created_by=user.user_id)

    return JSONResponse(
        status_code=201,
        content=Venue.model_validate(venue).model_dump(mode="json")
    )


@router.get("", response_model=VenuePage)
async def list_venues(
    user: CurrentUser = RequiredAuth,
    pagination: PageParams = Pagination,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """List the caller's tenant venues, newest first."""
    venue_service = VenueService(db)
    venues, total = await venue_service.list_venues(user.tenant_id, pagination.page, pagination.limit)

    response_data = _venue_page(venues, total, pagination.page, pagination.limit)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get("/search", response_model=VenuePage)
async def search_venues(
    params: Annotated[VenueSearchParams, Query()],
    user: CurrentUser = RequiredAuth,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Search active venues by city, capacity range, maximum hourly price and amenities.

    The city filter is a case-insensitive substring match. A venue matches the
    amenity filter only when it offers every listed tag.
    """
    venue_service = VenueService(db)
    venues, total = await venue_service.search_venues(params)

    response_data = _venue_page(venues, total, params.page, params.limit)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get("/{venue_id}", response_model=Venue)
async def get_venue(
    venue_id: UUID,
    user: CurrentUser = RequiredAuth,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Get one of the caller's tenant venues."""
    venue_service = VenueService(db)
    venue = await venue_service.get_venue_for_tenant(venue_id, user.tenant_id)

    return JSONResponse(
        status_code=200,
        content=Venue.model_validate(venue).model_dump(mode="json")
    )


@router.put("/{venue_id}", response_model=Venue)
async def update_venue(
    venue_id: UUID,
    request: UpdateVenueRequest,
    user: CurrentUser = StaffOnly,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Update the supplied fields of a venue."""
    venue_service = VenueService(db)
    venue = await venue_service.update_venue(venue_id, user.tenant_id, request)

    return JSONResponse(
        status_code=200,
        content=Venue.model_validate(venue).model_dump(mode="json")
    )


@router.delete("/{venue_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_venue(
    venue_id: UUID,
    user: CurrentUser = StaffOnly,
    db: AsyncSession = DB_DEPENDENCY
) -> Response:
    """Delete a venue together with its bookings."""
    venue_service = VenueService(db)
    await venue_service.delete_venue(venue_id, user.tenant_id)

    logger.info(
        "Venue deleted via API",
        extra={"venue_id": str(venue_id), "user_id": str(user.user_id)}
    )
    return Response(status_code=204)
