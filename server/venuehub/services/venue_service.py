"""Venue service for business logic operations."""

import logging
from uuid import UUID

from sqlalchemy import and_, cast, delete, func, select
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError, ValidationError
from ..core.observability import metrics_collector
from ..models.venue import Venue
from ..schemas.venue import CreateVenueRequest, UpdateVenueRequest, VenueSearchParams
from .booking_rules import utcnow

logger = logging.getLogger(__name__)

# Columns an update may set to NULL
_NULLABLE_UPDATE_FIELDS = frozenset({"description"})


class VenueService:
    """Service for venue-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_venue(
        self,
        tenant_id: UUID,
        request: CreateVenueRequest,
        created_by: UUID | None = None
    ) -> Venue:
        """
        Create a new venue for a tenant.

        Args:
            tenant_id: Owning tenant
            request: Venue creation request
            created_by: User creating the venue

        Returns:
            Created venue entity
        """
        now = utcnow()
        venue = Venue(
            tenant_id=tenant_id,
            name=request.name,
            description=request.description,
            address=request.address.model_dump(exclude_none=True),
            capacity=request.capacity,
            price_per_hour=request.price_per_hour,
            amenities=list(request.amenities),
            images=list(request.images),
            is_active=True,
            created_by=created_by,
            created_at=now,
            updated_at=now
        )

        self.db.add(venue)
        await self.db.commit()

        metrics_collector.record_venue_created()
        logger.info(
            "Venue created successfully",
            extra={
                "venue_id": str(venue.id),
                "tenant_id": str(tenant_id),
                "name": venue.name,
                "price_per_hour": str(venue.price_per_hour)
            }
        )

        return venue

    async def get_venue(self, venue_id: UUID) -> Venue | None:
        """Get venue by ID regardless of tenant."""
        stmt = select(Venue).where(Venue.id == venue_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_venue_or_raise(self, venue_id: UUID) -> Venue:
        """
        Get venue by ID or raise NotFoundError.

        This is the lookup the booking workflow depends on.

        Raises:
            NotFoundError: If venue not found
        """
        venue = await self.get_venue(venue_id)
        if not venue:
            logger.warning("Venue not found", extra={"venue_id": str(venue_id)})
            raise NotFoundError(
                resource_type="venue",
                resource_id=str(venue_id),
                detail="Venue not found"
            )
        return venue

    async def get_venue_for_tenant(self, venue_id: UUID, tenant_id: UUID) -> Venue:
        """
        Get a venue that belongs to the given tenant.

        Raises:
            NotFoundError: If no such venue exists within the tenant
        """
        stmt = select(Venue).where(Venue.id == venue_id, Venue.tenant_id == tenant_id)
        result = await self.db.execute(stmt)
        venue = result.scalar_one_or_none()
        if not venue:
            logger.warning(
                "Venue not found for tenant",
                extra={"venue_id": str(venue_id), "tenant_id": str(tenant_id)}
            )
            raise NotFoundError(
                resource_type="venue",
                resource_id=str(venue_id),
                detail="Venue not found"
            )
        return venue

    async def list_venues(self, tenant_id: UUID, page: int = 1, limit: int = 10) -> tuple[list[Venue], int]:
        """
        List a tenant's venues, newest first.

        Returns:
            Tuple of (venues on the requested page, total venue count)
        """
        total = await self.db.scalar(
            select(func.count()).select_from(Venue).where(Venue.tenant_id == tenant_id)
        )

        stmt = (
            select(Venue)
            .where(Venue.tenant_id == tenant_id)
            .order_by(Venue.created_at.desc(), Venue.id)
            .limit(limit)
            .offset((page - 1) * limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars()), total or 0

    async def update_venue(self, venue_id: UUID, tenant_id: UUID, request: UpdateVenueRequest) -> Venue:
        """
        Apply the fields present in ``request`` to a tenant's venue.

        Raises:
            ValidationError: If no fields were provided or a required field was nulled
            NotFoundError: If venue not found within the tenant
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

        venue = await self.get_venue_for_tenant(venue_id, tenant_id)

        # The address is replaced as a whole; unset optional parts are dropped
        if "address" in changes:
            changes["address"] = {k: v for k, v in changes["address"].items() if v is not None}

        for field, value in changes.items():
            setattr(venue, field, value)
        venue.updated_at = utcnow()

        await self.db.commit()

        logger.info(
            "Venue updated successfully",
            extra={
                "venue_id": str(venue_id),
                "tenant_id": str(tenant_id),
                "fields": sorted(changes)
            }
        )

        return venue

    async def delete_venue(self, venue_id: UUID, tenant_id: UUID) -> None:
        """
        Administratively delete a tenant's venue.

        Raises:
            NotFoundError: If venue not found within the tenant
        """
        stmt = delete(Venue).where(Venue.id == venue_id, Venue.tenant_id == tenant_id)
        result = await self.db.execute(stmt)

        if result.rowcount == 0:
            await self.db.rollback()
            raise NotFoundError(
                resource_type="venue",
                resource_id=str(venue_id),
                detail="Venue not found"
            )

        await self.db.commit()
        logger.info(
            "Venue deleted",
            extra={"venue_id": str(venue_id), "tenant_id": str(tenant_id)}
        )

    async def search_venues(self, params: VenueSearchParams) -> tuple[list[Venue], int]:
        """
        Search active venues.

        Args:
            params: Optional city, capacity, price and amenity filters plus paging

        Returns:
            Tuple of (venues on the requested page, total matches)
        """
        conditions = [Venue.is_active.is_(True)]

        if params.city:
            conditions.append(Venue.address["city"].as_string().icontains(params.city, autoescape=True))

        if params.capacity_min is not None:
            conditions.append(Venue.capacity >= params.capacity_min)

        if params.capacity_max is not None:
            conditions.append(Venue.capacity <= params.capacity_max)

        if params.price_max is not None:
            conditions.append(Venue.price_per_hour <= params.price_max)

        if params.amenities:
            conditions.append(self._offers_amenities(params.amenities))

        total = await self.db.scalar(select(func.count()).select_from(Venue).where(*conditions))

        stmt = (
            select(Venue)
            .where(*conditions)
            .order_by(Venue.created_at.desc(), Venue.id)
            .limit(params.limit)
            .offset((params.page - 1) * params.limit)
        )
        result = await self.db.execute(stmt)
        venues = list(result.scalars())

        logger.info(
            "Venue search completed",
            extra={
                "total_found": total,
                "filters": params.model_dump(exclude={"page", "limit"}, exclude_none=True, mode="json")
            }
        )

        return venues, total or 0

    def _offers_amenities(self, amenities: list[str]):
        """Condition matching venues whose amenity list contains every tag."""
        if self.db.get_bind().dialect.name == "postgresql":
            return cast(Venue.amenities, JSONB).contains(amenities)

        # SQLite has no JSON containment operator; look for each tag among the array elements
        conditions = []
        for amenity in amenities:
            elements = func.json_each(Venue.amenities).table_valued("value")
            conditions.append(select(elements.c.value).where(elements.c.value == amenity).exists())
        return and_(*conditions)
