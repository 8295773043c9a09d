"""Test configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from venuehub.core.config import Settings
from venuehub.core.database import Database, get_db
from venuehub.core.locks import VenueLocks
from venuehub.models import Tenant, User, UserRole
from venuehub.schemas.venue import Address, CreateVenueRequest
from venuehub.services.venue_service import VenueService

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_JWT_SECRET = "test-secret"


@pytest.fixture
def test_settings():
    """Settings for an isolated test application."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        environment="test",
        jwt_secret=TEST_JWT_SECRET,
        cors_origins=["*"],
    )


@pytest_asyncio.fixture(scope="function")
async def test_database():
    """Create a test database with all tables."""
    database = Database(TEST_DATABASE_URL)
    await database.create_all()

    yield database

    await database.drop_all()
    await database.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_database):
    """Create a test database session."""
    async with test_database.session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def test_app(test_settings, test_session):
    """Create a test FastAPI application bound to the test session."""
    from venuehub.main import create_app

    app = create_app(test_settings)

    # Override database dependency
    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    # Clean up
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def venue_locks():
    """A lock registry shared by every service in one test."""
    return VenueLocks()


async def _add_user(session, tenant, email, first_name, last_name, role):
    now = datetime.now(timezone.utc)
    user = User(
        tenant_id=tenant.id,
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role.value,
        created_at=now,
        updated_at=now
    )
    session.add(user)
    await session.commit()
    return user


@pytest_asyncio.fixture
async def tenant(test_session):
    """The tenant every fixture user and venue belongs to."""
    tenant = Tenant(name="Harbour Events", slug="harbour-events", created_at=datetime.now(timezone.utc))
    test_session.add(tenant)
    await test_session.commit()
    return tenant


@pytest_asyncio.fixture
async def other_tenant(test_session):
    """A second, unrelated tenant."""
    tenant = Tenant(name="Hilltop Halls", slug="hilltop-halls", created_at=datetime.now(timezone.utc))
    test_session.add(tenant)
    await test_session.commit()
    return tenant


@pytest_asyncio.fixture
async def outside_customer(test_session, other_tenant):
    """A customer registered with the second tenant."""
    return await _add_user(test_session, other_tenant, "sam@hilltop.example", "Sam", "Outsider", UserRole.CUSTOMER)

@pytest_asyncio.fixture
async def owner(test_session, tenant):
    return await _add_user(test_session, tenant, "owner@harbour.example", "Olivia", "Owner", UserRole.OWNER)


@pytest_asyncio.fixture
async def customer(test_session, tenant):
    return await _add_user(test_session, tenant, "casey@example.com", "Casey", "Customer", UserRole.CUSTOMER)


@pytest_asyncio.fixture
async def other_customer(test_session, tenant):
    return await _add_user(test_session, tenant, "robin@example.com", "Robin", "Other", UserRole.CUSTOMER)


@pytest.fixture
def sample_venue_data():
    """Sample venue data for testing."""
    return {
        "name": "Harbour Loft",
        "description": "Open-plan loft overlooking the marina",
        "address": {
            "street": "1 Quay Street",
            "city": "Bristol",
            "postcode": "BS1 4DJ",
            "country": "UK"
        },
        "capacity": 80,
        "price_per_hour": "50.00",
        "amenities": ["wifi", "projector"],
    }


@pytest_asyncio.fixture
async def venue(test_session, tenant, owner):
    """An active venue at 50.00 per hour."""
    return await VenueService(test_session).create_venue(
        tenant.id,
        CreateVenueRequest(
            name="Harbour Loft",
            address=Address(street="1 Quay Street", city="Bristol", postcode="BS1 4DJ", country="UK"),
            capacity=80,
            price_per_hour=Decimal("50.00"),
            amenities=["wifi"]
        ),
        created_by=owner.id
    )


@pytest.fixture
def slot_day():
    """Midnight UTC a week from now; slots are built as offsets from it."""
    day = datetime.now(timezone.utc) + timedelta(days=7)
    return day.replace(hour=0, minute=0, second=0, microsecond=0)


@pytest.fixture
def slot(slot_day):
    """Build a ``(start, end)`` pair from hour offsets within the slot day."""

    def build(start_hour: float, end_hour: float):
        return slot_day + timedelta(hours=start_hour), slot_day + timedelta(hours=end_hour)

    return build


def make_token(user_id, tenant_id, role="customer", secret=TEST_JWT_SECRET) -> str:
    """Sign a bearer token the way the identity provider does."""
    payload = {
        "sub": str(user_id),
        "tenant_id": str(tenant_id),
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a fixture user."""

    def build(user) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user.id, user.tenant_id, user.role)}"}

    return build


@pytest.fixture
def token_factory():
    """Sign arbitrary bearer tokens."""
    return make_token
