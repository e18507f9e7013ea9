
import os
from datetime import datetime
from typing import AsyncGenerator

import httpx
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

import routeoptima.models  # noqa: F401
from routeoptima.database import Base, get_db
from routeoptima.main import app
from routeoptima.services.dispatch_engine import DispatchEngine, get_dispatch_engine
from routeoptima.services.driver_registry import DriverRegistry
from routeoptima.services.geocoding import GeocodingClient, get_geocoder
from routeoptima.services.order_store import OrderStore
from tests.fixtures.test_data import (
    DEPOT,
    GEOCODED_DROP,
    OTHER_OWNER_ID,
    OWNER_ID,
    generate_drivers,
    point_north_of,
)

# Use in-memory SQLite for tests by default, unless TEST_DATABASE_URL is set
TEST_DB_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest.fixture
async def test_engine():
    """Fresh test database engine per test."""
    engine = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False} if "sqlite" in TEST_DB_URL else {},
        poolclass=StaticPool if "sqlite" in TEST_DB_URL else None,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Function-scoped DB session."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def dispatch_engine() -> DispatchEngine:
    return DispatchEngine()


def nominatim_handler(request: httpx.Request) -> httpx.Response:
    """Stand-in for the Nominatim search endpoint."""
    query = request.url.params.get("q", "")
    if "Nowhere" in query:
        return httpx.Response(200, json=[])
    if "Outage" in query:
        return httpx.Response(503, text="Service Unavailable")
    return httpx.Response(
        200,
        json=[{"lat": str(GEOCODED_DROP.latitude), "lon": str(GEOCODED_DROP.longitude)}],
    )


@pytest.fixture
def geocoder() -> GeocodingClient:
    return GeocodingClient(
        base_url="https://geocoder.test/search",
        country_suffix=", India",
        transport=httpx.MockTransport(nominatim_handler),
    )


@pytest.fixture
async def client(session_maker, dispatch_engine, geocoder) -> AsyncGenerator[AsyncClient, None]:
    """Test client with overrides for the database, engine and geocoder."""
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatch_engine] = lambda: dispatch_engine
    app.dependency_overrides[get_geocoder] = lambda: geocoder

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def sample_fleet(db_session) -> dict:
    """
    Three on-duty drivers for OWNER_ID and one for OTHER_OWNER_ID.

    near: 2.0 km north of the depot, far: 5.5 km north, unlocated: never reported.
    Returns driver ids keyed by role.
    """
    registry = DriverRegistry(db_session)
    payloads = generate_drivers(count=3, owner_id=OWNER_ID)

    near = await registry.register(**payloads[0])
    far = await registry.register(**payloads[1])
    unlocated = await registry.register(**payloads[2])
    outsider = await registry.register(**generate_drivers(count=1, owner_id=OTHER_OWNER_ID)[0])

    now = datetime.utcnow()
    await registry.update_location(near.id, point_north_of(DEPOT, 2.0), reported_at=now)
    await registry.update_location(far.id, point_north_of(DEPOT, 5.5), reported_at=now)
    await registry.update_location(outsider.id, point_north_of(DEPOT, 0.5), reported_at=now)

    ids = {
        "near": near.id,
        "far": far.id,
        "unlocated": unlocated.id,
        "outsider": outsider.id,
    }
    await db_session.commit()
    return ids


@pytest.fixture
async def pending_order_id(db_session) -> int:
    """A PENDING order for OWNER_ID with no resolved drop location."""
    order = await OrderStore(db_session).create(
        owner_id=OWNER_ID,
        customer_name="Asha Patil",
        customer_phone="9876543210",
        address="Borivali West, Mumbai",
        pickup=DEPOT,
    )
    order_id = order.id
    await db_session.commit()
    return order_id
