import os

# Settings are read at import time
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("SQLALCHEMY_DATABASE_URI", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("PAYMENT_SIMULATION_DELAY_SECONDS", "0")

import itertools
from datetime import timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.database import Base
from app.repositories.user import UserRepository
from app.schemas.listing import Address, Coordinates, ListingCreate
from app.schemas.user import UserCreate, UserRole
from app.schemas.friendship import ResponseDecision
from app.services.friendship import FriendshipService
from app.services.listing import ListingService
from app.utils.pricing import utcnow


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    async def _make(name: str, role: UserRole = UserRole.RENTER):
        n = next(counter)
        return await UserRepository(db).create(
            UserCreate(email=f"{name.lower()}{n}@example.com", full_name=name, role=role),
            auth_subject=f"{name.lower()}-{n}",
        )

    return _make


@pytest.fixture
def make_listing(db):
    async def _make(owner, price_per_hour="10.00", city="Springfield", latitude=40.0, longitude=-75.0,
                    is_available=True):
        data = ListingCreate(
            address=Address(
                street="1 Main St",
                city=city,
                state="IL",
                zip_code="62701",
                coordinates=Coordinates(latitude=latitude, longitude=longitude),
            ),
            instructions="Use the side gate",
            price_per_hour=Decimal(price_per_hour),
            is_available=is_available,
        )
        return await ListingService(db).create_listing(owner.id, data)

    return _make


@pytest.fixture
def befriend(db):
    async def _befriend(a, b):
        service = FriendshipService(db)
        edge = await service.propose_friendship(a.id, b.id)
        return await service.respond_friendship(edge.id, b.id, ResponseDecision.ACCEPT)

    return _befriend


@pytest.fixture
def tomorrow():
    return (utcnow() + timedelta(days=1)).replace(minute=0, second=0, microsecond=0)
