"""Pytest fixtures for testing"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from datetime import date, datetime, timedelta, timezone
from typing import Generator
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from lodger_ledger.api.dependencies import get_dispatcher, get_tenancy_service
from lodger_ledger.api.main import create_app
from lodger_ledger.domain.lifecycle import TenancyLifecycle
from lodger_ledger.domain.models import PaymentType, PropertyAddress, Signature
from lodger_ledger.domain.money import Money
from lodger_ledger.infrastructure.database.models import Base
from lodger_ledger.infrastructure.locking import KeyedLock
from lodger_ledger.services.tenancy_service import TenancyService


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False, "timeout": 30})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ADDRESS = PropertyAddress(
    house_number="12",
    street="Mill Lane",
    city="Bristol",
    county="Avon",
    postcode="BS1 4DJ",
)


class FixedClock:
    """Controllable 'now' for the service; starts at noon UTC on the given day"""

    def __init__(self, day: date):
        self.current = datetime(day.year, day.month, day.day, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def set(self, day: date) -> None:
        self.current = datetime(day.year, day.month, day.day, 12, 0, tzinfo=timezone.utc)

    def advance(self, days: int) -> None:
        self.current += timedelta(days=days)


def tenancy_fields(**overrides) -> dict:
    """Default 4-weekly £800 tenancy starting 2024-01-01"""
    fields = dict(
        landlord_id="landlord_1",
        lodger_id="lodger_1",
        property_address=ADDRESS,
        room_description="Double room, first floor",
        start_date=date(2024, 1, 1),
        initial_term_months=6,
        monthly_rent=Money.of("800.00"),
        deposit_amount=Money.of("800.00"),
        deposit_applicable=True,
        payment_type=PaymentType.CYCLE,
        payment_frequency="4-weekly",
        payment_day_of_month=None,
        shared_areas=("kitchen", "bathroom"),
    )
    fields.update(overrides)
    return fields


def signed_lifecycle(now: datetime | None = None, **overrides) -> TenancyLifecycle:
    """Pure in-memory ACTIVE tenancy"""
    now = now or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    lifecycle, _ = TenancyLifecycle.create(open_tenancies=0, now=now, **tenancy_fields(**overrides))
    lifecycle.sign(Signature(signature_text="Jane Lodger", signed_at=now), now)
    return lifecycle


@pytest.fixture
def database() -> Generator[None, None, None]:
    """Create test tables, drop them afterwards"""
    Base.metadata.create_all(bind=engine)
    try:
        yield
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(date(2024, 1, 1))


@pytest.fixture
def service(database, clock: FixedClock) -> TenancyService:
    """Command service bound to the test database and a fixed clock"""
    return TenancyService(session_factory=TestingSessionLocal, locks=KeyedLock(), clock=clock)


@pytest.fixture
def dispatcher() -> MagicMock:
    """Intent dispatcher stand-in; records what would have been sent"""
    mock = MagicMock()
    mock.dispatch = AsyncMock(return_value=0)
    return mock


@pytest.fixture
def client(service: TenancyService, dispatcher: MagicMock) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()
    app.dependency_overrides[get_tenancy_service] = lambda: service
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    return TestClient(app)


@pytest.fixture
def active_tenancy_id(service: TenancyService) -> str:
    """Signed 4-weekly £800 tenancy with an £800 deposit, persisted"""
    result = service.create_tenancy(**tenancy_fields())
    tenancy_id = result.subject.id
    service.sign(tenancy_id, "Jane Lodger")
    return tenancy_id


@pytest.fixture
def make_fields():
    return tenancy_fields


@pytest.fixture
def make_signed():
    return signed_lifecycle
