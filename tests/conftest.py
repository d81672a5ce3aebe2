"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from accuscene.config import Settings
from accuscene.database import DatabaseClient, SQLAlchemyStorage, create_engine_from_settings, create_session_maker
from accuscene.services import InvestigationService
from accuscene.storage import InMemoryStorage

FIXED_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable time source for services under test."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def now() -> datetime:
    """Fixed reference time.

    Returns:
        datetime: 2026-03-15 12:00 UTC
    """
    return FIXED_NOW


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the environment, without retry delays.

    Returns:
        Settings: Test settings
    """
    return Settings(
        _env_file=None,
        mutation_retry_delay=0.0,
        max_login_attempts=3,
        lockout_minutes=15,
    )


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
async def sql_storage():
    """SQLAlchemy storage over a fresh in-memory SQLite database."""
    engine = create_engine_from_settings("sqlite+aiosqlite:///:memory:", echo=False)
    client = DatabaseClient(engine)
    await client.create_tables()
    yield SQLAlchemyStorage(create_session_maker(engine))
    await client.disconnect()


@pytest.fixture
def service(storage, test_settings, clock) -> InvestigationService:
    """Investigation service over in-memory storage with a fixed clock."""
    return InvestigationService(storage, settings=test_settings, clock=clock)


@pytest.fixture
async def user(service):
    return await service.create("user", {
        "email": "Dana.Investigator@Example.com",
        "password_hash": "$2b$12$hash",
        "first_name": "Dana",
        "last_name": "Reyes",
        "role": "investigator",
    })


@pytest.fixture
async def case(service, user):
    return await service.create("case", {
        "title": "Rear-end collision on Route 9",
        "user_id": user.id,
        "priority": "high",
    })


@pytest.fixture
async def accident(service, case, now):
    return await service.create("accident", {
        "case_id": case.id,
        "date_time": now - timedelta(days=2),
        "location": "Route 9 and Elm St",
        "latitude": 40.0,
        "longitude": -75.0,
        "weather": "rain",
        "road_conditions": "wet",
        "injuries": 1,
        "estimated_damage": Decimal("12500.00"),
    })


@pytest.fixture
async def evidence(service, accident):
    return await service.create("evidence", {
        "accident_id": accident.id,
        "type": "photo",
        "description": "Skid marks north of the intersection",
        "collected_by": "Officer Lee",
    })


@pytest.fixture
async def claim(service, case):
    return await service.create("insurance_claim", {
        "case_id": case.id,
        "claim_number": "CLM-1001",
        "type": "collision",
        "insurer": "Acme Mutual",
        "amount": Decimal("5000.00"),
        "approved_amount": Decimal("1000.00"),
    })
