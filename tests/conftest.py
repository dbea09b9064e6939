"""Shared fixtures for the device booking service tests."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from device_service.DB.session import DeviceDatabase
from device_service.Services.device_registry import DeviceRegistry

RESOURCES = Path(__file__).parent / "resources"

DUBAI_OFFSET = timezone(timedelta(hours=4))


class FrozenClock:
    """Booking clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def sample_csv() -> Path:
    return RESOURCES / "gsmarena_sample.csv"


@pytest.fixture
def test_conf_path() -> Path:
    return RESOURCES / "test_conf.yml"


@pytest.fixture
def database_url(tmp_path) -> str:
    # File database: in-memory SQLite is private to each connection
    return f"sqlite:///{tmp_path / 'db' / 'database.db'}"


@pytest.fixture
def database(database_url):
    db = DeviceDatabase(database_url)
    yield db
    db.close()


@pytest.fixture
def frozen_clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 3, 1, 10, 15, 30, 123456, tzinfo=DUBAI_OFFSET))


@pytest.fixture
def registry(database, frozen_clock) -> DeviceRegistry:
    reg = DeviceRegistry(database, booking_timezone=DUBAI_OFFSET, clock=frozen_clock)
    reg.initialize([])
    return reg
