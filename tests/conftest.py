import os

os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("MQTT_ENABLED", "false")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from core.database import InMemoryStore
from core.ingestion import ReadingService, get_reading_service
from core.reliability import ReliabilityTracker


class FakeClock:
    def __init__(self, start: datetime = datetime(2025, 4, 17, 8, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryStore:
    return InMemoryStore(clock=clock)


@pytest.fixture
def tracker() -> ReliabilityTracker:
    return ReliabilityTracker()


@pytest.fixture
def service(store: InMemoryStore, tracker: ReliabilityTracker, clock: FakeClock) -> ReadingService:
    return ReadingService(store, tracker=tracker, clock=clock)


@pytest.fixture
def client(service: ReadingService):
    from main import app

    app.dependency_overrides[get_reading_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()
