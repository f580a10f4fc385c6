"""
Pytest fixtures for the UID ops backend tests.

Provides an in-memory app per test, a pinned business clock, and a recording
listener on the completion bus.
"""

from datetime import datetime, timedelta

import pytest

from uidops import create_app
from uidops.extensions import db
from uidops.services.event_bus import CompletionEventBus
from uidops.time_utils import BusinessClock


# Wednesday 2025-06-04 10:30 in America/Chicago
FIXED_NOW = datetime(2025, 6, 4, 15, 30, 0)
WEEK_START = "2025-06-02"


class FakeNow:
    def __init__(self, value: datetime):
        self.value = value

    def __call__(self) -> datetime:
        return self.value

    def advance(self, **kwargs) -> None:
        self.value += timedelta(**kwargs)


class RecordingListener:
    def __init__(self):
        self.events = []

    def notify(self, timestamp):
        self.events.append(timestamp)




@pytest.fixture
def fake_now():
    return FakeNow(FIXED_NOW)


@pytest.fixture
def clock(fake_now):
    return BusinessClock("America/Chicago", now=fake_now)


@pytest.fixture
def bus():
    return CompletionEventBus()


@pytest.fixture
def listener(bus):
    return bus.subscribe(RecordingListener())


@pytest.fixture
def app(clock, bus):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BUSINESS_CLOCK': clock,
        'COMPLETION_BUS': bus,
        'ALLOWED_ORIGIN': '*',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def db_session(app):
    return db.session
