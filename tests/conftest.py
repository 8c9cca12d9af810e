import json
import os
from datetime import datetime, timedelta

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["EVENTS_ENABLED"] = "true"

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from salon_scheduler.database import enable_sqlite_fk
from salon_scheduler.models import Base
from salon_scheduler.models.generated import Organizations, Services, Staff
from salon_scheduler.services.booking import OrgContext
from salon_scheduler.services.booking.commands import BookingService
from salon_scheduler.services.scheduling.tz import UTC, localize

TZ = "Pacific/Auckland"


def local(year, month, day, hour=0, minute=0, second=0):
    """UTC instant for an Auckland wall-clock time."""
    return localize(datetime(year, month, day, hour, minute, second), TZ)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now = self.now + timedelta(seconds=seconds)


class RecordingRedis:
    """Stands in for the Redis client: records pushed events."""

    def __init__(self):
        self.pushed: list[tuple[str, dict]] = []

    def rpush(self, key, value):
        self.pushed.append((key, json.loads(value)))
        return len(self.pushed)

    def ping(self):
        return True

    def types(self) -> list[str]:
        return [e["type"] for _, e in self.pushed]


class Seed:
    def __init__(self, org, other_org, s1, s2, other_staff, cut, color, other_service):
        self.org = org
        self.other_org = other_org
        self.s1 = s1
        self.s2 = s2
        self.other_staff = other_staff
        self.cut = cut
        self.color = color
        self.other_service = other_service


def make_engine(url: str = "sqlite://"):
    kwargs = {"connect_args": {"check_same_thread": False}}
    if url == "sqlite://":
        kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)
    event.listen(engine, "connect", enable_sqlite_fk)
    Base.metadata.create_all(engine)
    return engine


def seed_orgs(db) -> Seed:
    org = Organizations(name="Kelburn Hair", timezone=TZ)
    other_org = Organizations(name="Elsewhere Salon", timezone=TZ)
    db.add_all([org, other_org])
    db.flush()

    s1 = Staff(org_id=org.id, name="Anna")
    s2 = Staff(org_id=org.id, name="Ben")
    other_staff = Staff(org_id=other_org.id, name="Zoe")
    cut = Services(org_id=org.id, name="Cut", duration_min=45)
    color = Services(org_id=org.id, name="Colour", duration_min=90)
    other_service = Services(org_id=other_org.id, name="Shave", duration_min=20)
    db.add_all([s1, s2, other_staff, cut, color, other_service])
    db.commit()
    return Seed(org, other_org, s1, s2, other_staff, cut, color, other_service)


@pytest.fixture
def engine():
    engine = make_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def seed(db) -> Seed:
    return seed_orgs(db)


@pytest.fixture
def ctx(seed) -> OrgContext:
    return OrgContext(org_id=seed.org.id, timezone=TZ, actor="owner@example.com")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 0, 0, tzinfo=UTC))


@pytest.fixture
def service(db, ctx, clock) -> BookingService:
    return BookingService(db, ctx, clock=clock)


@pytest.fixture(autouse=True)
def events(monkeypatch) -> RecordingRedis:
    fake = RecordingRedis()
    monkeypatch.setattr("salon_scheduler.services.events.redis_client", fake)
    return fake
