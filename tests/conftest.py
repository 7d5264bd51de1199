"""
Shared fixtures: a SQLite-backed ledger per test, seeded profiles, a
controllable clock, a recording push transport and a TestClient over the
FastAPI app.
"""
from datetime import datetime, timedelta

import pytest
import redis
from fastapi.testclient import TestClient
from sqlalchemy import select

from freight_auction.core import dependencies
from freight_auction.core.retry import RetryConfig
from freight_auction.infrastructure.database import create_db_engine, create_session_factory, init_db
from freight_auction.infrastructure.ledger import LedgerStore
from freight_auction.main import app
from freight_auction.models import Notification, NotificationType, Profile, Role, VehicleType
from freight_auction.services import (
    AuctionService,
    BidService,
    ExpirationScheduler,
    NotificationDispatcher,
    ProfileDirectory,
)

CONSIGNER = "consigner-1"
OTHER_CONSIGNER = "consigner-2"
DRIVER_X = "driver-x"
DRIVER_Y = "driver-y"
DRIVER_Z = "driver-z"
DRIVER_LARGE = "driver-large"
DRIVER_ANY = "driver-any"

PROFILES = [
    (CONSIGNER, Role.CONSIGNER, None, "ExponentPushToken[consigner-1]"),
    (OTHER_CONSIGNER, Role.CONSIGNER, None, None),
    (DRIVER_X, Role.DRIVER, VehicleType.MINI_TRUCK, "ExponentPushToken[driver-x]"),
    (DRIVER_Y, Role.DRIVER, VehicleType.MINI_TRUCK, "ExponentPushToken[driver-y]"),
    (DRIVER_Z, Role.DRIVER, VehicleType.MINI_TRUCK, None),
    (DRIVER_LARGE, Role.DRIVER, VehicleType.LARGE_TRUCK, None),
    (DRIVER_ANY, Role.DRIVER, None, None),
]


class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class RecordingTransport:
    """Push transport double that remembers every message"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []
        self.closed = False

    def send(self, token, title, body, data):
        if self.fail:
            raise RuntimeError("push service down")
        self.sent.append({"token": token, "title": title, "body": body, "data": data})

    def close(self):
        self.closed = True


class InMemoryRedis:
    """Dict-backed stand-in for the few Redis commands the cache uses"""

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.broken = False

    def _check(self):
        if self.broken:
            raise redis.ConnectionError("redis down")

    def ping(self):
        self._check()
        return True

    def get(self, key):
        self._check()
        return self.data.get(key)

    def mget(self, *keys):
        self._check()
        return [self.data.get(key) for key in keys]

    def setex(self, key, ttl, value):
        self._check()
        self.data[key] = value
        self.ttls[key] = ttl

    def incr(self, key):
        self._check()
        value = int(self.data.get(key, 0)) + 1
        self.data[key] = str(value)
        return value

    def expire(self, key, ttl):
        self._check()
        self.ttls[key] = ttl

    def delete(self, *keys):
        self._check()
        return sum(1 for key in keys if self.data.pop(key, None) is not None)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 5, 10, 0, 0))


@pytest.fixture
def engine(tmp_path):
    # File-backed so threads get separate connections to the same database
    engine = create_db_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def ledger(engine):
    retry_config = RetryConfig(max_retries=30, initial_delay=0.001, max_delay=0.02)
    store = LedgerStore(create_session_factory(engine), retry_config=retry_config)

    def seed(db):
        for user_id, role, vehicle_type, token in PROFILES:
            db.add(Profile(id=user_id, username=user_id, role=role, vehicle_type=vehicle_type, push_token=token))

    store.transaction(seed, operation="seed_profiles")
    return store


@pytest.fixture
def profiles(ledger):
    return ProfileDirectory(ledger)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def dispatcher(ledger, transport, clock):
    return NotificationDispatcher(ledger, transport=transport, clock=clock)


@pytest.fixture
def auction_service(ledger, profiles, dispatcher, clock):
    return AuctionService(ledger, profiles, dispatcher=dispatcher, clock=clock)


@pytest.fixture
def bid_service(ledger, profiles, dispatcher, clock):
    return BidService(ledger, profiles, dispatcher=dispatcher, clock=clock)


@pytest.fixture
def scheduler(ledger, auction_service, dispatcher, clock):
    return ExpirationScheduler(
        ledger,
        auction_service,
        dispatcher=dispatcher,
        interval_seconds=0.01,
        retention_days=30,
        clock=clock,
    )


@pytest.fixture
def make_auction(auction_service, clock):
    """Factory creating an active mini-truck auction starting now"""

    def _make(minutes: int = 60, created_by: str = CONSIGNER, title: str = "Deliver 40 boxes to Pune"):
        return auction_service.create_auction(
            title=title,
            description="Fragile electronics, two-person loading",
            vehicle_type=VehicleType.MINI_TRUCK,
            start_time=clock.now,
            end_time=clock.now + timedelta(minutes=minutes),
            consignment_date=clock.now + timedelta(days=2),
            created_by=created_by,
        )

    return _make


@pytest.fixture
def notifications(ledger):
    """Reader for stored notifications, optionally filtered by user and type"""

    def _read(user_id=None, type: NotificationType = None, auction_id=None):
        query = select(Notification).order_by(Notification.created_at, Notification.id)
        if user_id is not None:
            query = query.where(Notification.user_id == user_id)
        if type is not None:
            query = query.where(Notification.type == type)
        if auction_id is not None:
            query = query.where(Notification.auction_id == auction_id)
        with ledger.session() as db:
            return list(db.execute(query).scalars().all())

    return _read


@pytest.fixture
def client(ledger, profiles, dispatcher, auction_service, bid_service, scheduler):
    """TestClient wired to the fixtures above; the app lifespan is not run"""
    app.dependency_overrides = {
        dependencies.get_ledger: lambda: ledger,
        dependencies.get_cache: lambda: None,
        dependencies.get_profiles: lambda: profiles,
        dependencies.get_dispatcher: lambda: dispatcher,
        dependencies.get_auction_service: lambda: auction_service,
        dependencies.get_bid_service: lambda: bid_service,
        dependencies.get_scheduler: lambda: scheduler,
    }
    yield TestClient(app)
    app.dependency_overrides = {}
