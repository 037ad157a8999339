"""Shared test fixtures for the UniFi Stats tests.

Provides a test database (in-memory SQLite), test session, a fake UniFi
controller that records every call, and a FastAPI test client with the
database, registry and controller client dependencies overridden.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from unifi_stats.database import Base, get_db
from unifi_stats.exceptions import ControllerAuthError
from unifi_stats.main import app
from unifi_stats.routers.browser import get_client_factory, get_registry
from unifi_stats.schemas import ControllerProfile

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

GB = 2**30

SAMPLE_SITES = [
    {"name": "default", "desc": "Main Office"},
    {"name": "b2x9kq", "desc": "Branch"},
    {"name": "z81mfa", "desc": "Annex"},
]


def ms(moment: datetime) -> int:
    """Epoch milliseconds, as used in controller report samples."""
    return int(moment.timestamp() * 1000)


def daily_samples(now: datetime):
    """Two daily samples: today (1 GB up, 1 GB down) and five days ago (2 GB up)."""
    return [
        {"time": ms(now), "wan-tx_bytes": 1 * GB, "wan-rx_bytes": 1 * GB},
        {"time": ms(now - timedelta(days=5)), "wan-tx_bytes": 2 * GB, "wan-rx_bytes": 0},
    ]


class FakeController:
    """Stand-in for a UniFi controller; records calls made by the clients it hands out."""

    def __init__(self):
        self.calls = []
        self.sites = list(SAMPLE_SITES)
        self.sysinfo = [{"version": "7.4.162"}]
        self.data = {"stat_daily_site": daily_samples(datetime.now(timezone.utc))}
        self.login_error = None
        self.errors = {}
        self.profiles = []

    def factory(self, profile, site_id, cookie):
        self.profiles.append((profile, site_id, cookie))
        return FakeClient(self, cookie)

    def remote_calls(self):
        return [name for name in self.calls if name != "close"]


class FakeClient:
    """Controller client double handed out by FakeController."""

    def __init__(self, controller, cookie):
        self._controller = controller
        self._cookie = cookie

    def _record(self, name):
        self._controller.calls.append(name)
        if name in self._controller.errors:
            raise self._controller.errors[name]

    def login(self):
        self._record("login")
        if self._controller.login_error is not None:
            raise self._controller.login_error
        self._cookie = "cookie-abc123"

    def get_cookie(self):
        return self._cookie

    def list_sites(self):
        self._record("list_sites")
        return self._controller.sites

    def stat_sysinfo(self):
        self._record("stat_sysinfo")
        return self._controller.sysinfo

    def close(self):
        self._controller.calls.append("close")

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)

        def call(*args):
            self._record(name)
            return self._controller.data.get(name, [{"action": name, "args": list(args)}])

        return call


@pytest.fixture()
def test_engine():
    """Create a test database engine with in-memory SQLite.

    Uses StaticPool so a single connection is shared across threads,
    which is required because TestClient dispatches requests in a
    separate thread while the test runs on the main thread.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def test_session(test_engine):
    """Create a test database session."""
    TestSession = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    session = TestSession()
    yield session
    session.close()


@pytest.fixture()
def fake_controller():
    """A fresh fake controller for each test."""
    return FakeController()


@pytest.fixture()
def registry():
    """Two configured controllers."""
    return {
        "home": ControllerProfile(
            id="home", name="Home", url="https://10.0.0.2:8443", user="admin", password="secret"
        ),
        "office": ControllerProfile(
            id="office", name="Office", url="https://unifi.example.com", user="", password=""
        ),
    }


@pytest.fixture()
def single_profile():
    """The implicit single-controller profile."""
    return ControllerProfile(
        name="Controller", url="https://unifi.local:8443", user="admin", password="secret"
    )


def _make_client(test_session, fake_controller, controllers):
    def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_registry] = lambda: controllers
    app.dependency_overrides[get_client_factory] = lambda: fake_controller.factory
    return TestClient(app)


@pytest.fixture()
def client(test_session, fake_controller, monkeypatch):
    """Test client in single-controller mode with complete credentials."""
    from unifi_stats.config import settings

    monkeypatch.setattr(settings, "CONTROLLER_URL", "https://unifi.local:8443")
    monkeypatch.setattr(settings, "CONTROLLER_USER", "admin")
    monkeypatch.setattr(settings, "CONTROLLER_PASSWORD", "secret")
    with _make_client(test_session, fake_controller, None) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def multi_client(test_session, fake_controller, registry):
    """Test client with a registry of two controllers."""
    with _make_client(test_session, fake_controller, registry) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def anonymous_client(test_session, fake_controller, monkeypatch):
    """Test client in single-controller mode without configured credentials."""
    from unifi_stats.config import settings

    monkeypatch.setattr(settings, "CONTROLLER_URL", "")
    monkeypatch.setattr(settings, "CONTROLLER_USER", "")
    monkeypatch.setattr(settings, "CONTROLLER_PASSWORD", "")
    with _make_client(test_session, fake_controller, None) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_error():
    return ControllerAuthError("HTTP response status: 400.")
