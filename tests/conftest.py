"""
Shared pytest fixtures for Giveroom tests.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# Configure settings before any giveroom module builds its globals
_TMP_DIR = tempfile.mkdtemp(prefix="giveroom-tests-")
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'global.db')}"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-long-enough-1234"
os.environ["BCRYPT_ROUNDS"] = "10"
os.environ["IDENTITY_STRATEGY"] = "session"
os.environ["STORAGE_RETRY_WAIT_SECONDS"] = "0.01"

from fastapi.testclient import TestClient  # noqa: E402

from giveroom.api.main import create_app  # noqa: E402
from giveroom.auth.identity import build_identity_strategy  # noqa: E402
from giveroom.auth.passwords import PasswordHasher  # noqa: E402
from giveroom.auth.service import AuthService  # noqa: E402
from giveroom.giveaways.service import GiveawayService  # noqa: E402
from giveroom.storage.db import Database  # noqa: E402

STRATEGIES = ["session", "session_record", "token"]


class FakeClock:
    """Settable clock returning aware UTC datetimes."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def database(tmp_path):
    """Fresh file-backed SQLite database per test."""
    database = Database(f"sqlite:///{tmp_path / 'giveroom.db'}")
    database.create_tables()
    yield database
    database.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(scope="session")
def hasher():
    return PasswordHasher(rounds=10)


@pytest.fixture(params=STRATEGIES)
def strategy_name(request):
    """Run the test once per identity strategy."""
    return request.param


@pytest.fixture
def strategy(strategy_name, database, clock):
    return build_identity_strategy(strategy_name, database=database, clock=clock)


@pytest.fixture
def auth_service(database, hasher, strategy):
    return AuthService(database=database, strategy=strategy, hasher=hasher)


@pytest.fixture
def session_auth_service(database, hasher, clock):
    """Auth service pinned to the session strategy."""
    strategy = build_identity_strategy("session", database=database, clock=clock)
    return AuthService(database=database, strategy=strategy, hasher=hasher)


@pytest.fixture
def giveaway_service(database):
    return GiveawayService(database=database)


@pytest.fixture
def alice(session_auth_service):
    """Signed-up user 'alice' and the resolved identity."""
    session_auth_service.signup("alice", "pw1")
    return session_auth_service.login("alice", "pw1").identity


@pytest.fixture
def bob(session_auth_service):
    """Signed-up user 'bob' and the resolved identity."""
    session_auth_service.signup("bob", "pw2")
    return session_auth_service.login("bob", "pw2").identity


@pytest.fixture
def app(database, strategy):
    return create_app(database=database, strategy=strategy)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def make_client(app):
    """Factory for extra clients with their own cookie jars."""
    clients = []

    def _make() -> TestClient:
        c = TestClient(app)
        clients.append(c)
        return c

    yield _make

    for c in clients:
        c.close()
