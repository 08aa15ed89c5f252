"""
Pytest configuration file for backend testing.
"""
import os
import sys
from pathlib import Path

# Tests run against a private in-memory database
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("WORKFLOW_CONFLICT_RETRIES", "1")

# Add the backend directory to Python path so imports work correctly
backend_dir = Path(__file__).parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import pytest
from fastapi.testclient import TestClient

from core.auth import Actor, ActorRole
from core.database import Base, SessionLocal, engine, get_db, init_db
from core.deps import get_kot_dispatcher, get_notification_adapter
from core.notification_adapter import NotificationAdapter
from modules.orders.services.kot_dispatch import KotDispatcher
from modules.orders.tests import factories


class RecordingNotifier(NotificationAdapter):
    """Notification adapter that keeps every message it is given"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    def send_to_channel(self, channel, message):
        if self.fail:
            raise ConnectionError("notification service unreachable")
        self.sent.append((channel, message))
        return True

    def subjects(self):
        return [message.subject for _, message in self.sent]


class RecordingKotDispatcher(KotDispatcher):
    def __init__(self):
        self.dispatched = []

    def dispatch(self, order_id: int, delay_seconds: int = 0) -> None:
        self.dispatched.append((order_id, delay_seconds))


WAITER = Actor(id=7, display_name="Asha", role=ActorRole.WAITER)
CASHIER = Actor(id=8, display_name="Ravi", role=ActorRole.CASHIER)
ADMIN = Actor(id=1, display_name="Manager", role=ActorRole.ADMIN)


def actor_headers(actor: Actor):
    return {
        "X-Actor-Id": str(actor.id),
        "X-Actor-Name": actor.display_name,
        "X-Actor-Role": actor.role.value,
    }


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    init_db()
    db = SessionLocal()
    factories.bind_session(db)
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def kot_dispatcher():
    return RecordingKotDispatcher()


@pytest.fixture(scope="function")
def client(db_session, notifier, kot_dispatcher):
    """Create a test client with database and collaborator overrides."""
    from app.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_adapter] = lambda: notifier
    app.dependency_overrides[get_kot_dispatcher] = lambda: kot_dispatcher
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def waiter_headers():
    return actor_headers(WAITER)


@pytest.fixture
def cashier_headers():
    return actor_headers(CASHIER)


@pytest.fixture
def admin_headers():
    return actor_headers(ADMIN)
