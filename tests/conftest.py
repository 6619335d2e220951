"""
Test configuration and fixtures for the short link service.
This centralizes all test setup, making individual tests clean.
"""

import os

# Must be set before the application settings are imported
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("QUEUE_BACKEND", "memory")
os.environ.setdefault("SWEEP_ENABLED", "false")
os.environ.setdefault("MAIL_WORKER_EMBEDDED", "false")

import asyncio
import uuid
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from main import app
from shortlink_app.clock import Clock
from shortlink_app.database.connection import Base, get_db
from shortlink_app.dependencies import get_clock, get_notifier
from shortlink_app.models import Link, User
from shortlink_app.notifications.notifier import Notifier
from shortlink_app.queue.strategies import InMemoryQueue
from shortlink_app.services.link_service import LinkService
from shortlink_app.storage.strategies import InMemoryLinkStore, SQLAlchemyLinkStore

# Test database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

NOTIFICATION_QUEUE = "test_notifications"
DEFAULT_CLICK_LIMIT = 10
DEFAULT_TTL_SECONDS = 86400


class FakeClock(Clock):
    """Clock that only moves when told to"""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, 0)):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


def drain(queue: InMemoryQueue):
    """Pop every pending notification event"""
    return asyncio.run(queue.consume(NOTIFICATION_QUEUE, batch_size=1000))


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    This ensures tests are isolated and don't affect each other.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notification_queue():
    return InMemoryQueue()


@pytest.fixture
def notifier(notification_queue):
    return Notifier(notification_queue, NOTIFICATION_QUEUE, timeout=1.0)


@pytest.fixture
def link_store(db_session):
    return SQLAlchemyLinkStore(db_session)


@pytest.fixture
def link_service(link_store, notifier, clock):
    """LinkService on the SQL test database"""
    return LinkService(
        store=link_store,
        notifier=notifier,
        default_click_limit=DEFAULT_CLICK_LIMIT,
        default_ttl_seconds=DEFAULT_TTL_SECONDS,
        clock=clock,
    )


@pytest.fixture
def memory_service(notifier, clock):
    """LinkService on a fresh in-memory store"""
    return LinkService(
        store=InMemoryLinkStore(),
        notifier=notifier,
        default_click_limit=DEFAULT_CLICK_LIMIT,
        default_ttl_seconds=DEFAULT_TTL_SECONDS,
        clock=clock,
    )


@pytest.fixture
def link_factory(clock):
    """
    Insert links with arbitrary state, bypassing creation-time negotiation.

    Usage: link_factory(store, code="aaaa0001", click_limit=2, email="a@b.c")
    """
    def make(
        store,
        code: str,
        original_url: str = "https://example.com/page",
        click_limit: int = 10,
        current_clicks: int = 0,
        expires_in: timedelta = timedelta(days=1),
        active: bool = True,
        email: str = None,
        owner_handle: uuid.UUID = None,
    ) -> Link:
        handle = owner_handle or uuid.uuid4()
        owner = store.get_user(handle) or store.add_user(User(handle=handle, email=email))
        now = clock.now()
        link = Link(
            original_url=original_url,
            code=code,
            created_at=now,
            expires_at=now + expires_in,
            current_clicks=current_clicks,
            click_limit=click_limit,
            active=active,
            owner=owner,
            owner_handle=owner.handle,
        )
        return store.add_link(link)

    return make


@pytest.fixture(scope="function")
def client(db_session, notifier, clock):
    """
    Create a test client with database, notifier and clock overridden.
    This is the main fixture that tests will use.
    """
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
