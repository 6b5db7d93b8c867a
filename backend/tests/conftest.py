import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import reportgate.main as main_module
import reportgate.models.challenge  # noqa: F401
import reportgate.models.report  # noqa: F401
from reportgate.clock import FixedClock
from reportgate.config import settings
from reportgate.context import RequestContext, get_clock, get_store
from reportgate.database import Base, build_engine
from reportgate.main import app
from reportgate.middleware.rate_limit import limiter
from reportgate.services.store import Store
from tests.test_utils import utcnow

TEST_WORK_FACTOR = 8


@pytest.fixture(autouse=True)
def low_work_factor(monkeypatch):
    """Keep brute-forcing cheap in tests."""
    monkeypatch.setattr(settings, "pow_work_factor", TEST_WORK_FACTOR)
    monkeypatch.setattr(settings, "pow_difficulty_policy", "fixed")
    monkeypatch.setattr(settings, "discord_alerts_webhook_url", None)


@pytest.fixture
def engine():
    """Create a fresh in-memory database for each test."""
    engine = build_engine("sqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def store(session_factory):
    return Store(session_factory, max_attempts=3, backoff_seconds=0)


@pytest.fixture
def clock():
    return FixedClock(utcnow())


@pytest.fixture
def ctx(store, clock):
    return RequestContext(store=store, clock=clock)


@pytest.fixture
def client(engine, store, clock):
    """Create a test client over HTTPS with the test database and disabled rate limiting."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_clock] = lambda: clock

    # Disable rate limiting for tests
    limiter.enabled = False

    # Point the startup schema check at the test database
    original_engine = main_module.engine
    main_module.engine = engine

    with TestClient(app, headers={"X-Forwarded-Proto": "https"}) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    limiter.enabled = True
    main_module.engine = original_engine
