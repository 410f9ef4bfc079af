"""
Shared fixtures for the scheduler test-suite.

Every test gets its own in-memory SQLite database built from the models, a
frozen clock and a mocked notification sender, so no test talks to Twilio,
Resend or a real Postgres.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("PROMETHEUS_ENABLED", "false")

from unittest.mock import MagicMock

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session, sessionmaker

from app.core.clock import FixedClock
from app.core.config import Settings
from app.database import Base, build_engine

# Import models so Base.metadata is populated for create_all.
import app.models  # noqa: F401
from tests._utils.scheduling import DEFAULT_NOW, SchedulingWorld, make_sender, seed_world


@pytest.fixture
def db_engine():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(db_engine) -> Session:
    SessionLocal = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(DEFAULT_NOW)


@pytest.fixture
def world(db: Session) -> SchedulingWorld:
    return seed_world(db)


@pytest.fixture
def sender() -> MagicMock:
    return make_sender()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        booking_cron_secret="cron-secret",
        service_role_key="service-key",
        prometheus_enabled=False,
    )


@pytest.fixture
def client(db: Session, clock: FixedClock, sender: MagicMock, test_settings: Settings):
    from app.api.dependencies import get_app_settings, get_clock, get_db, get_notification_sender
    from app.main import app

    def _override_db():
        yield db

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_notification_sender] = lambda: sender
    app.dependency_overrides[get_app_settings] = lambda: test_settings
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
