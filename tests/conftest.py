from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.api.deps import SESSION_COOKIE
from app.core.auth import create_session
from app.core.clock import Clock
from app.core.config import Settings
from app.core.container import build_container
from app.core.db import Base
from app.main import create_app

START = datetime(2024, 3, 10, 12, 0, 0)


class FakeClock(Clock):
    """Clock pinned to a settable naive-UTC instant."""

    def __init__(self, current: datetime = START):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


class RecordingSms:
    """Stands in for SmsClient; remembers every message and can be told to fail."""

    configured = True

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    def send(self, to: str, body: str) -> bool:
        if self.fail:
            return False
        self.sent.append((to, body))
        return True

    def validate_signature(self, url, params, signature) -> bool:
        return signature == "valid"


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite://",
        DEFAULT_TIMEZONE="UTC",
        DEFAULT_DISPLAY_UNIT="lbs",
        PENDING_TIMEOUT_SECONDS=300,
        CHECK_INTERVAL_SECONDS=60,
        SCHEDULER_ENABLED=False,
        BYPASS_CODE=None,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sms():
    return RecordingSms()


@pytest.fixture
def container(settings, engine, clock, sms):
    return build_container(settings=settings, engine=engine, clock=clock, sms=sms)


@pytest.fixture
def db(container):
    session = container.session_factory()
    yield session
    session.close()


@pytest.fixture
def client(container):
    with TestClient(create_app(container)) as c:
        yield c


@pytest.fixture
def authed_client(client, container):
    session_db = container.session_factory()
    try:
        session = create_session(session_db, container.clock.now())
        session_db.commit()
        client.cookies.set(SESSION_COOKIE, session.id)
    finally:
        session_db.close()
    return client
