from __future__ import annotations

import datetime as dt
import tempfile
from pathlib import Path
from typing import Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from worktime import models
from worktime.config import settings
from worktime.database import get_db
from worktime.main import app
from worktime.online_minutes import InMemoryTTLCache, OnlineMinutesProvider
from worktime.state import RuntimeState


class FakeMinutesSource:
    """Stands in for the ScreenshotMonitor client."""

    def __init__(self, minutes: int = 0, error: Optional[Exception] = None) -> None:
        self.minutes = minutes
        self.error = error
        self.calls: list[tuple[str, dt.date, dt.date]] = []

    def fetch_worked_minutes(self, token: str, start: dt.date, end: dt.date) -> int:
        self.calls.append((token, start, end))
        if self.error is not None:
            raise self.error
        return self.minutes


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture(scope="session")
def temp_db_path() -> Generator[Path, None, None]:
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "test.db"
        yield path


@pytest.fixture(scope="session")
def engine(temp_db_path: Path):
    url = f"sqlite:///{temp_db_path}"
    engine = create_engine(url, connect_args={"check_same_thread": False}, future=True)
    models.Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture(scope="function")
def session(engine) -> Generator[Session, None, None]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionTesting = sessionmaker(bind=connection, autoflush=False, autocommit=False, future=True)
    session = SessionTesting()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def fake_source() -> FakeMinutesSource:
    return FakeMinutesSource()


@pytest.fixture()
def provider(fake_source: FakeMinutesSource) -> OnlineMinutesProvider:
    return OnlineMinutesProvider(fake_source, InMemoryTTLCache(), ttl_seconds=1800)


@pytest.fixture()
def runtime_state() -> RuntimeState:
    return RuntimeState(settings)


@pytest.fixture(scope="function")
def client(
    session: Session,
    provider: OnlineMinutesProvider,
    runtime_state: RuntimeState,
) -> Generator[TestClient, None, None]:
    def override_get_db():
        try:
            yield session
        finally:
            session.close()

    original_provider = app.state.online_minutes_provider
    original_state = app.state.runtime_state
    app.dependency_overrides[get_db] = override_get_db
    app.state.online_minutes_provider = provider
    app.state.runtime_state = runtime_state
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    app.state.online_minutes_provider = original_provider
    app.state.runtime_state = original_state


@pytest.fixture()
def fixed_now() -> dt.datetime:
    # Tuesday; February 2026 has 28 days and four Fridays.
    return dt.datetime(2026, 2, 3, 10, 30)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()
