"""Pytest configuration and fixtures."""

import os

# Must be set before the application modules read settings
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SWEEP_ENABLED", "false")

import pytest
from datetime import datetime
from typing import Dict, Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tableready.db.base import Base
from tableready.db.session import get_db
from tableready.main import app
# Import all models to ensure they're registered with Base.metadata
from tableready.models import *
from tableready.schemas.venue import WEEKDAYS

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# Tuesday, midday UTC
NOW = datetime(2026, 3, 10, 12, 0)

OPEN_EVERY_DAY = {day: {"open": "09:00", "close": "22:00"} for day in WEEKDAYS}


def add_tables(db: Session, venue: Venue, capacities: Dict[str, int]) -> None:
    """Give *venue* one table per ``{id: capacity}`` item."""
    for table_id, capacity in capacities.items():
        venue.tables.append(VenueTable(id=table_id, name=f"Table {table_id}", capacity=capacity))
    db.commit()


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def venue(db_session: Session) -> Venue:
    """A UTC venue open 09:00-22:00 every day with the default 45 minute extension cap."""
    venue = Venue(
        name="Test Bistro",
        timezone="UTC",
        settings={"business_hours": OPEN_EVERY_DAY, "max_extension_time": 45},
    )
    db_session.add(venue)
    db_session.commit()
    db_session.refresh(venue)
    return venue


@pytest.fixture
def frozen_clock(monkeypatch) -> datetime:
    """Pin the HTTP layer's clock to ``NOW``."""
    monkeypatch.setattr("tableready.api.routes.waitlist.utc_now", lambda: NOW)
    monkeypatch.setattr("tableready.api.routes.venues.utc_now", lambda: NOW)
    return NOW


@pytest.fixture(scope="function")
def client(db_session: Session, frozen_clock) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()
