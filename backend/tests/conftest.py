"""Shared fixtures: in-memory SQLite store, API client and a ship factory."""
import os

# Keep the application's default engine off the filesystem during tests
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import get_db, register_sqlite_pragmas
from app.main import app
from app.models import Base
from app.models.base import ShipTypeEnum
from app.models.ship import Ship


@pytest.fixture
def engine():
    """In-memory SQLite shared across threads, with production pragmas."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    register_sqlite_pragmas(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def api_client(db):
    """TestClient with the DB dependency overridden to use the in-memory session."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def add_ship(db):
    """Insert a ship row directly, bypassing validation, for filter/sort tests."""
    def _add(**overrides) -> Ship:
        values = dict(
            name="Orion",
            planet="Earth",
            ship_type=ShipTypeEnum.TRANSPORT,
            prod_date=datetime(2900, 1, 1),
            is_used=False,
            speed=0.5,
            crew_size=100,
            rating=0.33,
        )
        values.update(overrides)
        ship = Ship(**values)
        db.add(ship)
        db.commit()
        return ship

    return _add
