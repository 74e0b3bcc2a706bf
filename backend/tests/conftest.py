"""Pytest configuration and fixtures."""

import os

# Keep the app's own engine off the filesystem during tests.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from decimal import Decimal
from typing import Generator, List

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from quartermaster.core.rbac import UserRole
from quartermaster.core.security import create_access_token
from quartermaster.db.base import Base
from quartermaster.db.session import build_engine, get_db
from quartermaster.main import app
# Import all models to ensure they're registered with Base.metadata
from quartermaster.models import *  # noqa: F401,F403
from quartermaster.models.item import LttpItem
from quartermaster.models.unit import Unit

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)
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


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Disable rate limiter during tests to avoid flaky failures
    from quartermaster.core.rate_limit import limiter
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()


def _headers(**claims) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data=claims)}"}


@pytest.fixture
def auth_headers() -> dict:
    """Admin principal."""
    return _headers(sub="1", role=UserRole.ADMIN.value, full_name="Quản trị viên")


@pytest.fixture
def unit_assistant_headers(sample_units) -> dict:
    return _headers(sub="7", role=UserRole.UNIT_ASSISTANT.value, unit_id=sample_units[0].id)


@pytest.fixture
def brigade_assistant_headers() -> dict:
    return _headers(sub="3", role=UserRole.BRIGADE_ASSISTANT.value)


@pytest.fixture
def station_manager_headers(sample_units) -> dict:
    return _headers(sub="5", role=UserRole.STATION_MANAGER.value, unit_id=sample_units[0].id)


@pytest.fixture
def sample_units(db_session: Session) -> List[Unit]:
    """The four recipient units the distribution slots bind to."""
    units = [
        Unit(name="Thứ đoàn 1", code="TD1", personnel=120, commander="Nguyễn Văn An"),
        Unit(name="Thứ đoàn 2", code="TD2", personnel=110),
        Unit(name="Thứ đoàn 3", code="TD3", personnel=100),
        Unit(name="Lữ đoàn bộ", code="LDH", personnel=60),
    ]
    db_session.add_all(units)
    db_session.commit()
    for unit in units:
        db_session.refresh(unit)
    return units


@pytest.fixture
def sample_item(db_session: Session) -> LttpItem:
    """Rice: 20,000 per kg, 30 day shelf life."""
    item = LttpItem(
        name="Gạo tẻ",
        category="Thực phẩm",
        unit="Kg",
        unit_price=Decimal("20000"),
        shelf_life_days=30,
        is_active=True,
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def perishable_item(db_session: Session) -> LttpItem:
    """Greens: 10,000 per kg, 2 day shelf life."""
    item = LttpItem(
        name="Rau cải",
        category="Rau củ quả",
        unit="Kg",
        unit_price=Decimal("10000"),
        shelf_life_days=2,
        is_active=True,
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item
