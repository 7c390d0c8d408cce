"""
Shared test fixtures for PKS Ledger tests

Provides database setup and client creation
"""
import os

# Must be set before pks_ledger is imported: the engine is built at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from pks_ledger.core.settings import get_settings  # noqa: E402
from pks_ledger.db.base import Base  # noqa: E402
from pks_ledger.db.session import get_db  # noqa: E402
from pks_ledger.main import app  # noqa: E402
from tests import factories  # noqa: E402


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine):
    """Create all tables for testing using SQLAlchemy metadata"""
    import pks_ledger.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_tables(engine):
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Create a fresh database session for each test"""
    create_tables(engine)
    factories.reset_sequences()

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        drop_tables(engine)


@pytest.fixture
def other_session(db_session):
    """A second session on the same database, standing in for a concurrent transaction"""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(db_session):
    """Create a test client with database override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def require_fiscal_period(monkeypatch):
    """Reject postings dated outside every defined fiscal period"""
    monkeypatch.setattr(get_settings(), "REQUIRE_FISCAL_PERIOD", True)


@pytest.fixture
def ledger(db_session):
    """Company 1 with a mapped chart of accounts, a warehouse and items"""
    return factories.create_test_ledger(db_session, company_id=1)
