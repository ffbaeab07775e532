"""
Pytest fixtures for testing
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["SCHEDULER_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, JSON
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from sqlalchemy.dialects.postgresql import JSONB

from topledger.auth import ROLE_ADMIN, create_access_token, register_user
from topledger.infrastructure.db.session import Base, get_db
from topledger.main import app


@pytest.fixture
def db_engine():
    """Create in-memory SQLite engine for tests, with JSONB→JSON mapping."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        # SAVEPOINT support: BEGIN is emitted by the "begin" listener
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    # SQLite has no JSONB: remap to JSON for tests
    for table in Base.metadata.tables.values():
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(db_session):
    """Test client with get_db bound to the test session"""
    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def user(db_session):
    return register_user(
        db_session,
        email="alice@example.com",
        password="secret123",
        name="Alice",
        nickname="alice",
    )


@pytest.fixture
def other_user(db_session):
    return register_user(
        db_session,
        email="bob@example.com",
        password="secret456",
        name="Bob",
        nickname="bob",
    )


@pytest.fixture
def admin(db_session):
    return register_user(
        db_session,
        email="admin@example.com",
        password="admin-pass",
        name="Admin",
        role=ROLE_ADMIN,
    )


@pytest.fixture
def auth_headers():
    """Bearer header for a user: auth_headers(user)"""
    def _headers(u) -> dict:
        return {"Authorization": f"Bearer {create_access_token(u)}"}
    return _headers
