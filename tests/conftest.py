"""
Shared fixtures: file-backed SQLite per test, built-in vertical registry, process-local account locks.
Environment is set before any app module reads settings.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("SESSION_SECRET", "test-session-secret-0123456789")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ["APP_ENV"] = "test"
os.environ["UNLOCK_LOCK_BACKEND"] = "local"

import pytest
from sqlalchemy import Column, Integer, MetaData, String, Table
from sqlalchemy.orm import sessionmaker

from app.db.schema import create_schema
from app.db.session import build_engine
from app.services.ledger.service import LedgerService
from app.services.locks import LocalAccountLocks
from app.services.records.service import RecordService
from app.verticals.registry import build_registry


@pytest.fixture
def registry():
    return build_registry()


@pytest.fixture
def engine(tmp_path, registry):
    eng = build_engine(f"sqlite:///{tmp_path / 'entitlements.db'}")
    create_schema(eng, registry)
    RecordService.reset_cache()
    yield eng
    RecordService.reset_cache()
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def locks():
    return LocalAccountLocks(wait_seconds=10)


@pytest.fixture
def fund(session_factory):
    """fund(account_id, credits): out-of-band credit grant, committed."""

    def _fund(account_id: str, credits: int) -> None:
        session = session_factory()
        try:
            LedgerService(session).append(account_id, credits, "test_grant")
        finally:
            session.close()

    return _fund


@pytest.fixture
def dealflow_records(engine):
    """Record table of the dealflow vertical with five companies c1..c5."""
    metadata = MetaData()
    table = Table(
        "dealflow_companies",
        metadata,
        Column("id", String, primary_key=True),
        Column("name", String),
        Column("total_raised", Integer),
    )
    metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(
            table.insert(),
            [{"id": f"c{i}", "name": f"Company {i}", "total_raised": i * 1_000_000} for i in range(1, 6)],
        )
    return table
