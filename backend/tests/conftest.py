"""Pytest fixtures: file-backed SQLite database per test for isolated, thread-safe runs."""
from datetime import datetime, timezone
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from chart_ledger.database import Base, get_db
from chart_ledger.main import app
from chart_ledger.services.amendment_engine import AmendmentEngine

# Import all models so they register with Base.metadata
from chart_ledger.models.ledger import Ledger                    # noqa: F401
from chart_ledger.models.treatment_entry import TreatmentEntry   # noqa: F401
from chart_ledger.models.audit_event import AuditEvent           # noqa: F401

PATIENT = "demo-patient-001"
ACTOR = "staff-001"
NOW = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)
VALID_REASON = "Corrected the treatment notes"


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 5},
    )

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def ledger(db):
    """Amendment engine on the test session with a fixed clock."""
    return AmendmentEngine(db, clock=lambda: NOW)


@pytest.fixture(scope="function")
def client(session_factory):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def create_entry(engine: AmendmentEngine, entry_date: str = "2024-01-01", content: str = "初回評価",
                 patient_id: str = PATIENT, **kwargs):
    """Helper: create an entry through the engine with sensible defaults."""
    kwargs.setdefault("therapy_methods", [])
    kwargs.setdefault("measurements", {})
    kwargs.setdefault("actor_id", ACTOR)
    return engine.create_entry(patient_id=patient_id, entry_date=entry_date, content=content, **kwargs)


def post_entry(client: TestClient, entry_date: str = "2024-01-01", content: str = "初回評価",
               patient_id: str = PATIENT, **extra) -> dict:
    """Helper: POST an entry via the API and return response JSON."""
    payload = {"entry_date": entry_date, "content": content, "actor_id": ACTOR, **extra}
    resp = client.post(f"/api/patients/{patient_id}/entries", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()
