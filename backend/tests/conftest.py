"""Shared test fixtures."""
from datetime import date, datetime, time

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from salon.database import get_db, make_engine
from salon.main import app
from salon.models import Base
from salon.services.capacity import (
    AdmissionController,
    AppointmentStatus,
    CapacityEngine,
    CapacityWindow,
    LocalDateLocks,
    MemorySettingsCache,
    SalonSettingsStore,
    SlotDiscovery,
    get_capacity_engine,
)
from salon.services.capacity.ledger import insert_appointment

DAY = date(2030, 6, 3)

DEFAULT_SETTINGS = [
    ("max_concurrent_appointments", 5, "integer"),
    ("max_daily_appointments", 30, "integer"),
    ("working_hours_start", "09:00", "string"),
    ("working_hours_end", "18:00", "string"),
    ("slot_granularity_minutes", 30, "integer"),
    ("capacity_warning_threshold", 80, "integer"),
]


def at(hhmm: str, day: date = DAY) -> datetime:
    """Datetime on the test day from "HH:MM"."""
    return datetime.combine(day, time.fromisoformat(hhmm))


@pytest.fixture
def session_factory(tmp_path):
    """File-backed SQLite so several threads share one database."""
    engine = make_engine(f"sqlite:///{tmp_path / 'salon.db'}")
    Base.metadata.create_all(engine)
    factory = sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )
    yield factory
    engine.dispose()


@pytest.fixture
def settings_store(session_factory) -> SalonSettingsStore:
    store = SalonSettingsStore(session_factory, MemorySettingsCache())
    for key, value, value_type in DEFAULT_SETTINGS:
        store.set(key, value, value_type)
    return store


@pytest.fixture
def locks() -> LocalDateLocks:
    return LocalDateLocks(timeout_seconds=5.0)


@pytest.fixture
def controller(session_factory, settings_store, locks) -> AdmissionController:
    return AdmissionController(
        session_factory,
        settings_store,
        locks,
        retry_attempts=2,
        retry_backoff_seconds=0.01,
    )


@pytest.fixture
def discovery(session_factory, settings_store) -> SlotDiscovery:
    return SlotDiscovery(session_factory, settings_store)


@pytest.fixture
def capacity_engine(session_factory, settings_store, controller, discovery) -> CapacityEngine:
    return CapacityEngine(
        session_factory=session_factory,
        settings_store=settings_store,
        admission=controller,
        slots=discovery,
    )


@pytest.fixture
def add_appointment(session_factory):
    """Write a ledger row directly (test setup, bypasses admission)."""
    def _add(start: str, end: str, status=AppointmentStatus.CONFIRMED, day: date = DAY) -> int:
        with session_factory() as db:
            row = insert_appointment(db, CapacityWindow(at(start, day), at(end, day)), status=status)
            db.commit()
            return row.id
    return _add


@pytest.fixture
def client(capacity_engine, session_factory):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_capacity_engine] = lambda: capacity_engine
    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
