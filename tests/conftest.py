"""
Pytest Configuration and Shared Fixtures
========================================

This module provides shared fixtures for all DoseRhythm tests.
Fixtures include database sessions, a pinned clock, an in-memory
notification scheduler, wired services, sample data and a test client.
"""

import os
import sys
from typing import Generator, Dict, Any

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("PATTERN_RECOMPUTE_ON_STARTUP", "false")
os.environ.setdefault("PATTERN_RECOMPUTE_INTERVAL_HOURS", "0")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base
from models import Medication
from tools.clock import FixedClock
from tools.notification_service import LocalNotificationScheduler
from services.settings_service import SettingsService
from services.dose_ledger import DoseLedger
from services.adherence_service import AdherenceService
from services.medication_service import MedicationService
from services.caregiver_service import CaregiverService
from actions.pattern_analyzer import PatternAnalyzer
from actions.recommendation_engine import RecommendationEngine
from actions.reminder_engine import ReminderEngine
from actions.schedule_applier import ScheduleApplier
from api.deps import get_db, services
from app import app
from tests import TEST_DATABASE_URL
from tests.factories import NOW


# ==================== DATABASE FIXTURES ====================

@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine with in-memory SQLite"""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # Enable foreign keys for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # Create all tables
    Base.metadata.create_all(bind=engine)

    yield engine

    # Cleanup
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a test database session"""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_engine
    )

    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        session.close()


# ==================== CLOCK AND SCHEDULER ====================

@pytest.fixture
def fixed_clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def scheduler() -> LocalNotificationScheduler:
    return LocalNotificationScheduler()


# ==================== SERVICE FIXTURES ====================

@pytest.fixture
def settings_svc() -> SettingsService:
    return SettingsService()


@pytest.fixture
def ledger(fixed_clock) -> DoseLedger:
    return DoseLedger(fixed_clock)


@pytest.fixture
def adherence(ledger) -> AdherenceService:
    return AdherenceService(ledger)


@pytest.fixture
def reminders(scheduler, ledger, settings_svc) -> ReminderEngine:
    return ReminderEngine(scheduler, ledger, settings_svc)


@pytest.fixture
def analyzer(ledger, settings_svc) -> PatternAnalyzer:
    return PatternAnalyzer(ledger, settings_svc)


@pytest.fixture
def recommendations() -> RecommendationEngine:
    return RecommendationEngine()


@pytest.fixture
def applier(reminders) -> ScheduleApplier:
    return ScheduleApplier(reminders)


@pytest.fixture
def medications(reminders) -> MedicationService:
    return MedicationService(reminders)


@pytest.fixture
def caregiver(scheduler, adherence, settings_svc) -> CaregiverService:
    return CaregiverService(scheduler, adherence, settings_svc)


# ==================== TEST CLIENT ====================

@pytest.fixture(scope="function")
def client(db_session: Session, fixed_clock, scheduler) -> Generator[TestClient, None, None]:
    """Create a FastAPI test client with database and service overrides"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    services.configure(clock=fixed_clock, scheduler=scheduler)

    with TestClient(app) as test_client:
        yield test_client

    services.reset()
    app.dependency_overrides.clear()


# ==================== SAMPLE DATA FIXTURES ====================

@pytest.fixture
def sample_medication_data() -> Dict[str, Any]:
    """Sample medication data for creating test medications"""
    return {
        "name": "Metformin",
        "dosage": "500mg",
        "frequency": "2x daily",
        "times": ["08:00", "20:00"],
        "notes": "Take with meals",
        "color": "#4F46E5",
    }


@pytest.fixture
def test_medication(db_session: Session, sample_medication_data: Dict) -> Medication:
    """Create and return a test medication without reminders"""
    medication = Medication(**sample_medication_data, notification_ids=[])
    db_session.add(medication)
    db_session.commit()
    db_session.refresh(medication)
    return medication
