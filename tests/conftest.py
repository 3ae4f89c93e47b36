"""
Pytest configuration for the medicine reminder test suite
"""

import os
import sys
from datetime import date, datetime, timezone

import pytest

# Set test configuration BEFORE importing any medreminder modules
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SESSION_SECRET"] = "test-session-secret-at-least-32-characters"
os.environ["DEFAULT_TIMEZONE"] = "UTC"
os.environ.pop("OPENAI_API_KEY", None)

# Add parent directory to path to import medreminder modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from medreminder.database import Base  # noqa: E402
from medreminder.models import Medicine, MedicineDose  # noqa: E402,F401
from medreminder.services.dose_schedule_service import DoseScheduleService  # noqa: E402
from medreminder.services.dose_service import DoseService  # noqa: E402
from medreminder.services.medicine_service import MedicineService  # noqa: E402
from medreminder.services.record_store import MEDICINES, SqlAlchemyRecordStore  # noqa: E402

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)

USER_ID = "user_a_123"
OTHER_USER_ID = "user_b_456"

# 10:30 UTC on a plain weekday, well away from any DST change
NOW = datetime(2026, 10, 14, 10, 30, tzinfo=timezone.utc)
TODAY = NOW.date()


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def store(db_session):
    return SqlAlchemyRecordStore(db_session)


@pytest.fixture
def scheduler(store):
    return DoseScheduleService(store, tz="UTC", clock=lambda: NOW)


@pytest.fixture
def medicine_service(store, scheduler):
    return MedicineService(store, scheduler)


@pytest.fixture
def dose_service(store, scheduler):
    return DoseService(store, scheduler)


@pytest.fixture
def make_medicine(store):
    """Insert a medicine row directly, bypassing generation"""
    def _make(
        frequency: str = "once daily",
        start_date: date = TODAY,
        end_date: date = None,
        active: bool = True,
        user_id: str = USER_ID,
        medicine_name: str = "Amoxicillin",
    ):
        record = {
            "user_id": user_id,
            "prescription_id": None,
            "medicine_name": medicine_name,
            "dosage": "500mg",
            "frequency": frequency,
            "instructions": "",
            "duration_days": None,
            "start_date": start_date,
            "end_date": end_date,
            "active": active,
        }
        return store.insert_many(MEDICINES, [record])[0]
    return _make
