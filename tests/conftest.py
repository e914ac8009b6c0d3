"""
Pytest configuration and fixtures
"""
import pytest
import sys
from datetime import date, datetime
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from studyplan.database import Base  # noqa: E402
import studyplan.models  # noqa: E402,F401
from studyplan.cache import PlanViewCache, plan_cache  # noqa: E402
from studyplan.models import TaskType, PlanEntryStatus  # noqa: E402
from studyplan.schemas import PlanEntrySchema  # noqa: E402


@pytest.fixture
def session_factory():
    """Sessions bound to a fresh in-memory SQLite database"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def cache():
    return PlanViewCache(ttl_seconds=300)


@pytest.fixture(autouse=True)
def clear_plan_cache():
    plan_cache.clear()
    yield
    plan_cache.clear()


@pytest.fixture
def make_entry():
    """Build PlanEntrySchema objects with sequential ids"""
    counter = {"id": 0}

    def _make(day, task_type=TaskType.LEARN, module_id=1, description="Module 1",
              status=PlanEntryStatus.PENDING, blocks=1, bucket=None, order=0, entry_id=None):
        counter["id"] += 1
        return PlanEntrySchema(
            id=entry_id if entry_id is not None else counter["id"],
            date=day,
            task_type=task_type,
            module_id=module_id,
            description=description,
            estimated_blocks=blocks,
            status=status,
            session_bucket=bucket,
            order=order,
        )

    return _make


class FakeSettings:
    """Stand-in for UserCourseSettings rows"""

    def __init__(self, user_id=1, course_id=1, exam_date=date(2024, 1, 22),
                 plan_created_at=datetime(2024, 1, 3, 9, 0), study_hours_per_week=8):
        self.user_id = user_id
        self.course_id = course_id
        self.exam_date = exam_date
        self.plan_created_at = plan_created_at
        self.study_hours_per_week = study_hours_per_week


@pytest.fixture
def fake_settings():
    return FakeSettings
