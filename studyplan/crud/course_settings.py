import logging
from sqlalchemy.orm import Session
from studyplan.models import UserCourseSettings
from studyplan.schemas import CourseSettingsCreate
from datetime import datetime
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

def get_course_settings(db: Session, user_id: int, course_id: int) -> Optional[UserCourseSettings]:
    """Get a student's settings for a course"""
    return db.query(UserCourseSettings).filter(
        UserCourseSettings.user_id == user_id,
        UserCourseSettings.course_id == course_id
    ).first()

def upsert_course_settings(db: Session, data: CourseSettingsCreate) -> Tuple[UserCourseSettings, bool]:
    """
    Create or update course settings.

    plan_created_at is only set on first creation (or while orientation is not done),
    so week numbers stay stable when the plan is regenerated.

    Returns:
        (settings, is_first_creation)
    """
    db_settings = get_course_settings(db, data.user_id, data.course_id)
    is_first_creation = db_settings is None or not db_settings.orientation_completed

    if db_settings is None:
        db_settings = UserCourseSettings(**data.model_dump(), plan_created_at=datetime.utcnow())
        db.add(db_settings)
    else:
        for key, value in data.model_dump().items():
            setattr(db_settings, key, value)
        if is_first_creation:
            db_settings.plan_created_at = datetime.utcnow()

    db.commit()
    db.refresh(db_settings)
    logger.info(
        "Saved course settings for user %s course %s (first creation: %s)",
        data.user_id, data.course_id, is_first_creation
    )
    return db_settings, is_first_creation

def complete_orientation(db: Session, user_id: int, course_id: int) -> bool:
    """Mark orientation as completed; False when the student has no settings yet"""
    db_settings = get_course_settings(db, user_id, course_id)
    if not db_settings:
        return False
    db_settings.orientation_completed = True
    db.commit()
    return True
