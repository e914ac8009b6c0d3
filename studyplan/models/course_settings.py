from sqlalchemy import Column, Integer, Date, DateTime, Boolean, Enum, JSON, UniqueConstraint
from datetime import datetime
from studyplan.database import Base
from studyplan.models.enums import SelfRating

class UserCourseSettings(Base):
    """Per-student study preferences for one course"""
    __tablename__ = "user_course_settings"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    course_id = Column(Integer, nullable=False)
    exam_date = Column(Date, nullable=False)
    study_hours_per_week = Column(Integer, nullable=False)
    preferred_study_days = Column(JSON)  # ISO weekdays, 1 = Monday
    self_rating = Column(Enum(SelfRating), nullable=False, default=SelfRating.NOVICE)
    recommended_hours_min = Column(Integer)
    recommended_hours_max = Column(Integer)
    
    # Week numbers are anchored on this date, so it survives plan regeneration
    plan_created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    orientation_completed = Column(Boolean, nullable=False, default=False)
    
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_user_course_settings"),
    )
