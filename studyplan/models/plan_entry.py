from sqlalchemy import Column, Integer, String, Date, DateTime, Enum, CheckConstraint, Index
from datetime import datetime
from studyplan.database import Base
from studyplan.models.enums import TaskType, PlanEntryStatus, SessionBucket

class PlanEntry(Base):
    """One schedulable unit of study work (learn/review/practice) on a given day"""
    __tablename__ = "daily_plan_entries"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    course_id = Column(Integer, nullable=False)
    date = Column(Date, nullable=False)
    task_type = Column(Enum(TaskType), nullable=False)
    module_id = Column(Integer)  # required for LEARN entries
    description = Column(String, nullable=False, default="")
    estimated_blocks = Column(Integer, nullable=False, default=1)  # 25-minute blocks
    status = Column(Enum(PlanEntryStatus), nullable=False, default=PlanEntryStatus.PENDING)
    session_bucket = Column(Enum(SessionBucket, values_callable=lambda e: [m.value for m in e]))
    order = Column(Integer, nullable=False, default=0)  # display order within the day
    
    completed_at = Column(DateTime)
    actual_time_spent_seconds = Column(Integer)
    created_at = Column(DateTime, default=datetime.utcnow)
    
    __table_args__ = (
        CheckConstraint("estimated_blocks >= 1", name="ck_plan_entry_blocks_positive"),
        Index("ix_plan_entries_course_date", "course_id", "date"),
        Index("ix_plan_entries_course_identity", "course_id", "task_type", "module_id"),
    )
