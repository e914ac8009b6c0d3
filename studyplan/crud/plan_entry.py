from sqlalchemy.orm import Session
from studyplan.models import PlanEntry, PlanEntryStatus
from studyplan.schemas import PlanEntryCreate
from datetime import date, datetime
from typing import Iterable, List, Optional

def add_plan_entries(db: Session, entries: List[PlanEntryCreate]) -> List[PlanEntry]:
    """Store entries produced by the plan generator"""
    db_entries = [PlanEntry(**entry.model_dump(), status=PlanEntryStatus.PENDING) for entry in entries]
    db.add_all(db_entries)
    db.commit()
    for db_entry in db_entries:
        db.refresh(db_entry)
    return db_entries

def get_plan_entries(
    db: Session,
    user_id: int,
    course_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> List[PlanEntry]:
    """Get a student's plan entries for a course, optionally within [start_date, end_date]"""
    query = db.query(PlanEntry).filter(
        PlanEntry.user_id == user_id,
        PlanEntry.course_id == course_id
    )
    if start_date:
        query = query.filter(PlanEntry.date >= start_date)
    if end_date:
        query = query.filter(PlanEntry.date <= end_date)
    return query.order_by(PlanEntry.date, PlanEntry.order, PlanEntry.id).all()

def get_entries_for_date(db: Session, user_id: int, course_id: int, day: date) -> List[PlanEntry]:
    """Get all entries scheduled on one day"""
    return get_plan_entries(db, user_id, course_id, start_date=day, end_date=day)

def get_entries_by_ids(db: Session, entry_ids: Iterable[int]) -> List[PlanEntry]:
    """Get entries by id; missing ids are simply absent from the result"""
    entry_ids = list(entry_ids)
    if not entry_ids:
        return []
    return db.query(PlanEntry).filter(PlanEntry.id.in_(entry_ids)).all()

def apply_entry_status(
    db: Session,
    entry: PlanEntry,
    status: PlanEntryStatus,
    actual_time_spent_seconds: Optional[int] = None
) -> PlanEntry:
    """Write a new status on one entry inside the caller's transaction (no commit)"""
    entry.status = status
    entry.completed_at = datetime.utcnow() if status == PlanEntryStatus.COMPLETED else None
    if actual_time_spent_seconds is not None:
        entry.actual_time_spent_seconds = actual_time_spent_seconds
    db.flush()
    return entry
