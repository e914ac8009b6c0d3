from sqlalchemy.orm import Session
from studyplan.models import CourseModule, ModuleProgress, LearnStatus
from datetime import datetime
from typing import List, Set

def create_module(db: Session, course_id: int, title: str, order: int = 0) -> CourseModule:
    """Create a course module"""
    db_module = CourseModule(course_id=course_id, title=title, order=order)
    db.add(db_module)
    db.commit()
    db.refresh(db_module)
    return db_module

def get_course_modules(db: Session, course_id: int) -> List[CourseModule]:
    """Get the modules of a course in display order"""
    return db.query(CourseModule).filter(
        CourseModule.course_id == course_id
    ).order_by(CourseModule.order, CourseModule.id).all()

def get_module_progress(db: Session, user_id: int, course_id: int) -> List[ModuleProgress]:
    """Get a student's progress rows for a course"""
    return db.query(ModuleProgress).filter(
        ModuleProgress.user_id == user_id,
        ModuleProgress.course_id == course_id
    ).all()

def get_learned_module_ids(db: Session, user_id: int, course_id: int) -> Set[int]:
    """Ids of modules the student marked as learned"""
    return {
        p.module_id for p in get_module_progress(db, user_id, course_id)
        if p.learn_status == LearnStatus.LEARNED
    }

def mark_module_learned(db: Session, user_id: int, course_id: int, module_id: int) -> ModuleProgress:
    """Mark a module as learned, creating its progress row if needed"""
    progress = db.query(ModuleProgress).filter(
        ModuleProgress.user_id == user_id,
        ModuleProgress.module_id == module_id
    ).first()
    if not progress:
        progress = ModuleProgress(user_id=user_id, course_id=course_id, module_id=module_id)
        db.add(progress)

    progress.learn_status = LearnStatus.LEARNED
    progress.last_learned_at = datetime.utcnow()
    db.commit()
    db.refresh(progress)
    return progress
