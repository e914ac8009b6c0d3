"""Plan operations used by the CLI and other callers.

Course settings are passed in explicitly; every read goes through the plan
view cache and every write through the transition authority.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from studyplan.aggregator import build_weekly_view, build_todays_plan
from studyplan.cache import PlanViewCache, WEEKLY_KEY, plan_cache
from studyplan.config import settings
from studyplan.crud import (
    get_plan_entries,
    get_entries_for_date,
    get_course_modules,
    get_learned_module_ids,
    mark_module_learned,
    upsert_course_settings,
)
from studyplan.detector import check_behind_schedule
from studyplan.models import PlanEntryStatus, ModuleProgress
from studyplan.optimistic import Committer, OptimisticPlanSession
from studyplan.schemas import BehindScheduleResult, CourseSettingsCreate, PlanView, TodaysPlan
from studyplan.transitions import set_task_status
from studyplan.weeks import PlanCalendar

logger = logging.getLogger(__name__)


def _cache(cache: Optional[PlanViewCache]) -> PlanViewCache:
    return cache if cache is not None else plan_cache


def load_plan(db: Session, course_settings, cache: Optional[PlanViewCache] = None) -> PlanView:
    """Weekly plan from week 1 to the exam"""
    user_id, course_id = course_settings.user_id, course_settings.course_id
    week1_start_date = PlanCalendar.calculate_week1_start_date(course_settings.plan_created_at)
    exam_date = course_settings.exam_date

    def compute() -> PlanView:
        # All entries, so ones dated outside the plan range get reported by the aggregator
        entries = get_plan_entries(db, user_id, course_id)
        weeks = build_weekly_view(entries, week1_start_date, exam_date, get_course_modules(db, course_id))
        logger.debug("Built %d plan weeks for user %s course %s", len(weeks), user_id, course_id)
        return PlanView(weeks=weeks, week1_start_date=week1_start_date, exam_date=exam_date)

    cache = _cache(cache)
    plan = cache.get(user_id, course_id, WEEKLY_KEY)
    # Week windows follow the settings, which may have changed since caching
    if plan is None or (plan.week1_start_date, plan.exam_date) != (week1_start_date, exam_date):
        plan = compute()
        cache.set(user_id, course_id, WEEKLY_KEY, plan)
    return plan


def load_todays_plan(db: Session, course_settings, today: date = None, cache: Optional[PlanViewCache] = None) -> TodaysPlan:
    """Plan of the day, split into session buckets"""
    user_id, course_id = course_settings.user_id, course_settings.course_id
    today = today if today else date.today()

    def compute() -> TodaysPlan:
        return build_todays_plan(
            get_entries_for_date(db, user_id, course_id, today),
            today,
            modules=get_course_modules(db, course_id),
            learned_module_ids=get_learned_module_ids(db, user_id, course_id),
        )

    return _cache(cache).get_or_compute(user_id, course_id, today.isoformat(), compute)


def save_course_settings(db: Session, data: CourseSettingsCreate, cache: Optional[PlanViewCache] = None):
    """Create or update course settings and drop the course's cached views

    Returns:
        (settings, is_first_creation)
    """
    result = upsert_course_settings(db, data)
    _cache(cache).invalidate(data.user_id, data.course_id)
    return result


def check_behind_schedule_for_course(
    db: Session,
    course_settings,
    today: date = None,
    minimum_study_blocks: Optional[int] = None,
    cache: Optional[PlanViewCache] = None
) -> BehindScheduleResult:
    """Behind-schedule check using the configured tolerance policy"""
    today = today if today else date.today()
    plan = load_plan(db, course_settings, cache=cache)
    return check_behind_schedule(
        plan.weeks,
        today,
        plan.exam_date,
        late_tolerance_days=settings.late_tolerance_days,
        max_unlearned_modules=settings.max_unlearned_modules,
        course_settings=course_settings,
        minimum_study_blocks=minimum_study_blocks,
    )


def mark_module_learned_for_course(
    db: Session,
    user_id: int,
    course_id: int,
    module_id: int,
    cache: Optional[PlanViewCache] = None
) -> ModuleProgress:
    """Mark a module as learned; today's Phase 1 module may change, so cached views are dropped"""
    progress = mark_module_learned(db, user_id, course_id, module_id)
    _cache(cache).invalidate(user_id, course_id)
    return progress


def make_committer(db: Session, user_id: int, course_id: int, cache: Optional[PlanViewCache] = None) -> Committer:
    """Committer that writes a task's entries through the transition authority"""
    def commit(entry_ids, new_status: PlanEntryStatus) -> None:
        set_task_status(db, entry_ids, new_status, user_id=user_id, course_id=course_id, cache=cache)
    return commit


def open_plan_session(db: Session, course_settings, cache: Optional[PlanViewCache] = None) -> OptimisticPlanSession:
    """Displayed weekly plan with optimistic status updates"""
    plan = load_plan(db, course_settings, cache=cache)
    committer = make_committer(db, course_settings.user_id, course_settings.course_id, cache=cache)
    return OptimisticPlanSession(plan.weeks, committer)
