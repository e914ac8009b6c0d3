import logging
import math
from datetime import date, timedelta
from typing import List, Optional

from studyplan.models.enums import TaskType, PlanEntryStatus
from studyplan.schemas import BehindScheduleResult, WeekSummary
from studyplan.weeks import PlanCalendar

logger = logging.getLogger(__name__)


def count_unlearned_modules(weeks: List[WeekSummary], today: date, late_tolerance_days: int = 0) -> int:
    """Modules with a Phase 1 task left unfinished in a week that is over"""
    grace = timedelta(days=late_tolerance_days)
    unlearned = set()
    for week in weeks:
        if week.week_end_date + grace >= today:
            continue
        for task in week.tasks:
            if task.type == TaskType.LEARN and task.status != PlanEntryStatus.COMPLETED:
                unlearned.add(task.module_id if task.module_id is not None else task.description)
    return len(unlearned)


def check_study_time(course_settings, minimum_study_blocks: int) -> Optional[BehindScheduleResult]:
    """Behind result when the weeks left cannot hold the course's minimum study time"""
    weeks_until_exam = PlanCalendar.get_weeks_until_exam(course_settings.exam_date, course_settings.plan_created_at)
    blocks_available = weeks_until_exam * PlanCalendar.get_blocks_per_week(course_settings.study_hours_per_week)
    if blocks_available >= minimum_study_blocks:
        return None

    additional_hours = math.ceil((minimum_study_blocks - blocks_available) / 2)
    return BehindScheduleResult(
        is_behind=True,
        warning=(
            f"Insufficient study time. Minimum required: {minimum_study_blocks} blocks, "
            f"available: {blocks_available} blocks."
        ),
        suggestions=[
            f"Increase your study time by {additional_hours} hours per week",
            "Change the scheduled exam date to allow more time",
        ],
    )


def check_behind_schedule(
    weeks: List[WeekSummary],
    today: date,
    exam_date: date,
    late_tolerance_days: int = 0,
    max_unlearned_modules: int = 0,
    course_settings=None,
    minimum_study_blocks: Optional[int] = None
) -> BehindScheduleResult:
    """
    Decide whether the student is behind their plan. Read-only.

    Args:
        weeks: Weekly view of the plan
        today: Reference day
        exam_date: Exam day
        late_tolerance_days: Days after a week ends before its unfinished Phase 1 work counts
        max_unlearned_modules: Number of unlearned past modules tolerated
        course_settings: Optional settings, enables the study-time check
        minimum_study_blocks: Minimum blocks the course needs, used with course_settings

    Returns:
        BehindScheduleResult; warning and suggestions are empty when not behind
    """
    unlearned = count_unlearned_modules(weeks, today, late_tolerance_days)

    if course_settings is not None and minimum_study_blocks is not None:
        shortfall = check_study_time(course_settings, minimum_study_blocks)
        if shortfall is not None:
            return shortfall.model_copy(update={"unlearned_modules": unlearned})

    if unlearned <= max_unlearned_modules:
        return BehindScheduleResult(unlearned_modules=unlearned)

    days_until_exam = (exam_date - today).days
    logger.info("Behind schedule: %d unlearned modules, %d days until exam", unlearned, days_until_exam)

    warning = f"You have {unlearned} module(s) from past weeks still to learn."
    if days_until_exam >= 0:
        warning += f" The exam is in {days_until_exam} day(s)."
    return BehindScheduleResult(
        is_behind=True,
        warning=warning,
        suggestions=[
            f"Mark {unlearned} module(s) as learned if you have already completed them",
            "Increase your study hours per week",
            "Change the scheduled exam date if necessary",
        ],
        unlearned_modules=unlearned,
    )
