"""Pure aggregation of plan entries into the weekly view and today's plan.

Nothing here touches the database: callers hand in entries (ORM rows or
``PlanEntrySchema`` objects) and get pydantic views back.
"""

import logging
import warnings
from datetime import date
from typing import Dict, Iterable, List, Optional

from studyplan.errors import ValidationError, AggregationIntegrityWarning
from studyplan.models.enums import TaskType, PlanEntryStatus, SessionBucket
from studyplan.schemas import (
    ModuleRef,
    PlanEntrySchema,
    TodaysPlan,
    TodaysPlanSections,
    WeekSummary,
    WeekTask,
)
from studyplan.weeks import PlanCalendar

logger = logging.getLogger(__name__)


def task_identity(entry) -> tuple:
    """Key under which entries collapse into one displayed task"""
    return (TaskType(entry.task_type), entry.module_id, entry.description)


def collapse_status(statuses: Iterable) -> PlanEntryStatus:
    """
    Displayed status of a task backed by several entries.

    COMPLETED only when every entry is completed, IN_PROGRESS when any entry is
    in progress, PENDING otherwise (skipped entries included).
    """
    statuses = [PlanEntryStatus(s) for s in statuses]
    if statuses and all(s == PlanEntryStatus.COMPLETED for s in statuses):
        return PlanEntryStatus.COMPLETED
    if any(s == PlanEntryStatus.IN_PROGRESS for s in statuses):
        return PlanEntryStatus.IN_PROGRESS
    return PlanEntryStatus.PENDING


def _sort_key(entry):
    return (entry.date, entry.order or 0, entry.id)


def _check_blocks(entries) -> None:
    for entry in entries:
        if entry.estimated_blocks is None or entry.estimated_blocks < 1:
            raise ValidationError(
                f"Plan entry {entry.id} has {entry.estimated_blocks} estimated blocks (minimum is 1)"
            )


def _module_lookup(modules) -> Dict[int, ModuleRef]:
    return {ref.id: ref for ref in (ModuleRef.model_validate(m) for m in modules or [])}


def group_tasks(entries: Iterable, module_refs: Optional[Dict[int, ModuleRef]] = None) -> List[WeekTask]:
    """Collapse entries sharing a task identity into displayed rows, in first-appearance order"""
    module_refs = module_refs or {}
    groups: Dict[tuple, list] = {}
    for entry in entries:
        groups.setdefault(task_identity(entry), []).append(entry)

    tasks = []
    for (task_type, module_id, description), members in groups.items():
        module = module_refs.get(module_id) if module_id is not None else None
        tasks.append(WeekTask(
            type=task_type,
            module_id=module_id,
            module_title=module.title if module else None,
            description=description,
            status=collapse_status(e.status for e in members),
            entry_ids=[e.id for e in members],
            estimated_blocks=sum(e.estimated_blocks for e in members),
        ))
    return tasks


def build_weekly_view(entries, week1_start_date: date, exam_date: date, modules=None) -> List[WeekSummary]:
    """
    Group plan entries into weeks running from week 1 to the exam.

    Args:
        entries: Plan entries of one student and course
        week1_start_date: First day of week 1
        exam_date: Exam day, the last day of the final (exam) week
        modules: Optional course modules, used for task titles

    Returns:
        Weeks in ascending order; empty when there are no entries
    """
    if week1_start_date > exam_date:
        raise ValidationError(f"Plan starts {week1_start_date} after the exam on {exam_date}")

    entries = list(entries)
    if not entries:
        return []
    _check_blocks(entries)

    windows = PlanCalendar.week_windows(week1_start_date, exam_date)
    per_week: List[list] = [[] for _ in windows]
    for entry in sorted(entries, key=_sort_key):
        if entry.date < week1_start_date or entry.date > exam_date:
            message = (
                f"Plan entry {entry.id} dated {entry.date} is outside "
                f"{week1_start_date}..{exam_date}; dropped from weekly view"
            )
            logger.warning(message)
            warnings.warn(message, AggregationIntegrityWarning, stacklevel=2)
            continue
        per_week[(entry.date - week1_start_date).days // 7].append(entry)

    module_refs = _module_lookup(modules)
    weeks = []
    for number, ((start, end), week_entries) in enumerate(zip(windows, per_week), start=1):
        tasks = group_tasks(week_entries, module_refs)
        weeks.append(WeekSummary(
            week_number=number,
            week_start_date=start,
            week_end_date=end,
            is_exam_week=number == len(windows),
            tasks=tasks,
            total_tasks=len(tasks),
            completed_tasks=sum(1 for t in tasks if t.status == PlanEntryStatus.COMPLETED),
        ))
    return weeks


class SessionBucketPolicy:
    """Routes the day's untagged entries into session buckets"""

    def assign(self, entries: list) -> Dict[SessionBucket, list]:
        raise NotImplementedError


def _first(candidates, predicate=None):
    for entry in candidates:
        if predicate is None or predicate(entry):
            return entry
    return None


class FillSessionsPolicy(SessionBucketPolicy):
    """
    Fill the short (1 block) and long (2 block) sessions with Phase 1 work first,
    keep one Phase 2 review for the supplemental short session, and put whatever
    is left in the supplemental long session.
    """

    def assign(self, entries: list) -> Dict[SessionBucket, list]:
        assigned = {bucket: [] for bucket in SessionBucket}
        remaining = list(entries)

        def learn():
            return [e for e in remaining if e.task_type == TaskType.LEARN]

        def place(bucket, entry):
            assigned[bucket].append(entry)
            remaining.remove(entry)

        reviews = [e for e in remaining if e.task_type == TaskType.REVIEW]
        reserved = _first(reviews, lambda e: e.estimated_blocks == 1) or _first(reviews)
        if reserved is not None:
            remaining.remove(reserved)

        courte = (
            _first(learn(), lambda e: e.estimated_blocks == 1)
            or _first(remaining, lambda e: e.estimated_blocks == 1)
        )
        if courte is not None:
            place(SessionBucket.SESSION_COURTE, courte)

        longue = (
            _first(learn(), lambda e: e.estimated_blocks == 2)
            or _first(learn(), lambda e: e.estimated_blocks <= 2)
            or _first(remaining, lambda e: e.estimated_blocks == 2)
        )
        if longue is not None:
            place(SessionBucket.SESSION_LONGUE, longue)

        if reserved is not None:
            assigned[SessionBucket.SESSION_COURTE_SUPPLEMENTAIRE].append(reserved)
        elif remaining:
            place(SessionBucket.SESSION_COURTE_SUPPLEMENTAIRE, remaining[0])

        assigned[SessionBucket.SESSION_LONGUE_SUPPLEMENTAIRE].extend(remaining)
        return assigned


def build_todays_plan(entries, today: date, modules=None, learned_module_ids=(), policy: SessionBucketPolicy = None) -> TodaysPlan:
    """
    Build today's plan from the student's entries.

    Entries already tagged with a session bucket keep it; the rest are routed by
    ``policy`` (FillSessionsPolicy by default). Every entry dated today ends up in
    exactly one section.
    """
    todays = sorted((e for e in entries if e.date == today), key=_sort_key)
    _check_blocks(todays)
    policy = policy or FillSessionsPolicy()

    sections = TodaysPlanSections()
    untagged = []
    for entry in todays:
        if entry.session_bucket:
            sections.bucket(SessionBucket(entry.session_bucket)).append(PlanEntrySchema.model_validate(entry))
        else:
            untagged.append(entry)

    routed_ids = set()
    for bucket, routed in policy.assign(untagged).items():
        for entry in routed:
            if entry.id in routed_ids:
                continue
            routed_ids.add(entry.id)
            sections.bucket(bucket).append(PlanEntrySchema.model_validate(entry))

    leftovers = [e for e in untagged if e.id not in routed_ids]
    if leftovers:
        logger.warning(
            "%s did not place %d entries; adding them to %s",
            type(policy).__name__, len(leftovers), SessionBucket.SESSION_LONGUE_SUPPLEMENTAIRE.value,
        )
        sections.session_longue_supplementaire.extend(PlanEntrySchema.model_validate(e) for e in leftovers)

    module_refs = _module_lookup(modules)
    learned = set(learned_module_ids)
    phase1_entry = _first(
        todays, lambda e: e.task_type == TaskType.LEARN and e.module_id is not None and e.module_id not in learned
    )
    phase1_module = None
    if phase1_entry is not None:
        phase1_module = module_refs.get(phase1_entry.module_id) or ModuleRef(
            id=phase1_entry.module_id, title=f"Module {phase1_entry.module_id}"
        )

    return TodaysPlan(
        sections=sections,
        total_blocks=sum(e.estimated_blocks for e in todays),
        phase1_module=phase1_module,
    )
