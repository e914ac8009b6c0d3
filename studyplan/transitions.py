"""The single place where plan entry statuses change.

A displayed task may be backed by several entries; a status change is applied
to all of them in one transaction, or to none.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studyplan.aggregator import collapse_status
from studyplan.cache import PlanViewCache, WEEKLY_KEY, plan_cache
from studyplan.crud.plan_entry import get_entries_by_ids, apply_entry_status
from studyplan.errors import PlanError, StaleEntryError, UpdateConflictError, ValidationError
from studyplan.models.enums import PlanEntryStatus

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    (PlanEntryStatus.PENDING, PlanEntryStatus.IN_PROGRESS),
    (PlanEntryStatus.IN_PROGRESS, PlanEntryStatus.COMPLETED),
    (PlanEntryStatus.PENDING, PlanEntryStatus.COMPLETED),
    # "try again" reset
    (PlanEntryStatus.COMPLETED, PlanEntryStatus.PENDING),
    (PlanEntryStatus.IN_PROGRESS, PlanEntryStatus.PENDING),
}


def check_transition(current, new) -> None:
    """Raise ValidationError unless current -> new is a user-allowed transition"""
    current, new = PlanEntryStatus(current), PlanEntryStatus(new)
    if new == PlanEntryStatus.SKIPPED:
        raise ValidationError("SKIPPED is only set by plan maintenance, not by a student action")
    if current == new:
        return
    if (current, new) not in ALLOWED_TRANSITIONS:
        raise ValidationError(f"Cannot move a plan entry from {current.value} to {new.value}")


def set_task_status(
    db: Session,
    entry_ids: Iterable[int],
    new_status: PlanEntryStatus,
    user_id: Optional[int] = None,
    course_id: Optional[int] = None,
    actual_time_spent_seconds: Optional[int] = None,
    cache: Optional[PlanViewCache] = None
) -> None:
    """
    Apply a status to every entry of a task, all-or-nothing.

    Args:
        entry_ids: Entries backing the task, at least one
        new_status: Target status, checked against the status the task displays
        user_id, course_id: When given, entries owned by someone else count as missing
        actual_time_spent_seconds: Optional time tracked by the client
        cache: View cache to invalidate (module-level cache by default)

    Raises:
        ValidationError: empty batch or disallowed transition, before any write
        StaleEntryError: an entry no longer exists, before any write
        UpdateConflictError: the write failed and was rolled back
    """
    entry_ids = list(dict.fromkeys(entry_ids))
    if not entry_ids:
        raise ValidationError("No plan entries to update")
    try:
        new_status = PlanEntryStatus(new_status)
    except ValueError as exc:
        raise ValidationError(f"Unknown plan entry status: {new_status!r}") from exc

    found = {
        entry.id: entry for entry in get_entries_by_ids(db, entry_ids)
        if (user_id is None or entry.user_id == user_id)
        and (course_id is None or entry.course_id == course_id)
    }
    missing = set(entry_ids) - set(found)
    if missing:
        logger.warning("Status update targets missing plan entries %s", sorted(missing))
        raise StaleEntryError(missing)

    # Entries of one task move together from the status the task displays
    check_transition(collapse_status(entry.status for entry in found.values()), new_status)
    if new_status == PlanEntryStatus.IN_PROGRESS:
        # Finished parts of a task stay finished when the rest is started
        to_write = [i for i in entry_ids if found[i].status != PlanEntryStatus.COMPLETED]
    else:
        to_write = entry_ids

    # Collect cache keys before commit expires the rows
    touched = {(entry.user_id, entry.course_id, entry.date.isoformat()) for entry in found.values()}

    try:
        for entry_id in to_write:
            apply_entry_status(db, found[entry_id], new_status, actual_time_spent_seconds)
        db.commit()
    except PlanError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Rolled back status update of entries %s: %s", entry_ids, exc)
        raise UpdateConflictError(f"Could not update plan entries {entry_ids}") from exc

    logger.info("Set %d plan entries to %s", len(to_write), new_status.value)

    cache = cache if cache is not None else plan_cache
    for owner_id, owner_course_id, day_key in touched:
        cache.invalidate(owner_id, owner_course_id, day_key)
        cache.invalidate(owner_id, owner_course_id, WEEKLY_KEY)


def update_entry_status(
    db: Session,
    entry_id: int,
    status: PlanEntryStatus,
    user_id: Optional[int] = None,
    actual_time_spent_seconds: Optional[int] = None,
    cache: Optional[PlanViewCache] = None
) -> None:
    """Single-entry form of set_task_status"""
    set_task_status(
        db, [entry_id], status,
        user_id=user_id,
        actual_time_spent_seconds=actual_time_spent_seconds,
        cache=cache
    )
