"""Optimistic status updates for a displayed weekly plan.

The displayed weeks change synchronously when the student acts
(``apply_optimistic``); the authoritative write happens afterwards through a
committer, and a failed write is undone with ``apply_optimistic(weeks, inverse(change))``.
"""

import itertools
import logging
import threading
from typing import Callable, Dict, Iterable, List, Tuple

from pydantic import BaseModel

from studyplan.errors import UpdateConflictError, ValidationError
from studyplan.models.enums import PlanEntryStatus
from studyplan.schemas import WeekSummary, WeekTask
from studyplan.transitions import check_transition

logger = logging.getLogger(__name__)

Committer = Callable[[List[int], PlanEntryStatus], None]


class StatusChange(BaseModel):
    """A status change of one displayed task"""
    week_number: int
    task_identity: Tuple
    previous_status: PlanEntryStatus
    new_status: PlanEntryStatus
    entry_ids: Tuple[int, ...]
    sequence: int = 0

    class Config:
        frozen = True

    @property
    def key(self) -> tuple:
        return (self.week_number,) + tuple(self.task_identity)


def inverse(change: StatusChange) -> StatusChange:
    """The change that undoes ``change``"""
    return change.model_copy(update={
        "previous_status": change.new_status,
        "new_status": change.previous_status,
    })


def apply_optimistic(weeks: Iterable[WeekSummary], change: StatusChange) -> List[WeekSummary]:
    """Return new weeks with the task's status replaced and completion counts recomputed"""
    updated = []
    for week in weeks:
        if week.week_number != change.week_number:
            updated.append(week)
            continue
        tasks = [
            task.model_copy(update={"status": change.new_status})
            if task.identity == tuple(change.task_identity) else task
            for task in week.tasks
        ]
        updated.append(week.model_copy(update={
            "tasks": tasks,
            "completed_tasks": sum(1 for t in tasks if t.status == PlanEntryStatus.COMPLETED),
        }))
    return updated


class OptimisticPlanSession:
    """
    Displayed weekly plan plus the writes still in flight.

    Writes for different tasks are independent; writes for the same task are
    serialized and the most recent request wins.
    """

    def __init__(self, weeks: Iterable[WeekSummary], committer: Committer):
        self.weeks = list(weeks)
        self._committer = committer
        self._sequence = itertools.count(1)
        self._state_lock = threading.Lock()
        self._task_locks: Dict[tuple, threading.Lock] = {}
        self._latest: Dict[tuple, int] = {}
        self._committed: Dict[tuple, int] = {}
        self._confirmed: Dict[tuple, PlanEntryStatus] = {}

    def find_task(self, week_number: int, task_identity: tuple) -> WeekTask:
        for week in self.weeks:
            if week.week_number != week_number:
                continue
            for task in week.tasks:
                if task.identity == tuple(task_identity):
                    return task
        raise ValidationError(f"No task {task_identity} in week {week_number}")

    def toggle(self, week_number: int, task_identity: tuple, new_status: PlanEntryStatus) -> StatusChange:
        """Apply a status change to the displayed plan right away and return it for commit()"""
        with self._state_lock:
            task = self.find_task(week_number, task_identity)
            if not task.entry_ids:
                raise ValidationError(f"Task {task_identity} has no plan entries to update")
            check_transition(task.status, new_status)

            change = StatusChange(
                week_number=week_number,
                task_identity=task.identity,
                previous_status=task.status,
                new_status=new_status,
                entry_ids=tuple(task.entry_ids),
                sequence=next(self._sequence),
            )
            # Status as last loaded or written, before any change still in flight
            self._confirmed.setdefault(change.key, task.status)
            self.weeks = apply_optimistic(self.weeks, change)
            self._latest[change.key] = change.sequence
            self._task_locks.setdefault(change.key, threading.Lock())
        return change

    def commit(self, change: StatusChange) -> None:
        """
        Write a change through the committer.

        Raises:
            UpdateConflictError: a newer change of the same task was already written
            Exception: whatever the committer raised; the displayed status goes back to
                the last written one unless a newer change of the task owns it
        """
        with self._task_locks[change.key]:
            if self._committed.get(change.key, 0) > change.sequence:
                raise UpdateConflictError(
                    f"Change {change.sequence} of task {change.task_identity} was superseded"
                )
            try:
                self._committer(list(change.entry_ids), change.new_status)
            except Exception:
                with self._state_lock:
                    confirmed = self._confirmed[change.key]
                    if self._latest.get(change.key) == change.sequence:
                        revert = inverse(change).model_copy(update={"new_status": confirmed})
                        self.weeks = apply_optimistic(self.weeks, revert)
                        logger.warning(
                            "Reverted task %s in week %d to %s after failed write",
                            change.task_identity, change.week_number, confirmed.value
                        )
                raise
            with self._state_lock:
                self._committed[change.key] = change.sequence
                self._confirmed[change.key] = change.new_status

    def toggle_and_commit(self, week_number: int, task_identity: tuple, new_status: PlanEntryStatus) -> StatusChange:
        change = self.toggle(week_number, task_identity, new_status)
        self.commit(change)
        return change
