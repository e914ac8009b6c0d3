import warnings
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError, SADeprecationWarning

import studyplan.transitions as transitions
from studyplan.aggregator import collapse_status
from studyplan.cache import WEEKLY_KEY
from studyplan.crud import add_plan_entries, get_entries_by_ids
from studyplan.errors import StaleEntryError, UpdateConflictError, ValidationError
from studyplan.models import PlanEntryStatus, TaskType
from studyplan.schemas import PlanEntryCreate
from studyplan.transitions import check_transition, set_task_status, update_entry_status

DAY = date(2024, 1, 10)


@pytest.fixture
def entries(db):
    """Two entries backing one task plus an unrelated one"""
    return add_plan_entries(db, [
        PlanEntryCreate(user_id=1, course_id=1, date=DAY, task_type=TaskType.LEARN, module_id=1, description="Module 1"),
        PlanEntryCreate(user_id=1, course_id=1, date=DAY, task_type=TaskType.LEARN, module_id=1, description="Module 1", order=1),
        PlanEntryCreate(user_id=2, course_id=1, date=DAY, task_type=TaskType.REVIEW, description="Flashcards"),
    ])


def statuses(db, ids):
    db.expire_all()
    return [e.status for e in sorted(get_entries_by_ids(db, ids), key=lambda e: e.id)]


class TestCheckTransition:
    """User-allowed status transitions"""

    @pytest.mark.parametrize("current, new", [
        (PlanEntryStatus.PENDING, PlanEntryStatus.IN_PROGRESS),
        (PlanEntryStatus.IN_PROGRESS, PlanEntryStatus.COMPLETED),
        (PlanEntryStatus.PENDING, PlanEntryStatus.COMPLETED),
        (PlanEntryStatus.COMPLETED, PlanEntryStatus.PENDING),
        (PlanEntryStatus.IN_PROGRESS, PlanEntryStatus.PENDING),
        (PlanEntryStatus.PENDING, PlanEntryStatus.PENDING),
    ])
    def test_allowed(self, current, new):
        check_transition(current, new)

    def test_skipped_is_not_a_student_action(self):
        with pytest.raises(ValidationError):
            check_transition(PlanEntryStatus.PENDING, PlanEntryStatus.SKIPPED)

    def test_completed_cannot_go_back_to_in_progress(self):
        with pytest.raises(ValidationError):
            check_transition(PlanEntryStatus.COMPLETED, PlanEntryStatus.IN_PROGRESS)


class TestSetTaskStatus:
    """Batch status writes"""

    def test_completes_every_entry(self, db, entries, cache):
        ids = [entries[0].id, entries[1].id]

        set_task_status(db, ids, PlanEntryStatus.COMPLETED, cache=cache)

        assert statuses(db, ids) == [PlanEntryStatus.COMPLETED] * 2
        assert all(e.completed_at is not None for e in get_entries_by_ids(db, ids))
        assert statuses(db, [entries[2].id]) == [PlanEntryStatus.PENDING]

    def test_reset_clears_completion_and_is_idempotent(self, db, entries, cache):
        ids = [entries[0].id, entries[1].id]
        set_task_status(db, ids, PlanEntryStatus.COMPLETED, cache=cache)

        set_task_status(db, ids, PlanEntryStatus.PENDING, cache=cache)
        set_task_status(db, ids, PlanEntryStatus.PENDING, cache=cache)

        assert statuses(db, ids) == [PlanEntryStatus.PENDING] * 2
        assert all(e.completed_at is None for e in get_entries_by_ids(db, ids))

    def test_records_time_spent(self, db, entries, cache):
        update_entry_status(db, entries[0].id, PlanEntryStatus.COMPLETED, actual_time_spent_seconds=1500, cache=cache)

        db.expire_all()
        assert get_entries_by_ids(db, [entries[0].id])[0].actual_time_spent_seconds == 1500

    def test_empty_batch_rejected(self, db, cache):
        with pytest.raises(ValidationError):
            set_task_status(db, [], PlanEntryStatus.COMPLETED, cache=cache)

    def test_unknown_status_rejected(self, db, entries, cache):
        with pytest.raises(ValidationError):
            set_task_status(db, [entries[0].id], "DONE", cache=cache)

    def test_skipped_rejected_without_write(self, db, entries, cache):
        with pytest.raises(ValidationError):
            set_task_status(db, [entries[0].id], PlanEntryStatus.SKIPPED, cache=cache)

        assert statuses(db, [entries[0].id]) == [PlanEntryStatus.PENDING]

    def test_disallowed_transition_in_batch_writes_nothing(self, db, entries, cache):
        ids = [entries[0].id, entries[1].id]
        set_task_status(db, ids, PlanEntryStatus.COMPLETED, cache=cache)

        with pytest.raises(ValidationError):
            set_task_status(db, ids, PlanEntryStatus.IN_PROGRESS, cache=cache)

        assert statuses(db, ids) == [PlanEntryStatus.COMPLETED] * 2

    def test_starting_partly_finished_task(self, db, entries, cache):
        """A task shown as PENDING can be started even if one of its entries is done"""
        ids = [entries[0].id, entries[1].id]
        set_task_status(db, [ids[0]], PlanEntryStatus.COMPLETED, cache=cache)

        set_task_status(db, ids, PlanEntryStatus.IN_PROGRESS, cache=cache)

        assert statuses(db, ids) == [PlanEntryStatus.COMPLETED, PlanEntryStatus.IN_PROGRESS]
        assert collapse_status(statuses(db, ids)) == PlanEntryStatus.IN_PROGRESS

    def test_completing_task_with_skipped_entry(self, db, entries, cache):
        ids = [entries[0].id, entries[1].id]
        skipped = get_entries_by_ids(db, [ids[0]])[0]
        skipped.status = PlanEntryStatus.SKIPPED
        db.commit()

        set_task_status(db, ids, PlanEntryStatus.COMPLETED, cache=cache)

        assert statuses(db, ids) == [PlanEntryStatus.COMPLETED] * 2

    def test_write_raises_no_deprecation_warning(self, db, entries, cache):
        with warnings.catch_warnings():
            warnings.simplefilter("error", SADeprecationWarning)
            set_task_status(db, [entries[0].id, entries[1].id], PlanEntryStatus.COMPLETED, cache=cache)

    def test_missing_entry_raises_stale_error(self, db, entries, cache):
        with pytest.raises(StaleEntryError) as exc_info:
            set_task_status(db, [entries[0].id, 999], PlanEntryStatus.COMPLETED, cache=cache)

        assert exc_info.value.missing_ids == [999]
        assert statuses(db, [entries[0].id]) == [PlanEntryStatus.PENDING]

    def test_entries_of_other_students_count_as_missing(self, db, entries, cache):
        with pytest.raises(StaleEntryError):
            set_task_status(db, [entries[2].id], PlanEntryStatus.COMPLETED, user_id=1, course_id=1, cache=cache)

        assert statuses(db, [entries[2].id]) == [PlanEntryStatus.PENDING]

    def test_failed_write_rolls_back_whole_batch(self, db, entries, cache, monkeypatch):
        """A failure on the second entry leaves the first untouched"""
        ids = [entries[0].id, entries[1].id]
        real_apply = transitions.apply_entry_status

        def failing_apply(session, entry, status, actual_time_spent_seconds=None):
            if entry.id == ids[1]:
                raise OperationalError("UPDATE daily_plan_entries", {}, Exception("database is locked"))
            return real_apply(session, entry, status, actual_time_spent_seconds)

        monkeypatch.setattr(transitions, "apply_entry_status", failing_apply)

        with pytest.raises(UpdateConflictError):
            set_task_status(db, ids, PlanEntryStatus.COMPLETED, cache=cache)

        assert statuses(db, ids) == [PlanEntryStatus.PENDING] * 2

    def test_invalidates_cached_views(self, db, entries, cache):
        cache.set(1, 1, WEEKLY_KEY, "weekly view")
        cache.set(1, 1, DAY.isoformat(), "todays plan")
        cache.set(1, 1, "2024-01-11", "tomorrow")

        set_task_status(db, [entries[0].id], PlanEntryStatus.IN_PROGRESS, cache=cache)

        assert cache.get(1, 1, WEEKLY_KEY) is None
        assert cache.get(1, 1, DAY.isoformat()) is None
        assert cache.get(1, 1, "2024-01-11") == "tomorrow"

    def test_failed_write_keeps_cache(self, db, entries, cache):
        cache.set(1, 1, WEEKLY_KEY, "weekly view")

        with pytest.raises(StaleEntryError):
            set_task_status(db, [999], PlanEntryStatus.COMPLETED, cache=cache)

        assert cache.get(1, 1, WEEKLY_KEY) == "weekly view"
