from datetime import date, timedelta

from studyplan.aggregator import build_weekly_view
from studyplan.detector import check_behind_schedule, check_study_time, count_unlearned_modules
from studyplan.models import PlanEntryStatus, TaskType

START = date(2024, 1, 1)
EXAM = date(2024, 2, 26)


def learn_entries(make_entry, first_day, count, completed):
    return [
        make_entry(
            first_day + timedelta(days=i),
            module_id=i + 1,
            description=f"Module {i + 1}",
            status=PlanEntryStatus.COMPLETED if i < completed else PlanEntryStatus.PENDING,
        )
        for i in range(count)
    ]


class TestBehindSchedule:
    """Behind-schedule detection"""

    def test_unlearned_past_modules(self, make_entry):
        """Seven of ten past modules learned leaves three behind"""
        weeks = build_weekly_view(learn_entries(make_entry, START, 10, 7), START, EXAM)

        result = check_behind_schedule(weeks, date(2024, 1, 20), EXAM)

        assert result.is_behind
        assert result.unlearned_modules == 3
        assert "3 module(s)" in result.warning
        assert "37 day(s)" in result.warning
        assert result.suggestions == [
            "Mark 3 module(s) as learned if you have already completed them",
            "Increase your study hours per week",
            "Change the scheduled exam date if necessary",
        ]

    def test_on_track(self, make_entry):
        weeks = build_weekly_view(learn_entries(make_entry, START, 10, 10), START, EXAM)

        result = check_behind_schedule(weeks, date(2024, 1, 20), EXAM)

        assert not result.is_behind
        assert result.warning is None
        assert result.suggestions == []

    def test_current_week_does_not_count(self, make_entry):
        """Unfinished work of a week that is not over yet is not late"""
        weeks = build_weekly_view(learn_entries(make_entry, date(2024, 1, 15), 3, 0), START, EXAM)

        assert not check_behind_schedule(weeks, date(2024, 1, 17), EXAM).is_behind

    def test_review_and_practice_are_ignored(self, make_entry):
        entries = [
            make_entry(date(2024, 1, 2), task_type=TaskType.REVIEW, module_id=None, description="Flashcards"),
            make_entry(date(2024, 1, 3), task_type=TaskType.PRACTICE, module_id=None, description="Mock exam"),
        ]
        weeks = build_weekly_view(entries, START, EXAM)

        assert count_unlearned_modules(weeks, date(2024, 1, 20)) == 0

    def test_module_split_across_entries_counts_once(self, make_entry):
        entries = [
            make_entry(date(2024, 1, 2), module_id=4, description="Module 4"),
            make_entry(date(2024, 1, 9), module_id=4, description="Module 4"),
        ]
        weeks = build_weekly_view(entries, START, EXAM)

        assert count_unlearned_modules(weeks, date(2024, 1, 20)) == 1

    def test_late_tolerance(self, make_entry):
        """Week 2 ends on 2024-01-14; three days of grace keep it out of the count"""
        weeks = build_weekly_view(learn_entries(make_entry, date(2024, 1, 8), 2, 0), START, EXAM)
        today = date(2024, 1, 16)

        assert check_behind_schedule(weeks, today, EXAM).is_behind
        assert not check_behind_schedule(weeks, today, EXAM, late_tolerance_days=3).is_behind

    def test_max_unlearned_modules(self, make_entry):
        weeks = build_weekly_view(learn_entries(make_entry, START, 5, 3), START, EXAM)
        today = date(2024, 1, 20)

        result = check_behind_schedule(weeks, today, EXAM, max_unlearned_modules=2)

        assert not result.is_behind
        assert result.unlearned_modules == 2
        assert check_behind_schedule(weeks, today, EXAM, max_unlearned_modules=1).is_behind

    def test_read_only(self, make_entry):
        weeks = build_weekly_view(learn_entries(make_entry, START, 4, 1), START, EXAM)
        before = [w.model_dump() for w in weeks]

        check_behind_schedule(weeks, date(2024, 1, 20), EXAM)

        assert [w.model_dump() for w in weeks] == before


class TestStudyTime:
    """Study time feasibility"""

    def test_shortfall(self, fake_settings):
        """Three weeks at 8 hours give 48 blocks; 60 are needed"""
        result = check_study_time(fake_settings(), minimum_study_blocks=60)

        assert result.is_behind
        assert "Minimum required: 60 blocks, available: 48 blocks" in result.warning
        assert result.suggestions[0] == "Increase your study time by 6 hours per week"

    def test_enough_time(self, fake_settings):
        assert check_study_time(fake_settings(), minimum_study_blocks=48) is None

    def test_shortfall_takes_precedence(self, make_entry, fake_settings):
        weeks = build_weekly_view([], START, EXAM)

        result = check_behind_schedule(
            weeks, date(2024, 1, 5), EXAM,
            course_settings=fake_settings(), minimum_study_blocks=100,
        )

        assert result.is_behind
        assert result.warning.startswith("Insufficient study time")

    def test_shortfall_reports_unlearned_modules(self, make_entry, fake_settings):
        weeks = build_weekly_view(learn_entries(make_entry, START, 10, 7), START, EXAM)

        result = check_behind_schedule(
            weeks, date(2024, 1, 20), EXAM,
            course_settings=fake_settings(), minimum_study_blocks=100,
        )

        assert result.warning.startswith("Insufficient study time")
        assert result.unlearned_modules == 3
