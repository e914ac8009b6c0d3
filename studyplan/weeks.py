import math
from datetime import date, datetime, timedelta
from typing import List, Tuple, Union

BLOCKS_PER_HOUR = 2  # a study block is 25 minutes plus a short break

class PlanCalendar:
    """
    Week arithmetic shared by the weekly view, today's plan and the behind-schedule check.
    Week 1 starts on the Monday of the week the plan was created; the last week ends on exam day.
    """

    @staticmethod
    def calculate_week1_start_date(plan_created_at: Union[date, datetime]) -> date:
        """Monday of the week containing the plan creation date"""
        if isinstance(plan_created_at, datetime):
            plan_created_at = plan_created_at.date()
        return plan_created_at - timedelta(days=plan_created_at.weekday())

    @staticmethod
    def week_windows(week1_start_date: date, exam_date: date) -> List[Tuple[date, date]]:
        """
        Split [week1_start_date, exam_date] into consecutive 7-day windows.

        The final window is clipped to exam_date, so it may be shorter than a week.

        Returns:
            List of (start, end) pairs, both inclusive
        """
        if exam_date < week1_start_date:
            return []

        week_count = (exam_date - week1_start_date).days // 7 + 1
        windows = []
        for i in range(week_count):
            start = week1_start_date + timedelta(days=7 * i)
            end = min(start + timedelta(days=6), exam_date)
            windows.append((start, end))
        return windows

    @staticmethod
    def current_week_number(week1_start_date: date, today: date = None) -> int:
        """1-based week number of today relative to week 1 (0 or less before the plan starts)"""
        today = today if today else date.today()
        return (today - week1_start_date).days // 7 + 1

    @staticmethod
    def get_weeks_until_exam(exam_date: date, plan_created_at: Union[date, datetime]) -> int:
        """Number of (possibly partial) weeks between plan creation and the exam, at least 1"""
        if isinstance(plan_created_at, datetime):
            plan_created_at = plan_created_at.date()
        days = (exam_date - plan_created_at).days
        return max(1, math.ceil(days / 7))

    @staticmethod
    def get_blocks_per_week(study_hours_per_week: int) -> int:
        """Study blocks available in a week"""
        return study_hours_per_week * BLOCKS_PER_HOUR
