from studyplan.models.enums import TaskType, PlanEntryStatus, SessionBucket, SelfRating, LearnStatus
from studyplan.models.plan_entry import PlanEntry
from studyplan.models.course_settings import UserCourseSettings
from studyplan.models.module import CourseModule, ModuleProgress

__all__ = [
    "TaskType",
    "PlanEntryStatus",
    "SessionBucket",
    "SelfRating",
    "LearnStatus",
    "PlanEntry",
    "UserCourseSettings",
    "CourseModule",
    "ModuleProgress"
]
