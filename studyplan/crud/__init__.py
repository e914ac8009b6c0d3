from studyplan.crud.plan_entry import (
    add_plan_entries,
    get_plan_entries,
    get_entries_for_date,
    get_entries_by_ids,
    apply_entry_status
)
from studyplan.crud.course_settings import (
    get_course_settings,
    upsert_course_settings,
    complete_orientation
)
from studyplan.crud.module import (
    create_module,
    get_course_modules,
    get_module_progress,
    get_learned_module_ids,
    mark_module_learned
)

__all__ = [
    "add_plan_entries",
    "get_plan_entries",
    "get_entries_for_date",
    "get_entries_by_ids",
    "apply_entry_status",
    "get_course_settings",
    "upsert_course_settings",
    "complete_orientation",
    "create_module",
    "get_course_modules",
    "get_module_progress",
    "get_learned_module_ids",
    "mark_module_learned",
]
