from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional
from datetime import date, datetime
from studyplan.models.enums import TaskType, PlanEntryStatus, SessionBucket, SelfRating

class PlanEntryCreate(BaseModel):
    """Schema for a plan entry handed over by the plan generator"""
    user_id: int
    course_id: int
    date: date
    task_type: TaskType
    module_id: Optional[int] = None
    description: str = ""
    estimated_blocks: int = Field(default=1, ge=1)
    session_bucket: Optional[SessionBucket] = None
    order: int = 0

    @model_validator(mode="after")
    def learn_entries_need_module(self):
        if self.task_type == TaskType.LEARN and self.module_id is None:
            raise ValueError("LEARN entries must reference a module")
        return self

class PlanEntrySchema(BaseModel):
    """Read view of a stored plan entry"""
    id: int
    date: date
    task_type: TaskType
    module_id: Optional[int] = None
    description: str = ""
    estimated_blocks: int = 1
    status: PlanEntryStatus = PlanEntryStatus.PENDING
    session_bucket: Optional[SessionBucket] = None
    order: int = 0

    class Config:
        from_attributes = True

class ModuleRef(BaseModel):
    """Module reference shown next to Phase 1 work"""
    id: int
    title: str
    order: int = 0

    class Config:
        from_attributes = True

class WeekTask(BaseModel):
    """One displayed row of a week: plan entries sharing a task identity"""
    type: TaskType
    module_id: Optional[int] = None
    module_title: Optional[str] = None
    description: str
    status: PlanEntryStatus
    entry_ids: List[int]
    estimated_blocks: int

    @property
    def identity(self) -> tuple:
        return (self.type, self.module_id, self.description)

class WeekSummary(BaseModel):
    """Aggregated view of one plan week"""
    week_number: int
    week_start_date: date
    week_end_date: date
    is_exam_week: bool = False
    tasks: List[WeekTask] = Field(default_factory=list)
    total_tasks: int = 0
    completed_tasks: int = 0

    @property
    def completion_percentage(self) -> int:
        if self.total_tasks == 0:
            return 0
        return round(self.completed_tasks / self.total_tasks * 100)

class TodaysPlanSections(BaseModel):
    """Today's entries split into the four session buckets"""
    session_courte: List[PlanEntrySchema] = Field(default_factory=list)
    session_longue: List[PlanEntrySchema] = Field(default_factory=list)
    session_courte_supplementaire: List[PlanEntrySchema] = Field(default_factory=list)
    session_longue_supplementaire: List[PlanEntrySchema] = Field(default_factory=list)

    def bucket(self, bucket: SessionBucket) -> List[PlanEntrySchema]:
        """Return the list backing a session bucket"""
        return {
            SessionBucket.SESSION_COURTE: self.session_courte,
            SessionBucket.SESSION_LONGUE: self.session_longue,
            SessionBucket.SESSION_COURTE_SUPPLEMENTAIRE: self.session_courte_supplementaire,
            SessionBucket.SESSION_LONGUE_SUPPLEMENTAIRE: self.session_longue_supplementaire,
        }[bucket]

    def all_entries(self) -> List[PlanEntrySchema]:
        return (
            self.session_courte
            + self.session_longue
            + self.session_courte_supplementaire
            + self.session_longue_supplementaire
        )

class TodaysPlan(BaseModel):
    """Schema for the plan of the day"""
    sections: TodaysPlanSections = Field(default_factory=TodaysPlanSections)
    total_blocks: int = 0
    phase1_module: Optional[ModuleRef] = None

class PlanView(BaseModel):
    """Weekly plan payload from plan start to exam"""
    weeks: List[WeekSummary]
    week1_start_date: date
    exam_date: date

class BehindScheduleResult(BaseModel):
    """Outcome of the behind-schedule check"""
    is_behind: bool = False
    warning: Optional[str] = None
    suggestions: List[str] = Field(default_factory=list)
    unlearned_modules: int = 0

class CourseSettingsCreate(BaseModel):
    """Schema for creating or updating a student's course settings"""
    user_id: int
    course_id: int
    exam_date: date
    study_hours_per_week: int = Field(ge=1, le=40)
    preferred_study_days: List[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5])  # Mon-Fri
    self_rating: SelfRating = SelfRating.NOVICE
    recommended_hours_min: Optional[int] = None
    recommended_hours_max: Optional[int] = None

    @field_validator("preferred_study_days")
    @classmethod
    def check_study_days(cls, days: List[int]) -> List[int]:
        if not days:
            raise ValueError("Select at least one study day")
        if any(day < 1 or day > 7 for day in days):
            raise ValueError("Study days are ISO weekdays (1 = Monday, 7 = Sunday)")
        return sorted(set(days))

class CourseSettingsResponse(CourseSettingsCreate):
    """Schema for stored course settings"""
    id: int
    plan_created_at: datetime
    orientation_completed: bool

    class Config:
        from_attributes = True
