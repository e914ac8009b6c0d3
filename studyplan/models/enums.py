from enum import Enum


class TaskType(str, Enum):
    """Pedagogical phase a plan entry belongs to"""
    LEARN = "LEARN"  # Phase 1
    REVIEW = "REVIEW"  # Phase 2
    PRACTICE = "PRACTICE"  # Phase 3


class PlanEntryStatus(str, Enum):
    """Progress of a single plan entry"""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"


class SessionBucket(str, Enum):
    """Named sections of today's plan"""
    SESSION_COURTE = "sessionCourte"
    SESSION_LONGUE = "sessionLongue"
    SESSION_COURTE_SUPPLEMENTAIRE = "sessionCourteSupplementaire"
    SESSION_LONGUE_SUPPLEMENTAIRE = "sessionLongueSupplementaire"


class SelfRating(str, Enum):
    NOVICE = "NOVICE"
    INTERMEDIATE = "INTERMEDIATE"
    RETAKER = "RETAKER"


class LearnStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    LEARNED = "LEARNED"
