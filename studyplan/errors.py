"""Error taxonomy for plan reads and status writes.

Every failure is scoped to a single plan load or a single status update;
nothing here is fatal to the process.
"""

from typing import Iterable


class PlanError(Exception):
    """Base class for study plan errors"""


class StaleEntryError(PlanError):
    """A targeted plan entry no longer exists (plan regenerated underneath the caller).

    The caller must reload the plan before retrying.
    """

    def __init__(self, missing_ids: Iterable[int]):
        self.missing_ids = sorted(missing_ids)
        super().__init__(f"Plan entries no longer exist: {self.missing_ids}")


class UpdateConflictError(PlanError):
    """A status write raced another write or failed and was rolled back"""


class ValidationError(PlanError, ValueError):
    """Rejected input: invalid transition, empty batch, bad block count or date range"""


class AggregationIntegrityWarning(UserWarning):
    """An entry was dropped from aggregation because its date is outside the plan range"""
