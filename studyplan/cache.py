import logging
import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from studyplan.config import settings

logger = logging.getLogger(__name__)

WEEKLY_KEY = "weekly"


class PlanViewCache:
    """Short-lived cache of aggregated plan views, keyed by (user_id, course_id, key).

    ``key`` is an ISO date for today's plan or WEEKLY_KEY for the weekly view.
    Status writes invalidate the affected keys so the next read recomputes.
    """

    def __init__(self, ttl_seconds: Optional[int] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = settings.plan_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[Hashable, Hashable, Hashable], Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, user_id, course_id, key):
        with self._lock:
            hit = self._entries.get((user_id, course_id, key))
            if hit is None:
                return None
            stored_at, value = hit
            if self._clock() - stored_at > self.ttl_seconds:
                del self._entries[(user_id, course_id, key)]
                return None
            return value

    def set(self, user_id, course_id, key, value) -> None:
        with self._lock:
            self._entries[(user_id, course_id, key)] = (self._clock(), value)

    def get_or_compute(self, user_id, course_id, key, compute: Callable[[], Any]):
        """Return the cached view or compute and store it"""
        value = self.get(user_id, course_id, key)
        if value is None:
            value = compute()
            self.set(user_id, course_id, key, value)
        return value

    def invalidate(self, user_id, course_id, key=None) -> None:
        """Drop one cached view, or every view of the student's course when key is None"""
        with self._lock:
            if key is None:
                stale = [k for k in self._entries if k[:2] == (user_id, course_id)]
            else:
                stale = [k for k in [(user_id, course_id, key)] if k in self._entries]
            for k in stale:
                del self._entries[k]
        if stale:
            logger.debug("Invalidated %d cached plan views for user %s course %s", len(stale), user_id, course_id)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


plan_cache = PlanViewCache()
