from studyplan.cache import PlanViewCache, WEEKLY_KEY


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestPlanViewCache:
    """Cached plan views"""

    def test_get_or_compute_computes_once(self):
        cache = PlanViewCache(ttl_seconds=300)
        calls = []

        def compute():
            calls.append(1)
            return "view"

        assert cache.get_or_compute(1, 1, WEEKLY_KEY, compute) == "view"
        assert cache.get_or_compute(1, 1, WEEKLY_KEY, compute) == "view"
        assert len(calls) == 1

    def test_entries_expire(self):
        clock = FakeClock()
        cache = PlanViewCache(ttl_seconds=300, clock=clock)
        cache.set(1, 1, WEEKLY_KEY, "view")

        clock.now = 300
        assert cache.get(1, 1, WEEKLY_KEY) == "view"
        clock.now = 301
        assert cache.get(1, 1, WEEKLY_KEY) is None

    def test_invalidate_one_key(self):
        cache = PlanViewCache(ttl_seconds=300)
        cache.set(1, 1, WEEKLY_KEY, "weekly")
        cache.set(1, 1, "2024-01-10", "today")

        cache.invalidate(1, 1, WEEKLY_KEY)

        assert cache.get(1, 1, WEEKLY_KEY) is None
        assert cache.get(1, 1, "2024-01-10") == "today"

    def test_invalidate_course(self):
        cache = PlanViewCache(ttl_seconds=300)
        cache.set(1, 1, WEEKLY_KEY, "weekly")
        cache.set(1, 1, "2024-01-10", "today")
        cache.set(1, 2, WEEKLY_KEY, "other course")
        cache.set(2, 1, WEEKLY_KEY, "other student")

        cache.invalidate(1, 1)

        assert cache.get(1, 1, WEEKLY_KEY) is None
        assert cache.get(1, 1, "2024-01-10") is None
        assert cache.get(1, 2, WEEKLY_KEY) == "other course"
        assert cache.get(2, 1, WEEKLY_KEY) == "other student"
