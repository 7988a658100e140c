import pytest

from tutorix.core.cache import TTLCache
from tutorix.core.exceptions import QuotaExceededError, RateLimitExceededError
from tutorix.core.rate_limiting import QuotaDecision, QuotaGuard, RateLimiter
from tutorix.services.fee import FEE_STRUCTURES, PlanQuotaChecker

from tests.support import make_structure


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(10, clock=clock)


class TestTTLCache:
    def test_entries_expire_after_ttl(self, cache, clock):
        cache.set("a", 1)
        assert cache.get("a") == 1

        clock.advance(10)

        assert cache.get("a") is None
        assert "a" not in cache

    def test_per_entry_ttl(self, cache, clock):
        cache.set("short", 1, ttl=2)
        cache.set("long", 2)
        clock.advance(5)

        assert cache.get("short") is None
        assert cache.get("long") == 2

    def test_invalidate_prefix_only_drops_matching_keys(self, cache):
        cache.set("quota:c1:a", 1)
        cache.set("quota:c1:b", 2)
        cache.set("quota:c2:a", 3)

        assert cache.invalidate_prefix("quota:c1:") == 2
        assert len(cache) == 1

    def test_incr_keeps_fixed_window(self, cache, clock):
        assert cache.incr("k", ttl=5)[0] == 1
        clock.advance(3)
        count, expires_at = cache.incr("k", ttl=5)

        assert count == 2
        assert expires_at == 1005.0

        clock.advance(2)
        assert cache.incr("k", ttl=5)[0] == 1

    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError):
            TTLCache(0)


class TestRateLimiter:
    def test_blocks_after_limit_and_reports_retry_after(self, cache, clock):
        limiter = RateLimiter(cache, limit=2, window_seconds=60, key_prefix="create_order")
        limiter.hit("u1")
        limiter.hit("u1")
        clock.advance(20)

        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.hit("u1")

        assert exc_info.value.retry_after == 40
        assert exc_info.value.status_code == 429

    def test_identities_are_counted_separately(self, cache):
        limiter = RateLimiter(cache, limit=1, window_seconds=60, key_prefix="verify")
        limiter.hit("u1")
        limiter.hit("u2")

    def test_window_resets(self, cache, clock):
        limiter = RateLimiter(cache, limit=1, window_seconds=60, key_prefix="verify")
        limiter.hit("u1")
        clock.advance(60)
        assert limiter.hit("u1") == 1


class TestQuotaGuard:
    def test_decision_cached_until_invalidated(self, cache):
        calls = []

        def checker(coaching_id, dimension):
            calls.append(dimension)
            return QuotaDecision(True)

        guard = QuotaGuard(cache, checker)
        guard.check("c1", FEE_STRUCTURES)
        guard.check("c1", FEE_STRUCTURES)
        assert calls == [FEE_STRUCTURES]

        guard.invalidate("c1")
        guard.check("c1", FEE_STRUCTURES)
        assert len(calls) == 2

    def test_denied_decision_raises(self, cache):
        guard = QuotaGuard(cache, lambda c, d: QuotaDecision(False, "Upgrade your plan"))

        with pytest.raises(QuotaExceededError) as exc_info:
            guard.check("c1", FEE_STRUCTURES)

        assert exc_info.value.message == "Upgrade your plan"
        assert exc_info.value.status_code == 402

    def test_failing_checker_allows_request(self, cache):
        def checker(coaching_id, dimension):
            raise RuntimeError("plan service down")

        QuotaGuard(cache, checker).check("c1", FEE_STRUCTURES)

    def test_plan_checker_counts_structures(self, db, coaching):
        checker = PlanQuotaChecker(db, max_fee_structures=1)
        assert checker(coaching.id, FEE_STRUCTURES).allowed

        make_structure(db, coaching)

        assert not checker(coaching.id, FEE_STRUCTURES).allowed
        assert checker(coaching.id, "students").allowed
