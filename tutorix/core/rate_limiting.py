"""
Request throttling and plan quotas.

Both guards keep their state in a ``TTLCache`` passed in by the caller.
"""

import math
from typing import Callable, NamedTuple, Optional

from tutorix.core.cache import TTLCache
from tutorix.core.exceptions import QuotaExceededError, RateLimitExceededError
from tutorix.core.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Fixed-window limiter keyed by caller identity.

    Args:
        cache: Backing cache holding the window counters
        limit: Maximum hits allowed per window
        window_seconds: Window length
        key_prefix: Namespace for this limiter's keys
    """

    def __init__(self, cache: TTLCache, limit: int, window_seconds: int, key_prefix: str):
        self.cache = cache
        self.limit = limit
        self.window_seconds = window_seconds
        self.key_prefix = key_prefix

    def _key(self, identity: str) -> str:
        return f"rl:{self.key_prefix}:{identity}"

    def hit(self, identity: str) -> int:
        """Count a request; raise once the window allowance is used up."""
        count, expires_at = self.cache.incr(self._key(identity), ttl=self.window_seconds)
        if count > self.limit:
            retry_after = max(1, math.ceil(expires_at - self.cache.now()))
            logger.warning("Rate limit exceeded", extra={
                "limiter": self.key_prefix,
                "identity": identity,
                "retry_after": retry_after,
            })
            raise RateLimitExceededError(retry_after)
        return count

    def reset(self, identity: str) -> None:
        self.cache.delete(self._key(identity))


class QuotaDecision(NamedTuple):
    allowed: bool
    message: Optional[str] = None


QuotaChecker = Callable[[str, str], QuotaDecision]


class QuotaGuard:
    """Caches quota decisions per ``coaching_id:dimension``.

    The checker is consulted at most once per cache TTL. A failing checker
    does not block the request.
    """

    def __init__(self, cache: TTLCache, checker: QuotaChecker):
        self.cache = cache
        self.checker = checker

    @staticmethod
    def _key(coaching_id: str, dimension: str) -> str:
        return f"quota:{coaching_id}:{dimension}"

    def check(self, coaching_id: str, dimension: str) -> None:
        key = self._key(coaching_id, dimension)
        decision = self.cache.get(key)
        if decision is None:
            try:
                decision = self.checker(coaching_id, dimension)
            except Exception as exc:
                logger.error("Quota check failed, allowing request", extra={
                    "coaching_id": coaching_id,
                    "dimension": dimension,
                    "error": str(exc),
                })
                return
            self.cache.set(key, decision)

        if not decision.allowed:
            raise QuotaExceededError(dimension, decision.message)

    def invalidate(self, coaching_id: str) -> int:
        """Forget cached decisions for every dimension of a coaching."""
        return self.cache.invalidate_prefix(f"quota:{coaching_id}:")


__all__ = ["RateLimiter", "QuotaGuard", "QuotaDecision", "QuotaChecker"]
