"""
FastAPI Dependencies

Authentication, database sessions, the gateway adapter and per-user
throttling, wired for use with ``Depends``.
"""

from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from tutorix.config.settings import settings
from tutorix.core.cache import TTLCache
from tutorix.core.exceptions import AuthenticationError
from tutorix.core.logging import get_logger, user_id as user_id_ctx
from tutorix.core.rate_limiting import QuotaGuard, RateLimiter
from tutorix.core.security import decode_access_token
from tutorix.db.session import get_db
from tutorix.services.fee import PlanQuotaChecker
from tutorix.services.gateway import RazorpayGateway, get_gateway

logger = get_logger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """Authenticated user id taken from the bearer token's ``sub`` claim."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")
    payload = decode_access_token(credentials.credentials)
    uid = str(payload["sub"])
    user_id_ctx.set(uid)
    return uid


def get_payment_gateway() -> RazorpayGateway:
    return get_gateway()


def get_app_cache(request: Request) -> TTLCache:
    return request.app.state.cache


def rate_limited(scope: str, limit: Optional[int] = None) -> Callable[..., str]:
    """
    Build a dependency that counts one hit per request for the caller.

    Example:
        >>> @router.post("/create-order")
        ... def create_order(user_id: str = Depends(rate_limited("create_order"))):
        ...     ...
    """
    def dependency(
        cache: TTLCache = Depends(get_app_cache),
        current_user_id: str = Depends(get_current_user_id),
    ) -> str:
        limiter = RateLimiter(
            cache,
            limit=limit or settings.PAYMENT_RATE_LIMIT,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
            key_prefix=scope,
        )
        limiter.hit(current_user_id)
        return current_user_id

    return dependency


def get_quota_guard(
    cache: TTLCache = Depends(get_app_cache),
    db: Session = Depends(get_db),
) -> QuotaGuard:
    return QuotaGuard(cache, PlanQuotaChecker(db, settings.MAX_FEE_STRUCTURES_PER_COACHING))


__all__ = [
    "get_db",
    "get_current_user_id",
    "get_payment_gateway",
    "get_app_cache",
    "get_quota_guard",
    "rate_limited",
]
