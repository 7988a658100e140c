"""
JWT token utilities.

Tokens are issued by the identity service; this backend only verifies them.
``create_access_token`` exists for tooling and tests.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from tutorix.config.settings import settings
from tutorix.core.exceptions import AuthenticationError
from tutorix.core.logging import get_logger

logger = get_logger(__name__)


class JWTManager:
    """
    JWT token manager for bearer authentication.

    Args:
        secret_key: Secret used to sign and verify tokens
        algorithm: JWT algorithm (default: HS256)
        access_token_expire_minutes: Lifetime of issued access tokens
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_token_expire_minutes: int = 60,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_token_expire_minutes = access_token_expire_minutes

    def create_access_token(
        self,
        user_id: str,
        additional_claims: Optional[Dict[str, Any]] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.access_token_expire_minutes))

        payload = {
            "sub": str(user_id),
            "token_type": "access",
            "iat": now,
            "exp": expire,
            "jti": secrets.token_hex(16),
        }
        if additional_claims:
            payload.update(additional_claims)

        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify and decode a JWT token.

        Raises:
            AuthenticationError: If the token is expired, malformed or not an access token
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.info("Token verification failed: token expired")
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as exc:
            logger.info("Token verification failed", extra={"reason": str(exc)})
            raise AuthenticationError("Invalid authentication token")

        if payload.get("token_type") != "access" or not payload.get("sub"):
            raise AuthenticationError("Invalid authentication token")
        return payload

    def get_user_id(self, token: str) -> str:
        return str(self.verify_token(token)["sub"])


jwt_manager = JWTManager(
    secret_key=settings.JWT_SECRET_KEY,
    algorithm=settings.JWT_ALGORITHM,
    access_token_expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    return jwt_manager.create_access_token(user_id, expires_delta=expires_delta)


def decode_access_token(token: str) -> Dict[str, Any]:
    return jwt_manager.verify_token(token)
