"""
Custom Exceptions for the Tutorix fee payments backend

This module defines the exception taxonomy raised by services and translated
into HTTP responses by ``register_exception_handlers``.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class ErrorCode(str, Enum):
    """Standard error codes for the application"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    CONFLICT = "CONFLICT"

    # Authentication & Authorization
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    AUTHORIZATION_FAILED = "AUTHORIZATION_FAILED"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Payment errors
    INVALID_STATE = "INVALID_STATE"
    SIGNATURE_INVALID = "SIGNATURE_INVALID"
    REFUND_EXCEEDS_PAYMENT = "REFUND_EXCEEDS_PAYMENT"

    # External service errors
    PAYMENT_GATEWAY_ERROR = "PAYMENT_GATEWAY_ERROR"

    # Throttling
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"


class BaseAppException(Exception):
    """
    Base exception class for all application exceptions.

    Provides consistent error handling across the application with
    structured error information.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format"""
        return {
            "error": {
                "message": self.message,
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


# ========================================
# Request / Access Exceptions
# ========================================

class NotFoundError(BaseAppException):
    """Exception raised when a requested resource is not found"""

    def __init__(self, resource_type: str = "Resource", identifier: Optional[str] = None, message: Optional[str] = None):
        if not message:
            message = f"{resource_type} not found"
            if identifier:
                message += f" (ID: {identifier})"
        details = {"resource_type": resource_type, "resource_id": identifier}
        super().__init__(message, ErrorCode.RESOURCE_NOT_FOUND, details, 404)


class AuthenticationError(BaseAppException):
    """Exception raised when the bearer token is missing or invalid"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, ErrorCode.AUTHENTICATION_FAILED, None, 401)


class ForbiddenError(BaseAppException):
    """Exception raised when the caller lacks access to a resource"""

    def __init__(self, message: str = "Access denied", required_roles: Optional[List[str]] = None):
        details = {"required_roles": required_roles} if required_roles else {}
        super().__init__(message, ErrorCode.AUTHORIZATION_FAILED, details, 403)


class ValidationError(BaseAppException):
    """Exception raised when business-level validation fails"""

    def __init__(self, message: str = "Validation failed", field_errors: Optional[Dict[str, List[str]]] = None):
        details = {"field_errors": field_errors} if field_errors else {}
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details, 400)


class ConflictError(BaseAppException):
    """Exception raised when an operation conflicts with existing data"""

    def __init__(self, message: str = "Resource conflict", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.CONFLICT, details, 409)


# ========================================
# Payment Exceptions
# ========================================

class InvalidStateError(BaseAppException):
    """Exception raised when an entity is not in a state that allows the operation"""

    def __init__(self, message: str, current_state: Optional[str] = None):
        details = {"current_state": current_state} if current_state else {}
        super().__init__(message, ErrorCode.INVALID_STATE, details, 409)


class SignatureInvalidError(BaseAppException):
    """Exception raised when a gateway signature does not match"""

    def __init__(self, message: str = "Payment signature verification failed"):
        super().__init__(message, ErrorCode.SIGNATURE_INVALID, None, 400)


class RefundExceedsPaymentError(BaseAppException):
    """Exception raised when a refund amount is outside the refundable range"""

    def __init__(self, message: str, refundable: Optional[str] = None):
        details = {"refundable_amount": refundable} if refundable is not None else {}
        super().__init__(message, ErrorCode.REFUND_EXCEEDS_PAYMENT, details, 400)


class GatewayError(BaseAppException):
    """Exception raised when the payment gateway call fails"""

    def __init__(self, message: str = "Payment gateway error, please try again", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.PAYMENT_GATEWAY_ERROR, details, 502)


# ========================================
# Throttling Exceptions
# ========================================

class RateLimitExceededError(BaseAppException):
    """Exception raised when a caller exceeds its request allowance"""

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(
            "Too many requests. Please try again later.",
            ErrorCode.RATE_LIMIT_EXCEEDED,
            {"retry_after_seconds": retry_after},
            429,
        )


class QuotaExceededError(BaseAppException):
    """Exception raised when a coaching has used up a plan dimension"""

    def __init__(self, dimension: str, message: Optional[str] = None):
        super().__init__(
            message or f"Quota exceeded for {dimension}",
            ErrorCode.QUOTA_EXCEEDED,
            {"dimension": dimension},
            402,
        )


# ========================================
# Handlers
# ========================================

def register_exception_handlers(app: FastAPI) -> None:
    """Translate application exceptions into the JSON error envelope."""
    from tutorix.core.logging import get_logger

    logger = get_logger(__name__)

    @app.exception_handler(BaseAppException)
    async def app_exception_handler(request: Request, exc: BaseAppException):
        headers = None
        if isinstance(exc, RateLimitExceededError):
            headers = {"Retry-After": str(exc.retry_after)}
        if exc.status_code >= 500:
            logger.error("Request failed", extra={
                "path": request.url.path,
                "error_code": exc.error_code.value,
                "error": exc.message,
            })
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        field_errors: Dict[str, List[str]] = {}
        for err in exc.errors():
            field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
            field_errors.setdefault(field or "body", []).append(err.get("msg", "invalid"))
        body = {
            "error": {
                "message": "Request validation failed",
                "code": ErrorCode.VALIDATION_ERROR.value,
                "details": {"field_errors": field_errors},
                "type": "RequestValidationError",
            }
        }
        return JSONResponse(status_code=422, content=body)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={
            "path": request.url.path,
            "error_type": type(exc).__name__,
        })
        body = {
            "error": {
                "message": "Internal server error",
                "code": ErrorCode.INTERNAL_ERROR.value,
                "details": {},
                "type": "InternalError",
            }
        }
        return JSONResponse(status_code=500, content=body)
