"""Client-side checkout orchestration for the payment API."""

from tutorix.client.api_client import ApiError, PaymentApiClient
from tutorix.client.checkout import (
    CheckoutAdapter,
    CheckoutCancelled,
    CheckoutError,
    CheckoutFailed,
    CheckoutRequest,
    CheckoutResult,
    CheckoutSDK,
    CheckoutStatus,
    CheckoutTimeout,
    Prefill,
)
from tutorix.client.payment_flow import PaymentOutcome, pay_fee, pay_multiple

__all__ = [
    "ApiError",
    "PaymentApiClient",
    "CheckoutAdapter",
    "CheckoutSDK",
    "CheckoutRequest",
    "CheckoutResult",
    "CheckoutStatus",
    "CheckoutError",
    "CheckoutCancelled",
    "CheckoutFailed",
    "CheckoutTimeout",
    "Prefill",
    "PaymentOutcome",
    "pay_fee",
    "pay_multiple",
]
