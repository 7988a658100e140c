"""
Awaitable wrapper around a callback-style checkout SDK.

The SDK reports the outcome of ``open`` through event handlers, possibly
from another thread. ``CheckoutAdapter`` turns one checkout attempt into one
awaitable result and guarantees that at most one attempt is live.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol

from tutorix.core.logging import get_logger

logger = get_logger(__name__)

EVENT_PAYMENT_SUCCESS = "payment.success"
EVENT_PAYMENT_ERROR = "payment.error"
EVENT_EXTERNAL_WALLET = "payment.external_wallet"

DEFAULT_THEME_COLOR = "#3D4F2F"


class CheckoutSDK(Protocol):
    def on(self, event: str, handler: Callable[[Dict[str, Any]], None]) -> None: ...

    def open(self, options: Dict[str, Any]) -> None: ...

    def clear(self) -> None: ...


class CheckoutStatus(str, Enum):
    SUCCESS = "SUCCESS"
    PENDING = "PENDING"


@dataclass(frozen=True)
class Prefill:
    name: Optional[str] = None
    email: Optional[str] = None
    contact: Optional[str] = None

    def as_options(self) -> Dict[str, str]:
        return {k: v for k, v in (("name", self.name), ("email", self.email), ("contact", self.contact)) if v}


@dataclass(frozen=True)
class CheckoutRequest:
    key: str
    order_id: str
    amount_paise: int
    description: str
    currency: str = "INR"
    name: str = "Tutorix"
    prefill: Prefill = field(default_factory=Prefill)
    theme_color: str = DEFAULT_THEME_COLOR

    def to_options(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "amount": self.amount_paise,
            "currency": self.currency,
            "name": self.name,
            "description": self.description,
            "order_id": self.order_id,
            "prefill": self.prefill.as_options(),
            "theme": {"color": self.theme_color},
        }


@dataclass(frozen=True)
class CheckoutResult:
    status: CheckoutStatus
    order_id: str
    payment_id: Optional[str] = None
    signature: Optional[str] = None
    wallet: Optional[str] = None


class CheckoutError(Exception):
    """Base class for checkout outcomes that are not a payment."""


class CheckoutCancelled(CheckoutError):
    def __init__(self, message: str = "Checkout was superseded or dismissed"):
        super().__init__(message)


class CheckoutFailed(CheckoutError):
    def __init__(self, code: Optional[str], description: str):
        self.code = code
        self.description = description
        super().__init__(description)


class CheckoutTimeout(CheckoutError):
    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Checkout did not complete within {timeout:g} seconds")


class CheckoutAdapter:
    """
    Opens checkouts one at a time and awaits their outcome.

    Opening a new checkout cancels the previous one: its awaiter receives
    ``CheckoutCancelled`` and late callbacks for it are dropped.

    Args:
        sdk: Callback-style checkout SDK
        timeout: Seconds to wait for an outcome before ``CheckoutTimeout``
    """

    def __init__(self, sdk: CheckoutSDK, timeout: float = 300.0):
        self.sdk = sdk
        self.timeout = timeout
        self._attempt = 0
        self._future: Optional[asyncio.Future] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def in_flight(self) -> bool:
        return self._future is not None and not self._future.done()

    async def open_checkout(self, request: CheckoutRequest) -> CheckoutResult:
        self._cancel_pending()

        loop = asyncio.get_running_loop()
        self._attempt += 1
        attempt = self._attempt
        future: asyncio.Future = loop.create_future()
        self._future = future
        self._loop = loop

        self.sdk.on(EVENT_PAYMENT_SUCCESS, self._handler(attempt, self._on_success, request))
        self.sdk.on(EVENT_PAYMENT_ERROR, self._handler(attempt, self._on_error, request))
        self.sdk.on(EVENT_EXTERNAL_WALLET, self._handler(attempt, self._on_wallet, request))

        logger.info("Opening checkout", extra={"order_id": request.order_id, "amount_paise": request.amount_paise})
        try:
            self.sdk.open(request.to_options())
        except Exception as exc:
            self._finish(attempt)
            raise CheckoutFailed("SDK_ERROR", str(exc) or "Checkout could not be opened") from exc

        try:
            return await asyncio.wait_for(future, self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Checkout timed out", extra={"order_id": request.order_id, "timeout": self.timeout})
            raise CheckoutTimeout(self.timeout)
        finally:
            self._finish(attempt)

    def dispose(self) -> None:
        self._cancel_pending()
        self._attempt += 1

    # ==================== Internals ====================

    def _cancel_pending(self) -> None:
        if self._future is not None and not self._future.done():
            self._future.set_exception(CheckoutCancelled())
        self._future = None
        self.sdk.clear()

    def _finish(self, attempt: int) -> None:
        if attempt == self._attempt and self._future is not None:
            self._future = None
            self.sdk.clear()

    def _handler(
        self,
        attempt: int,
        resolve: Callable[[asyncio.Future, CheckoutRequest, Dict[str, Any]], None],
        request: CheckoutRequest,
    ) -> Callable[[Dict[str, Any]], None]:
        loop = asyncio.get_running_loop()

        def handler(payload: Optional[Dict[str, Any]] = None) -> None:
            loop.call_soon_threadsafe(self._deliver, attempt, resolve, request, payload or {})

        return handler

    def _deliver(
        self,
        attempt: int,
        resolve: Callable[[asyncio.Future, CheckoutRequest, Dict[str, Any]], None],
        request: CheckoutRequest,
        payload: Dict[str, Any],
    ) -> None:
        future = self._future
        if attempt != self._attempt or future is None or future.done():
            logger.debug("Dropping stale checkout callback", extra={"order_id": request.order_id})
            return
        resolve(future, request, payload)

    @staticmethod
    def _on_success(future: asyncio.Future, request: CheckoutRequest, payload: Dict[str, Any]) -> None:
        payment_id = payload.get("razorpay_payment_id") or payload.get("payment_id")
        signature = payload.get("razorpay_signature") or payload.get("signature")
        if not payment_id or not signature:
            future.set_exception(CheckoutFailed("INVALID_RESPONSE", "Checkout returned an incomplete payment"))
            return
        future.set_result(CheckoutResult(
            status=CheckoutStatus.SUCCESS,
            order_id=payload.get("razorpay_order_id") or request.order_id,
            payment_id=payment_id,
            signature=signature,
        ))

    @staticmethod
    def _on_error(future: asyncio.Future, request: CheckoutRequest, payload: Dict[str, Any]) -> None:
        error = payload.get("error") if isinstance(payload.get("error"), dict) else payload
        future.set_exception(CheckoutFailed(
            error.get("code"),
            error.get("description") or error.get("message") or "Payment failed",
        ))

    @staticmethod
    def _on_wallet(future: asyncio.Future, request: CheckoutRequest, payload: Dict[str, Any]) -> None:
        future.set_result(CheckoutResult(
            status=CheckoutStatus.PENDING,
            order_id=request.order_id,
            wallet=payload.get("external_wallet") or payload.get("wallet"),
        ))
