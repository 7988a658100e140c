"""
End-to-end client payment flow: order, checkout, verification.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from tutorix.client.api_client import ApiError, PaymentApiClient
from tutorix.client.checkout import (
    CheckoutAdapter,
    CheckoutError,
    CheckoutFailed,
    CheckoutRequest,
    CheckoutStatus,
    CheckoutTimeout,
    Prefill,
)
from tutorix.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PaymentOutcome:
    status: CheckoutStatus
    order: Dict[str, Any]
    verification: Optional[Dict[str, Any]] = None
    wallet: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict)


def _failure_reason(exc: CheckoutError) -> str:
    if isinstance(exc, CheckoutFailed):
        return f"{exc.code}: {exc.description}" if exc.code else exc.description
    if isinstance(exc, CheckoutTimeout):
        return "Checkout timed out"
    return "Checkout cancelled"


async def _mark_failed(api: PaymentApiClient, coaching_id: str, order: Dict[str, Any], exc: CheckoutError) -> None:
    try:
        await api.mark_order_failed(coaching_id, order["internal_order_id"], _failure_reason(exc))
    except (ApiError, httpx.HTTPError) as mark_exc:
        logger.warning("Could not report failed checkout", extra={
            "order_id": order.get("order_id"),
            "error": str(mark_exc),
        })


async def _checkout(
    api: PaymentApiClient,
    checkout: CheckoutAdapter,
    coaching_id: str,
    order: Dict[str, Any],
    description: str,
    prefill: Optional[Prefill],
):
    request = CheckoutRequest(
        key=order["key"],
        order_id=order["order_id"],
        amount_paise=int(order["amount_paise"]),
        currency=order.get("currency", "INR"),
        description=description,
        prefill=prefill or Prefill(),
    )
    try:
        return await checkout.open_checkout(request)
    except CheckoutError as exc:
        await _mark_failed(api, coaching_id, order, exc)
        raise


async def pay_fee(
    api: PaymentApiClient,
    checkout: CheckoutAdapter,
    coaching_id: str,
    record_id: str,
    prefill: Optional[Prefill] = None,
    amount: Optional[Decimal] = None,
) -> PaymentOutcome:
    """
    Pay one fee record.

    Raises ``CheckoutError`` subclasses after reporting the abandoned order,
    and ``ApiError`` when order creation or verification is rejected. An
    external-wallet payment returns PENDING; the webhook completes it.
    """
    order = await api.create_order(coaching_id, record_id, amount)
    result = await _checkout(api, checkout, coaching_id, order, order["record"]["title"], prefill)

    if result.status is CheckoutStatus.PENDING:
        return PaymentOutcome(CheckoutStatus.PENDING, order, wallet=result.wallet)

    verification = await api.verify_payment(
        coaching_id, record_id, result.order_id, result.payment_id, result.signature
    )
    return PaymentOutcome(CheckoutStatus.SUCCESS, order, verification)


async def pay_multiple(
    api: PaymentApiClient,
    checkout: CheckoutAdapter,
    coaching_id: str,
    record_ids: List[str],
    prefill: Optional[Prefill] = None,
) -> PaymentOutcome:
    """Pay several fee records with one checkout."""
    order = await api.create_multi_order(coaching_id, record_ids)
    description = f"{len(order.get('records') or record_ids)} fee records"
    result = await _checkout(api, checkout, coaching_id, order, description, prefill)

    if result.status is CheckoutStatus.PENDING:
        return PaymentOutcome(CheckoutStatus.PENDING, order, wallet=result.wallet)

    verification = await api.verify_multi_payment(coaching_id, result.order_id, result.payment_id, result.signature)
    return PaymentOutcome(CheckoutStatus.SUCCESS, order, verification)
