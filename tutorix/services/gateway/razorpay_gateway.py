"""
Razorpay gateway adapter.

Every remote call funnels through ``_call`` so SDK and transport failures
reach the services as ``GatewayError`` carrying the failed operation name.
"""

import hashlib
import hmac
from functools import lru_cache
from typing import Any, Callable, Dict, Iterator, List, Optional

import httpx
import razorpay

from tutorix.config.settings import settings
from tutorix.core.exceptions import GatewayError
from tutorix.core.logging import get_logger

logger = get_logger(__name__)

PAGE_SIZE = 100


def compute_signature(secret: str, payload: str) -> str:
    """Hex HMAC-SHA256 of ``payload`` keyed by ``secret``."""
    return hmac.new(secret.encode(), payload.encode(), hashlib.sha256).hexdigest()


def _error_description(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
            return body.get("error", {}).get("description") or exc.response.text
        except ValueError:
            return exc.response.text or str(exc)
    return str(exc) or type(exc).__name__


class RazorpayGateway:
    """
    Thin wrapper over the Razorpay SDK and REST API.

    Args:
        key_id: Public key id, also handed to the checkout client
        key_secret: Secret used for API auth and payment signatures
        webhook_secret: Secret used to sign webhook bodies
        client: Optional pre-built ``razorpay.Client``
        http_client: Optional ``httpx.Client`` for the fund-account API
    """

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        webhook_secret: str = "",
        currency: str = "INR",
        client: Optional[razorpay.Client] = None,
        http_client: Optional[httpx.Client] = None,
        api_base: str = "https://api.razorpay.com/v1",
        timeout: float = 15.0,
    ):
        self.key_id = key_id
        self._key_secret = key_secret
        self._webhook_secret = webhook_secret
        self.currency = currency
        self._client = client or razorpay.Client(auth=(key_id, key_secret))
        self._http = http_client or httpx.Client(
            base_url=api_base,
            auth=(key_id, key_secret),
            timeout=timeout,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.key_id and self._key_secret)

    # ==================== Helpers ====================

    def _call(self, operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        if not self.enabled:
            raise GatewayError("Online payments are not configured", details={"operation": operation})
        try:
            return fn(*args, **kwargs)
        except GatewayError:
            raise
        except Exception as exc:
            description = _error_description(exc)
            logger.error("Gateway call failed", extra={
                "operation": operation,
                "error_type": type(exc).__name__,
                "error": description,
            })
            raise GatewayError(
                f"Payment gateway error: {description}",
                details={"operation": operation},
            ) from exc

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self._http.post(path, json=payload)
        response.raise_for_status()
        return response.json()

    # ==================== Signatures ====================

    def verify_payment_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Constant-time check of the checkout signature over ``order_id|payment_id``."""
        if not (self._key_secret and order_id and payment_id and signature):
            return False
        expected = compute_signature(self._key_secret, f"{order_id}|{payment_id}")
        return hmac.compare_digest(expected, signature)

    def verify_webhook_signature(self, body: bytes, signature: Optional[str]) -> bool:
        if not (self._webhook_secret and signature):
            return False
        expected = hmac.new(self._webhook_secret.encode(), body, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature)

    # ==================== Orders and Payments ====================

    def create_order(self, amount_paise: int, receipt: str, notes: Dict[str, str]) -> Dict[str, Any]:
        payload = {
            "amount": amount_paise,
            "currency": self.currency,
            "receipt": receipt,
            "notes": notes,
        }
        return self._call("order.create", self._client.order.create, data=payload)

    def fetch_payment(self, payment_id: str) -> Dict[str, Any]:
        return self._call("payment.fetch", self._client.payment.fetch, payment_id)

    def iter_payments(self, from_ts: int, to_ts: int) -> Iterator[Dict[str, Any]]:
        """Yield every payment created in ``[from_ts, to_ts]``, page by page."""
        skip = 0
        while True:
            page = self._call(
                "payment.all",
                self._client.payment.all,
                {"from": from_ts, "to": to_ts, "count": PAGE_SIZE, "skip": skip},
            )
            items: List[Dict[str, Any]] = page.get("items", [])
            yield from items
            if len(items) < PAGE_SIZE:
                return
            skip += PAGE_SIZE

    def refund(self, payment_id: str, amount_paise: int, notes: Dict[str, str]) -> Dict[str, Any]:
        return self._call(
            "payment.refund",
            self._client.payment.refund,
            payment_id,
            {"amount": amount_paise, "notes": notes},
        )

    # ==================== Route Transfers ====================

    def transfer(self, payment_id: str, account_id: str, amount_paise: int, notes: Dict[str, str]) -> Dict[str, Any]:
        payload = {
            "transfers": [{
                "account": account_id,
                "amount": amount_paise,
                "currency": self.currency,
                "notes": notes,
                "on_hold": False,
            }]
        }
        result = self._call("payment.transfer", self._client.payment.transfer, payment_id, payload)
        items = result.get("items") or []
        return items[0] if items else result

    def reverse_transfer(self, transfer_id: str, amount_paise: int) -> Dict[str, Any]:
        return self._call("transfer.reverse", self._client.transfer.reverse, transfer_id, {"amount": amount_paise})

    # ==================== Linked Accounts ====================

    def create_linked_account(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("account.create", self._client.account.create, payload)

    def fetch_linked_account(self, account_id: str) -> Dict[str, Any]:
        return self._call("account.fetch", self._client.account.fetch, account_id)

    def delete_linked_account(self, account_id: str) -> Dict[str, Any]:
        return self._call("account.delete", self._client.account.delete, account_id)

    def create_stakeholder(self, account_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("stakeholder.create", self._client.stakeholder.create, account_id, payload)

    def request_route_product(self, account_id: str, settlements: Dict[str, str]) -> Dict[str, Any]:
        product = self._call(
            "product.request",
            self._client.product.requestProductConfiguration,
            account_id,
            {"product_name": "route", "tnc_accepted": True},
        )
        if product.get("id"):
            product = self._call(
                "product.edit",
                self._client.product.edit,
                account_id,
                product["id"],
                {"settlements": settlements},
            )
        return product

    def fetch_product(self, account_id: str, product_id: str) -> Dict[str, Any]:
        return self._call("product.fetch", self._client.product.fetch, account_id, product_id)

    # ==================== Fund Account Validation ====================

    def create_contact(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("contact.create", self._post, "/contacts", payload)

    def create_fund_account(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("fund_account.create", self._post, "/fund_accounts", payload)

    def validate_fund_account(self, fund_account_id: str, notes: Dict[str, str]) -> Dict[str, Any]:
        payload = {
            "fund_account": {"id": fund_account_id},
            "amount": 100,
            "currency": self.currency,
            "notes": notes,
        }
        return self._call("fund_account.validate", self._post, "/fund_accounts/validations", payload)


@lru_cache()
def get_gateway() -> RazorpayGateway:
    """Process-wide gateway built from settings."""
    return RazorpayGateway(
        key_id=settings.RAZORPAY_KEY_ID,
        key_secret=settings.RAZORPAY_KEY_SECRET,
        webhook_secret=settings.RAZORPAY_WEBHOOK_SECRET,
        currency=settings.CURRENCY,
        api_base=settings.RAZORPAY_API_BASE,
        timeout=settings.RAZORPAY_TIMEOUT_SECONDS,
    )
