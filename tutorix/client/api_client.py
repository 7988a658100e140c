"""
Async HTTP client for the payment endpoints.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from tutorix.core.logging import get_logger

logger = get_logger(__name__)


class ApiError(Exception):
    """Error envelope returned by the API, or a transport failure."""

    def __init__(
        self,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(f"{status_code} {code or 'ERROR'}: {message}")


def _amount(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


class PaymentApiClient:
    """
    Thin async wrapper over the fee payment API.

    Args:
        base_url: API root, e.g. ``https://api.example.com``
        token: Bearer token of the signed-in user
        client: Optional pre-built ``httpx.AsyncClient`` (tests pass one
            backed by ``httpx.MockTransport``)
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._owns_client = client is None
        self._headers = {"Authorization": f"Bearer {token}"}

    async def __aenter__(self) -> "PaymentApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = await self._client.request(method, path, json=json, headers=self._headers)
        except httpx.HTTPError as exc:
            raise ApiError(0, str(exc) or "Network error", "NETWORK_ERROR") from exc

        if response.is_success:
            return response.json() if response.content else None

        try:
            error = response.json().get("error") or {}
        except ValueError:
            error = {}
        raise ApiError(
            response.status_code,
            error.get("message") or response.reason_phrase or "Request failed",
            error.get("code"),
            error.get("details"),
        )

    @staticmethod
    def _fee(coaching_id: str, path: str) -> str:
        return f"/coaching/{coaching_id}/fee{path}"

    # ==================== Single Record ====================

    async def create_order(self, coaching_id: str, record_id: str, amount: Optional[Decimal] = None) -> Dict[str, Any]:
        body = {"amount": _amount(amount)} if amount is not None else {}
        return await self._request("POST", self._fee(coaching_id, f"/records/{record_id}/create-order"), body)

    async def verify_payment(
        self,
        coaching_id: str,
        record_id: str,
        order_id: str,
        payment_id: str,
        signature: str,
    ) -> Dict[str, Any]:
        body = {
            "razorpay_order_id": order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": signature,
        }
        return await self._request("POST", self._fee(coaching_id, f"/records/{record_id}/verify-payment"), body)

    async def mark_order_failed(self, coaching_id: str, internal_order_id: str, reason: Optional[str]) -> Dict[str, Any]:
        return await self._request(
            "POST", self._fee(coaching_id, f"/orders/{internal_order_id}/fail"), {"reason": reason}
        )

    async def get_online_payments(self, coaching_id: str, record_id: str) -> List[Dict[str, Any]]:
        return await self._request("GET", self._fee(coaching_id, f"/records/{record_id}/online-payments"))

    async def initiate_online_refund(
        self,
        coaching_id: str,
        record_id: str,
        payment_id: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"payment_id": payment_id}
        if amount is not None:
            body["amount"] = _amount(amount)
        if reason:
            body["reason"] = reason
        return await self._request("POST", self._fee(coaching_id, f"/records/{record_id}/online-refund"), body)

    # ==================== Multi-Pay ====================

    async def create_multi_order(self, coaching_id: str, record_ids: List[str]) -> Dict[str, Any]:
        return await self._request(
            "POST", self._fee(coaching_id, "/multi-pay/create-order"), {"record_ids": list(record_ids)}
        )

    async def verify_multi_payment(
        self,
        coaching_id: str,
        order_id: str,
        payment_id: str,
        signature: str,
    ) -> Dict[str, Any]:
        body = {
            "razorpay_order_id": order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": signature,
        }
        return await self._request("POST", self._fee(coaching_id, "/multi-pay/verify"), body)

    # ==================== Config ====================

    async def get_payment_config(self) -> Dict[str, Any]:
        return await self._request("GET", "/payment/config")
