import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from tutorix.client import (
    ApiError,
    CheckoutAdapter,
    CheckoutFailed,
    CheckoutStatus,
    PaymentApiClient,
    Prefill,
    pay_fee,
    pay_multiple,
)
from tutorix.client.checkout import EVENT_EXTERNAL_WALLET, EVENT_PAYMENT_ERROR, EVENT_PAYMENT_SUCCESS

from tests.support import FakeCheckoutSDK

ORDER = {
    "order_id": "order_1",
    "internal_order_id": "int_1",
    "amount_paise": 60000,
    "currency": "INR",
    "key": "rzp_test_key",
    "record": {"id": "rec_1", "title": "Tuition - Jan"},
}


class FakeApi:
    """``httpx.MockTransport`` handler standing in for the payment API."""

    def __init__(self):
        self.requests = []
        self.responses = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, request.url.path, body))
        status, payload = self.responses.get(request.url.path, (404, {"error": {
            "message": "Route not found", "code": "RESOURCE_NOT_FOUND", "details": {}, "type": "NotFoundError",
        }}))
        return httpx.Response(status, json=payload)

    def paths(self):
        return [path for _, path, _ in self.requests]


@pytest.fixture
def fake_api():
    api = FakeApi()
    api.responses["/coaching/c1/fee/records/rec_1/create-order"] = (201, ORDER)
    api.responses["/coaching/c1/fee/records/rec_1/verify-payment"] = (200, {"already_processed": False})
    api.responses["/coaching/c1/fee/orders/int_1/fail"] = (200, {"ok": True, "status": "FAILED"})
    return api


def run_flow(fake_api, sdk, flow, *args, **kwargs):
    async def scenario():
        async with httpx.AsyncClient(base_url="http://test", transport=httpx.MockTransport(fake_api)) as http:
            api = PaymentApiClient("http://test", "token-1", client=http)
            return await flow(api, CheckoutAdapter(sdk), "c1", *args, **kwargs)

    return asyncio.run(scenario())


def test_pay_fee_verifies_successful_checkout(fake_api):
    sdk = FakeCheckoutSDK(on_open=lambda s: s.emit(EVENT_PAYMENT_SUCCESS, {
        "razorpay_payment_id": "pay_1", "razorpay_order_id": "order_1", "razorpay_signature": "sig",
    }))

    outcome = run_flow(fake_api, sdk, pay_fee, "rec_1", Prefill(name="Asha"), Decimal("600"))

    assert outcome.status is CheckoutStatus.SUCCESS
    assert outcome.verification == {"already_processed": False}
    assert fake_api.requests[0] == ("POST", "/coaching/c1/fee/records/rec_1/create-order", {"amount": "600"})
    assert fake_api.requests[1][2] == {
        "razorpay_order_id": "order_1",
        "razorpay_payment_id": "pay_1",
        "razorpay_signature": "sig",
    }
    assert sdk.opened[0]["description"] == "Tuition - Jan"
    assert sdk.opened[0]["prefill"] == {"name": "Asha"}


def test_failed_checkout_reports_order(fake_api):
    sdk = FakeCheckoutSDK(on_open=lambda s: s.emit(EVENT_PAYMENT_ERROR, {"code": "2", "description": "Dismissed"}))

    with pytest.raises(CheckoutFailed):
        run_flow(fake_api, sdk, pay_fee, "rec_1")

    method, path, body = fake_api.requests[-1]
    assert path == "/coaching/c1/fee/orders/int_1/fail"
    assert body == {"reason": "2: Dismissed"}
    assert not any(p.endswith("verify-payment") for p in fake_api.paths())


def test_failure_report_errors_do_not_mask_checkout_error(fake_api):
    fake_api.responses["/coaching/c1/fee/orders/int_1/fail"] = (500, {"error": {"message": "boom"}})
    sdk = FakeCheckoutSDK(on_open=lambda s: s.emit(EVENT_PAYMENT_ERROR, {"description": "Dismissed"}))

    with pytest.raises(CheckoutFailed):
        run_flow(fake_api, sdk, pay_fee, "rec_1")


def test_wallet_payment_left_pending(fake_api):
    sdk = FakeCheckoutSDK(on_open=lambda s: s.emit(EVENT_EXTERNAL_WALLET, {"external_wallet": "paytm"}))

    outcome = run_flow(fake_api, sdk, pay_fee, "rec_1")

    assert outcome.status is CheckoutStatus.PENDING
    assert outcome.wallet == "paytm"
    assert outcome.verification is None
    assert len(fake_api.requests) == 1


def test_api_error_envelope_mapped(fake_api):
    fake_api.responses["/coaching/c1/fee/records/rec_1/create-order"] = (409, {"error": {
        "message": "Fee record is already PAID", "code": "INVALID_STATE",
        "details": {"current_state": "PAID"}, "type": "InvalidStateError",
    }})

    with pytest.raises(ApiError) as excinfo:
        run_flow(fake_api, FakeCheckoutSDK(), pay_fee, "rec_1")

    assert excinfo.value.status_code == 409
    assert excinfo.value.code == "INVALID_STATE"
    assert excinfo.value.details == {"current_state": "PAID"}


def test_network_failure_mapped():
    def offline(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        async with httpx.AsyncClient(base_url="http://test", transport=httpx.MockTransport(offline)) as http:
            async with PaymentApiClient("http://test", "token-1", client=http) as api:
                await api.get_payment_config()

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.status_code == 0
    assert excinfo.value.code == "NETWORK_ERROR"


def test_pay_multiple_verifies_bundle(fake_api):
    fake_api.responses["/coaching/c1/fee/multi-pay/create-order"] = (201, {
        **ORDER, "order_id": "order_m", "records": [{"id": "r1"}, {"id": "r2"}],
    })
    fake_api.responses["/coaching/c1/fee/multi-pay/verify"] = (200, {"allocations": []})
    sdk = FakeCheckoutSDK(on_open=lambda s: s.emit(EVENT_PAYMENT_SUCCESS, {
        "razorpay_payment_id": "pay_m", "razorpay_signature": "sig",
    }))

    outcome = run_flow(fake_api, sdk, pay_multiple, ["r1", "r2"])

    assert outcome.status is CheckoutStatus.SUCCESS
    assert fake_api.requests[0][2] == {"record_ids": ["r1", "r2"]}
    assert fake_api.requests[1][2]["razorpay_order_id"] == "order_m"
    assert sdk.opened[0]["description"] == "2 fee records"
