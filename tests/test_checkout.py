import asyncio
import threading

import pytest

from tutorix.client.checkout import (
    EVENT_EXTERNAL_WALLET,
    EVENT_PAYMENT_ERROR,
    EVENT_PAYMENT_SUCCESS,
    CheckoutAdapter,
    CheckoutCancelled,
    CheckoutFailed,
    CheckoutRequest,
    CheckoutStatus,
    CheckoutTimeout,
    Prefill,
)

from tests.support import FakeCheckoutSDK


def request(order_id="order_1", **kwargs):
    return CheckoutRequest(key="rzp_test_key", order_id=order_id, amount_paise=60000,
                           description="Tuition - Jan", **kwargs)


def success(payment_id="pay_1", order_id="order_1"):
    return {"razorpay_payment_id": payment_id, "razorpay_order_id": order_id, "razorpay_signature": "sig"}


def run(coro):
    return asyncio.run(coro)


def test_options_carry_order_and_prefill():
    options = request(prefill=Prefill(name="Asha", email="asha@example.in")).to_options()

    assert options == {
        "key": "rzp_test_key",
        "amount": 60000,
        "currency": "INR",
        "name": "Tutorix",
        "description": "Tuition - Jan",
        "order_id": "order_1",
        "prefill": {"name": "Asha", "email": "asha@example.in"},
        "theme": {"color": "#3D4F2F"},
    }


def test_success_resolves_result():
    sdk = FakeCheckoutSDK(on_open=lambda s: s.emit(EVENT_PAYMENT_SUCCESS, success()))
    adapter = CheckoutAdapter(sdk)

    result = run(adapter.open_checkout(request()))

    assert result.status is CheckoutStatus.SUCCESS
    assert (result.order_id, result.payment_id, result.signature) == ("order_1", "pay_1", "sig")
    assert not adapter.in_flight
    assert sdk.handlers == {}


def test_incomplete_success_is_failure():
    sdk = FakeCheckoutSDK(on_open=lambda s: s.emit(EVENT_PAYMENT_SUCCESS, {"razorpay_payment_id": "pay_1"}))

    with pytest.raises(CheckoutFailed) as excinfo:
        run(CheckoutAdapter(sdk).open_checkout(request()))

    assert excinfo.value.code == "INVALID_RESPONSE"


def test_error_event_raises_with_description():
    sdk = FakeCheckoutSDK(on_open=lambda s: s.emit(EVENT_PAYMENT_ERROR, {
        "error": {"code": "BAD_REQUEST_ERROR", "description": "Card declined"},
    }))

    with pytest.raises(CheckoutFailed) as excinfo:
        run(CheckoutAdapter(sdk).open_checkout(request()))

    assert excinfo.value.code == "BAD_REQUEST_ERROR"
    assert excinfo.value.description == "Card declined"


def test_external_wallet_is_pending():
    sdk = FakeCheckoutSDK(on_open=lambda s: s.emit(EVENT_EXTERNAL_WALLET, {"external_wallet": "paytm"}))

    result = run(CheckoutAdapter(sdk).open_checkout(request()))

    assert result.status is CheckoutStatus.PENDING
    assert result.wallet == "paytm"
    assert result.payment_id is None


def test_sdk_open_failure():
    sdk = FakeCheckoutSDK(fail_open=RuntimeError("activity not attached"))
    adapter = CheckoutAdapter(sdk)

    with pytest.raises(CheckoutFailed) as excinfo:
        run(adapter.open_checkout(request()))

    assert excinfo.value.code == "SDK_ERROR"
    assert not adapter.in_flight


def test_callback_from_another_thread():
    def fire_later(sdk):
        handler = sdk.handlers[EVENT_PAYMENT_SUCCESS]
        threading.Thread(target=handler, args=(success(),)).start()

    result = run(CheckoutAdapter(FakeCheckoutSDK(on_open=fire_later)).open_checkout(request()))

    assert result.payment_id == "pay_1"


def test_timeout_then_late_callback_dropped():
    sdk = FakeCheckoutSDK()
    adapter = CheckoutAdapter(sdk, timeout=0.01)

    async def scenario():
        late = None

        def keep(s):
            nonlocal late
            late = s.handlers[EVENT_PAYMENT_SUCCESS]

        sdk.on_open = keep
        with pytest.raises(CheckoutTimeout):
            await adapter.open_checkout(request())
        late(success())
        await asyncio.sleep(0)
        return adapter.in_flight

    assert run(scenario()) is False


def test_new_checkout_supersedes_previous():
    sdk = FakeCheckoutSDK()
    adapter = CheckoutAdapter(sdk)

    async def scenario():
        first = asyncio.ensure_future(adapter.open_checkout(request("order_1")))
        await asyncio.sleep(0)
        stale = sdk.handlers[EVENT_PAYMENT_SUCCESS]

        second = asyncio.ensure_future(adapter.open_checkout(request("order_2")))
        await asyncio.sleep(0)
        with pytest.raises(CheckoutCancelled):
            await first

        stale(success("pay_stale", "order_1"))
        await asyncio.sleep(0)
        assert not second.done()

        sdk.emit(EVENT_PAYMENT_SUCCESS, success("pay_2", "order_2"))
        return await second

    result = run(scenario())

    assert result.payment_id == "pay_2"
    assert result.order_id == "order_2"
    assert [o["order_id"] for o in sdk.opened] == ["order_1", "order_2"]


def test_dispose_cancels_in_flight():
    sdk = FakeCheckoutSDK()
    adapter = CheckoutAdapter(sdk)

    async def scenario():
        pending = asyncio.ensure_future(adapter.open_checkout(request()))
        await asyncio.sleep(0)
        stale = sdk.handlers[EVENT_PAYMENT_SUCCESS]
        adapter.dispose()
        with pytest.raises(CheckoutCancelled):
            await pending
        stale(success())
        await asyncio.sleep(0)

    run(scenario())

    assert not adapter.in_flight
