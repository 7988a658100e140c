"""
Test doubles and factories.

``FakeRazorpayClient`` mimics the parts of the razorpay SDK client the
gateway adapter calls. It is passed into a real ``RazorpayGateway`` so
signature checks, error wrapping and payload shapes are exercised as in
production.
"""

import hashlib
import hmac
import itertools
import json
import time
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx
from razorpay.errors import BadRequestError

from tutorix.core.permissions import CoachingRole
from tutorix.models.base.enums import FeeCycle, FeeRecordStatus, TaxType
from tutorix.models.coaching import Coaching, CoachingMember, Ward
from tutorix.models.fee import FeeAssignment, FeeRecord, FeeStructure
from tutorix.services.gateway import RazorpayGateway, compute_signature

KEY_ID = "rzp_test_key"
KEY_SECRET = "rzp_test_secret"
WEBHOOK_SECRET = "whsec_test"


class _Resource:
    def __init__(self, client: "FakeRazorpayClient"):
        self.client = client


class _Orders(_Resource):
    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self.client.check("order.create")
        order_id = self.client.next_id("order")
        order = {
            "id": order_id,
            "entity": "order",
            "amount": data["amount"],
            "currency": data.get("currency", "INR"),
            "receipt": data.get("receipt"),
            "notes": data.get("notes", {}),
            "status": "created",
        }
        self.client.orders[order_id] = order
        return order


class _Payments(_Resource):
    def fetch(self, payment_id: str) -> Dict[str, Any]:
        self.client.check("payment.fetch")
        if payment_id not in self.client.payments:
            raise BadRequestError("The id provided does not exist")
        return dict(self.client.payments[payment_id])

    def all(self, params: Dict[str, Any]) -> Dict[str, Any]:
        self.client.check("payment.all")
        items = [
            p for p in self.client.payments.values()
            if params["from"] <= p["created_at"] <= params["to"]
        ]
        page = items[params.get("skip", 0):params.get("skip", 0) + params.get("count", 10)]
        return {"entity": "collection", "count": len(page), "items": page}

    def refund(self, payment_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        self.client.check("payment.refund")
        refund = {
            "id": self.client.next_id("rfnd"),
            "payment_id": payment_id,
            "amount": data["amount"],
            "status": self.client.refund_status,
        }
        self.client.refunds.append(refund)
        return refund

    def transfer(self, payment_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        self.client.check("payment.transfer")
        items = []
        for spec in data["transfers"]:
            transfer = {"id": self.client.next_id("trf"), "source": payment_id, **spec}
            self.client.transfers.append(transfer)
            items.append(transfer)
        return {"entity": "collection", "count": len(items), "items": items}


class _Transfers(_Resource):
    def reverse(self, transfer_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        self.client.check("transfer.reverse")
        reversal = {"id": self.client.next_id("rvrsl"), "transfer_id": transfer_id, "amount": data["amount"]}
        self.client.reversals.append(reversal)
        return reversal


class _Accounts(_Resource):
    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self.client.check("account.create")
        account = {"id": self.client.next_id("acc"), "status": self.client.account_status, **data}
        self.client.accounts[account["id"]] = account
        return account

    def fetch(self, account_id: str) -> Dict[str, Any]:
        self.client.check("account.fetch")
        return {**self.client.accounts.get(account_id, {"id": account_id}), "status": self.client.account_status}

    def delete(self, account_id: str) -> Dict[str, Any]:
        self.client.check("account.delete")
        self.client.accounts.pop(account_id, None)
        return {"id": account_id, "status": "suspended"}


class _Stakeholders(_Resource):
    def create(self, account_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        self.client.check("stakeholder.create")
        return {"id": self.client.next_id("sth"), "account_id": account_id, **data}


class _Products(_Resource):
    def requestProductConfiguration(self, account_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        self.client.check("product.request")
        return {"id": self.client.next_id("acc_prd"), "activation_status": "requested", **data}

    def edit(self, account_id: str, product_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        self.client.check("product.edit")
        return {"id": product_id, "activation_status": self.client.product_status, **data}

    def fetch(self, account_id: str, product_id: str) -> Dict[str, Any]:
        self.client.check("product.fetch")
        return {"id": product_id, "activation_status": self.client.product_status}


class FakeRazorpayClient:
    """
    In-memory stand-in for ``razorpay.Client``.

    Add an operation name (``"order.create"``, ``"payment.refund"``...) to
    ``fail`` to make that call raise like the SDK does.
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self.fail: set = set()
        self.calls: List[str] = []
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.payments: Dict[str, Dict[str, Any]] = {}
        self.refunds: List[Dict[str, Any]] = []
        self.transfers: List[Dict[str, Any]] = []
        self.reversals: List[Dict[str, Any]] = []
        self.accounts: Dict[str, Dict[str, Any]] = {}
        self.refund_status = "processed"
        self.account_status = "created"
        self.product_status = "activated"

        self.order = _Orders(self)
        self.payment = _Payments(self)
        self.transfer = _Transfers(self)
        self.account = _Accounts(self)
        self.stakeholder = _Stakeholders(self)
        self.product = _Products(self)

    def next_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids):06d}"

    def check(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail:
            raise BadRequestError(f"{operation} rejected by gateway")

    def capture(
        self,
        order_id: Optional[str],
        amount: Optional[int] = None,
        status: str = "captured",
        created_at: Optional[int] = None,
    ) -> str:
        """Simulate a customer paying ``order_id``; returns the payment id."""
        payment_id = self.next_id("pay")
        if amount is None:
            amount = self.orders[order_id]["amount"]
        self.payments[payment_id] = {
            "id": payment_id,
            "entity": "payment",
            "order_id": order_id,
            "amount": amount,
            "currency": "INR",
            "status": status,
            "created_at": created_at if created_at is not None else int(time.time()),
        }
        return payment_id


class FundAccountApi:
    """``httpx.MockTransport`` handler for the contacts/fund-account endpoints."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.validation = {"id": "fav_000001", "status": "completed", "results": {
            "account_status": "active",
            "registered_name": "Bright Minds Coaching",
        }}
        self.error: Optional[str] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error:
            return httpx.Response(400, json={"error": {"code": "BAD_REQUEST_ERROR", "description": self.error}})
        path = request.url.path
        if path.endswith("/contacts"):
            return httpx.Response(200, json={"id": "cont_000001", "entity": "contact"})
        if path.endswith("/fund_accounts"):
            return httpx.Response(200, json={"id": "fa_000001", "entity": "fund_account"})
        if path.endswith("/fund_accounts/validations"):
            return httpx.Response(200, json=self.validation)
        return httpx.Response(404, json={"error": {"description": "not found"}})


def make_gateway(client: FakeRazorpayClient, fund_api: Optional[FundAccountApi] = None) -> RazorpayGateway:
    http = httpx.Client(
        base_url="https://api.razorpay.test/v1",
        transport=httpx.MockTransport(fund_api or FundAccountApi()),
    )
    return RazorpayGateway(
        key_id=KEY_ID,
        key_secret=KEY_SECRET,
        webhook_secret=WEBHOOK_SECRET,
        client=client,
        http_client=http,
    )


def sign_payment(order_id: str, payment_id: str) -> str:
    return compute_signature(KEY_SECRET, f"{order_id}|{payment_id}")


def sign_webhook(body: bytes) -> str:
    return hmac.new(WEBHOOK_SECRET.encode(), body, hashlib.sha256).hexdigest()


def webhook_body(event: str, **entities: Dict[str, Any]) -> bytes:
    payload = {"event": event, "payload": {name: {"entity": entity} for name, entity in entities.items()}}
    return json.dumps(payload).encode()


# ==================== Factories ====================

def make_coaching(db, owner_user_id: str = "owner-1", activated: bool = True, **fields) -> Coaching:
    coaching = Coaching(
        name=fields.pop("name", "Bright Minds Coaching"),
        owner_user_id=owner_user_id,
        razorpay_activated=activated,
        platform_fee_percent=fields.pop("platform_fee_percent", Decimal("1.00")),
        **fields,
    )
    db.add(coaching)
    db.commit()
    return coaching


def make_member(
    db,
    coaching: Coaching,
    user_id: Optional[str],
    role: CoachingRole = CoachingRole.STUDENT,
    name: str = "Asha",
    ward: Optional[Ward] = None,
) -> CoachingMember:
    member = CoachingMember(
        coaching_id=coaching.id,
        user_id=user_id,
        ward_id=ward.id if ward else None,
        role=role,
        name=name,
    )
    db.add(member)
    db.commit()
    return member


def make_ward(db, parent_user_id: str, name: str = "Kabir") -> Ward:
    ward = Ward(parent_user_id=parent_user_id, name=name)
    db.add(ward)
    db.commit()
    return ward


def make_structure(db, coaching: Coaching, amount: str = "1000.00", **fields) -> FeeStructure:
    structure = FeeStructure(
        coaching_id=coaching.id,
        name=fields.pop("name", "Tuition"),
        amount=Decimal(amount),
        cycle=fields.pop("cycle", FeeCycle.MONTHLY),
        tax_type=fields.pop("tax_type", TaxType.NONE),
        **fields,
    )
    db.add(structure)
    db.commit()
    return structure


def make_assignment(db, coaching: Coaching, member: CoachingMember, structure: FeeStructure) -> FeeAssignment:
    assignment = FeeAssignment(
        coaching_id=coaching.id,
        member_id=member.id,
        fee_structure_id=structure.id,
        start_date=date(2025, 4, 1),
    )
    db.add(assignment)
    db.commit()
    return assignment


def make_record(
    db,
    assignment: FeeAssignment,
    final_amount: str = "1000.00",
    due_date: date = date(2030, 1, 1),
    paid_amount: str = "0.00",
    status: FeeRecordStatus = FeeRecordStatus.PENDING,
    title: str = "Tuition - Jan",
) -> FeeRecord:
    record = FeeRecord(
        coaching_id=assignment.coaching_id,
        assignment_id=assignment.id,
        member_id=assignment.member_id,
        title=title,
        base_amount=Decimal(final_amount),
        final_amount=Decimal(final_amount),
        paid_amount=Decimal(paid_amount),
        status=status,
        due_date=due_date,
    )
    db.add(record)
    db.commit()
    return record


class FakeCheckoutSDK:
    """Records checkout options and lets tests fire the SDK's event callbacks."""

    def __init__(self, on_open=None, fail_open=None):
        self.handlers = {}
        self.opened = []
        self.cleared = 0
        self.on_open = on_open
        self.fail_open = fail_open

    def on(self, event, handler):
        self.handlers[event] = handler

    def open(self, options):
        if self.fail_open:
            raise self.fail_open
        self.opened.append(options)
        if self.on_open:
            self.on_open(self)

    def clear(self):
        self.handlers = {}
        self.cleared += 1

    def emit(self, event, payload=None):
        self.handlers[event](payload)
