"""
Gateway order creation and order bookkeeping.

An order is created remotely first; only a successful gateway response is
mirrored locally, so a gateway failure leaves no trace in the database.
"""

import time
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from tutorix.config.settings import Settings, settings as default_settings
from tutorix.core.exceptions import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from tutorix.core.logging import get_logger
from tutorix.core.permissions import ADMIN_ROLES, is_role_allowed
from tutorix.models.base.enums import FeeRecordStatus, GatewayOrderStatus
from tutorix.models.coaching import Coaching
from tutorix.models.fee import FeeRecord
from tutorix.models.payment import GatewayOrder, GatewayOrderItem
from tutorix.repositories.fee import FeePaymentRepository, FeeRecordRepository
from tutorix.repositories.payment import GatewayOrderRepository
from tutorix.services.common import UnitOfWork
from tutorix.services.common.access import AccessService
from tutorix.services.gateway import RazorpayGateway
from tutorix.services.payment.allocation import order_for_allocation
from tutorix.utils.datetime_utils import utc_now
from tutorix.utils.money import from_paise, to_decimal, to_paise

logger = get_logger(__name__)

INSTALLMENT_TOLERANCE = Decimal("1.00")


def _record_summary(record: FeeRecord, pay_amount: Optional[Decimal] = None) -> Dict[str, Any]:
    return {
        "id": record.id,
        "title": record.title,
        "due_date": record.due_date,
        "balance": record.balance,
        "pay_amount": pay_amount if pay_amount is not None else record.balance,
    }


class OrderService:
    """Creates gateway orders for single records and multi-record bundles."""

    def __init__(self, db: Session, gateway: RazorpayGateway, config: Optional[Settings] = None):
        self.db = db
        self.gateway = gateway
        self.config = config or default_settings
        self.access = AccessService(db)
        self.records = FeeRecordRepository(db)
        self.orders = GatewayOrderRepository(db)
        self.payments = FeePaymentRepository(db)

    # ==================== Helpers ====================

    def _online_coaching(self, coaching_id: str) -> Coaching:
        coaching = self.access.get_coaching(coaching_id)
        if not coaching.razorpay_activated:
            raise ForbiddenError("Online payments are not enabled for this coaching")
        return coaching

    def _checkout_payload(self, order: GatewayOrder) -> Dict[str, Any]:
        return {
            "order_id": order.razorpay_order_id,
            "internal_order_id": order.id,
            "amount_paise": order.amount_paise,
            "currency": order.currency,
            "key": self.gateway.key_id,
        }

    def _validate_partial_amount(self, record: FeeRecord, amount: Decimal, balance: Decimal) -> None:
        if amount <= 0:
            raise ValidationError("Payment amount must be greater than zero")
        if amount > balance:
            raise ValidationError(f"Payment amount cannot exceed the outstanding balance of {balance}")
        if amount == balance:
            return

        structure = record.assignment.fee_structure
        if not structure.allow_installments:
            raise ValidationError("Partial payments are not allowed for this fee")
        allowed = [to_decimal(v) for v in (structure.installment_amounts or [])]
        if allowed and not any(abs(amount - v) <= INSTALLMENT_TOLERANCE for v in allowed):
            raise ValidationError(
                "Amount does not match any allowed installment",
                field_errors={"amount": [f"allowed: {', '.join(str(v) for v in allowed)}"]},
            )

    def _persist_order(
        self,
        coaching: Coaching,
        user_id: str,
        remote: Dict[str, Any],
        receipt: str,
        items: Sequence[tuple],
        is_multi: bool,
    ) -> GatewayOrder:
        with UnitOfWork(self.db) as uow:
            order = GatewayOrder(
                coaching_id=coaching.id,
                user_id=user_id,
                razorpay_order_id=remote["id"],
                amount_paise=int(remote["amount"]),
                currency=remote.get("currency", self.config.CURRENCY),
                receipt=receipt,
                is_multi=is_multi,
                platform_fee_percent=coaching.platform_fee_percent,
                status=GatewayOrderStatus.CREATED,
            )
            order.items = [
                GatewayOrderItem(record_id=record_id, amount_paise=amount_paise, position=position)
                for position, (record_id, amount_paise) in enumerate(items)
            ]
            uow.get_repo(GatewayOrderRepository).add(order)
        return order

    # ==================== Single Record ====================

    def create_order(
        self,
        coaching_id: str,
        record_id: str,
        user_id: str,
        amount: Optional[Decimal] = None,
    ) -> Dict[str, Any]:
        """Create (or reuse) a gateway order for one fee record."""
        coaching = self._online_coaching(coaching_id)

        record = self.records.get_for_coaching(record_id, coaching_id)
        if record is None:
            raise NotFoundError("FeeRecord", record_id)
        if record.status in (FeeRecordStatus.PAID, FeeRecordStatus.WAIVED):
            raise InvalidStateError(f"Fee record is already {record.status.value}", record.status.value)

        principal = self.access.resolve(coaching_id, user_id, coaching)
        self.access.require_payer(principal, record)

        balance = record.balance
        if balance <= 0:
            raise InvalidStateError("Nothing is due on this fee record", record.status.value)

        pay_amount = balance
        if amount is not None:
            pay_amount = to_decimal(amount)
            self._validate_partial_amount(record, pay_amount, balance)
        amount_paise = to_paise(pay_amount)

        since = utc_now() - timedelta(minutes=self.config.ORDER_REUSE_WINDOW_MINUTES)
        existing = self.orders.find_reusable(record.id, user_id, amount_paise, since)
        if existing is not None:
            logger.info("Reusing open gateway order", extra={
                "coaching_id": coaching_id,
                "record_id": record.id,
                "order_id": existing.razorpay_order_id,
            })
            return {**self._checkout_payload(existing), "record": _record_summary(record, pay_amount)}

        receipt = f"rcpt_{record.id[:8]}_{int(time.time())}"
        remote = self.gateway.create_order(
            amount_paise,
            receipt,
            notes={"coaching_id": coaching_id, "record_id": record.id, "user_id": user_id},
        )
        order = self._persist_order(coaching, user_id, remote, receipt, [(record.id, amount_paise)], is_multi=False)

        logger.info("Gateway order created", extra={
            "coaching_id": coaching_id,
            "record_id": record.id,
            "order_id": order.razorpay_order_id,
            "amount_paise": amount_paise,
        })
        return {**self._checkout_payload(order), "record": _record_summary(record, pay_amount)}

    # ==================== Multi Record ====================

    def create_multi_order(self, coaching_id: str, user_id: str, record_ids: List[str]) -> Dict[str, Any]:
        """Bundle the full balances of several records into one gateway order."""
        unique_ids = list(dict.fromkeys(record_ids))
        if not unique_ids:
            raise ValidationError("At least one fee record is required")
        if len(unique_ids) > self.config.MAX_MULTI_PAY_RECORDS:
            raise ValidationError(f"At most {self.config.MAX_MULTI_PAY_RECORDS} records can be paid together")

        coaching = self._online_coaching(coaching_id)
        records = self.records.get_many_for_coaching(unique_ids, coaching_id)
        found = {r.id for r in records}
        missing = [rid for rid in unique_ids if rid not in found]
        if missing:
            raise NotFoundError("FeeRecord", missing[0])

        principal = self.access.resolve(coaching_id, user_id, coaching)
        for record in records:
            self.access.require_payer(principal, record)
            if not record.is_payable:
                raise InvalidStateError(
                    f"Fee record {record.id} is not payable", record.status.value
                )

        ordered = order_for_allocation(records)
        items = [(r.id, to_paise(r.balance)) for r in ordered]
        total_paise = sum(amount for _, amount in items)

        receipt = f"multi_{user_id[:8]}_{int(time.time())}"
        remote = self.gateway.create_order(
            total_paise,
            receipt,
            notes={"coaching_id": coaching_id, "user_id": user_id, "record_count": str(len(items))},
        )
        order = self._persist_order(coaching, user_id, remote, receipt, items, is_multi=True)

        logger.info("Multi-pay gateway order created", extra={
            "coaching_id": coaching_id,
            "order_id": order.razorpay_order_id,
            "record_count": len(items),
            "amount_paise": total_paise,
        })
        return {
            **self._checkout_payload(order),
            "records": [_record_summary(r) for r in ordered],
        }

    # ==================== Failure Bookkeeping ====================

    def mark_order_failed(
        self,
        coaching_id: str,
        internal_order_id: str,
        reason: Optional[str],
        user_id: str,
    ) -> Dict[str, Any]:
        """Best-effort CREATED -> FAILED transition. Never raises."""
        try:
            order = self.orders.get_by_any_id(coaching_id, internal_order_id)
            if order is None or order.user_id != user_id:
                logger.info("Order to mark failed not found", extra={
                    "coaching_id": coaching_id,
                    "order_ref": internal_order_id,
                })
                return {"ok": False}
            if order.status is not GatewayOrderStatus.CREATED:
                return {"ok": False, "status": order.status.value}

            with UnitOfWork(self.db):
                order.status = GatewayOrderStatus.FAILED
                order.failure_reason = (reason or "Checkout cancelled")[:500]
                order.failed_at = utc_now()

            logger.info("Gateway order marked failed", extra={
                "coaching_id": coaching_id,
                "order_id": order.razorpay_order_id,
                "reason": order.failure_reason,
            })
            return {"ok": True, "status": GatewayOrderStatus.FAILED.value}
        except Exception as exc:
            logger.warning("Could not mark order failed", extra={
                "coaching_id": coaching_id,
                "order_ref": internal_order_id,
                "error": str(exc),
            })
            return {"ok": False}

    # ==================== Reads ====================

    def get_online_payments(self, coaching_id: str, record_id: str, user_id: str) -> List[Dict[str, Any]]:
        record = self.records.get_for_coaching(record_id, coaching_id)
        if record is None:
            raise NotFoundError("FeeRecord", record_id)
        principal = self.access.resolve(coaching_id, user_id)
        self.access.require_viewer(principal, record)

        return [
            {
                "id": p.id,
                "amount": p.amount,
                "mode": p.mode,
                "razorpay_payment_id": p.razorpay_payment_id,
                "razorpay_order_id": p.razorpay_order_id,
                "receipt_no": p.receipt_no,
                "paid_at": p.paid_at,
                "refunded_amount": p.refunded_amount,
                "refundable_amount": p.refundable_amount,
            }
            for p in self.payments.list_online_for_record(record.id)
        ]

    def get_failed_orders(self, coaching_id: str, record_id: str, user_id: str) -> List[Dict[str, Any]]:
        record = self.records.get_for_coaching(record_id, coaching_id)
        if record is None:
            raise NotFoundError("FeeRecord", record_id)
        principal = self.access.resolve(coaching_id, user_id)
        self.access.require_viewer(principal, record)

        orders = self.orders.list_for_record(record.id, GatewayOrderStatus.FAILED)
        if not is_role_allowed(principal.role, ADMIN_ROLES):
            orders = [o for o in orders if o.user_id == user_id]
        return [
            {
                "internal_order_id": o.id,
                "order_id": o.razorpay_order_id,
                "amount": from_paise(o.amount_paise),
                "is_multi": o.is_multi,
                "failure_reason": o.failure_reason,
                "failed_at": o.failed_at,
                "created_at": o.created_at,
            }
            for o in orders
        ]

    def get_config(self) -> Dict[str, Any]:
        return {"key_id": self.gateway.key_id or None, "enabled": self.gateway.enabled}
