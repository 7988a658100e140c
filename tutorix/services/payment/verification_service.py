"""
Checkout verification and payment crediting.

Crediting happens in one transaction per gateway payment: ledger rows,
record balances and the order's status change together or not at all.
The unique ``(record_id, razorpay_payment_id)`` constraint turns a racing
duplicate into an "already processed" answer instead of a double credit;
any other integrity failure is reported as a conflict so the caller retries.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tutorix.core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    SignatureInvalidError,
)
from tutorix.core.logging import get_logger, log_security_event
from tutorix.models.base.enums import PAYABLE_STATUSES, GatewayOrderStatus, PaymentMode
from tutorix.models.fee import FeePayment, FeeRecord
from tutorix.models.payment import GatewayOrder
from tutorix.repositories.coaching import CoachingMemberRepository
from tutorix.repositories.fee import FeePaymentRepository, FeeRecordRepository
from tutorix.repositories.payment import GatewayOrderRepository, ReceiptSequenceRepository
from tutorix.services.common import UnitOfWork
from tutorix.services.gateway import RazorpayGateway
from tutorix.services.notification import NotificationService, NotificationType
from tutorix.services.payment.allocation import Allocation, allocate_payment, order_for_allocation
from tutorix.services.payment.ledger import apply_credit, next_receipt_no
from tutorix.services.payment.settlement_service import SettlementService
from tutorix.utils.datetime_utils import utc_now
from tutorix.utils.money import from_paise, to_paise

logger = get_logger(__name__)

CAPTURED = "captured"


@dataclass
class CreditOutcome:
    already_processed: bool
    records: List[FeeRecord]
    payments: List[FeePayment] = field(default_factory=list)
    allocations: List[Allocation] = field(default_factory=list)
    unallocated_paise: int = 0


class VerificationService:
    """Verifies checkout callbacks and credits the covered fee records."""

    def __init__(self, db: Session, gateway: RazorpayGateway, settlement: Optional[SettlementService] = None):
        self.db = db
        self.gateway = gateway
        self.settlement = settlement or SettlementService(db, gateway)
        self.records = FeeRecordRepository(db)
        self.orders = GatewayOrderRepository(db)
        self.members = CoachingMemberRepository(db)
        self.notifications = NotificationService(db)

    # ==================== Checks ====================

    def _check_signature(self, order_id: str, payment_id: str, signature: str, **context: Any) -> None:
        if not self.gateway.verify_payment_signature(order_id, payment_id, signature):
            log_security_event(
                "payment_signature_mismatch",
                order_id=order_id,
                payment_id=payment_id,
                **context,
            )
            raise SignatureInvalidError()

    def _captured_amount(self, payment_id: str, order: GatewayOrder) -> int:
        remote = self.gateway.fetch_payment(payment_id)
        if remote.get("order_id") and remote["order_id"] != order.razorpay_order_id:
            raise InvalidStateError("Payment does not belong to this order")
        if remote.get("status") != CAPTURED:
            raise InvalidStateError(
                "Payment has not been captured yet", str(remote.get("status"))
            )
        return int(remote.get("amount", 0))

    def _load_order(self, coaching_id: str, order_id: str) -> GatewayOrder:
        order = self.orders.get_by_gateway_id(order_id, coaching_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    # ==================== Crediting ====================

    def _plan(self, order: GatewayOrder, records: List[FeeRecord], captured_paise: int) -> Tuple[List[Allocation], int]:
        """
        Split a capture across the order's records.

        A record takes at most the amount planned for it when the order was
        created and never more than its current balance, so a counter payment
        made while checkout was open cannot push a record past its final
        amount. Whatever does not fit comes back as the unallocated surplus.
        """
        planned = {item.record_id: item.amount_paise for item in order.items}
        caps = {
            r.id: max(0, min(planned.get(r.id, 0), to_paise(r.balance))) if r.status in PAYABLE_STATUSES else 0
            for r in records
        }
        allocatable = min(captured_paise, sum(caps.values()))
        return allocate_payment(records, caps, allocatable), captured_paise - allocatable

    def _order_records(self, order: GatewayOrder) -> List[FeeRecord]:
        return order_for_allocation(self.records.get_many_for_coaching(order.record_ids, order.coaching_id))

    def _already_processed(self, order: GatewayOrder) -> CreditOutcome:
        records = self._order_records(order)
        return CreditOutcome(already_processed=True, records=records)

    def _payment_exists(self, order: GatewayOrder, payment_id: str) -> bool:
        ledger = FeePaymentRepository(self.db)
        return any(ledger.find_gateway_payment(record_id, payment_id) is not None for record_id in order.record_ids)

    def record_captured_payment(
        self,
        order: GatewayOrder,
        payment_id: str,
        captured_paise: int,
        signature: Optional[str] = None,
    ) -> CreditOutcome:
        """
        Credit a captured gateway payment to the order's records exactly once.

        The order and its records are re-read under row locks, so balances
        are planned and credited against committed values even when another
        payment for the same record lands at the same time.
        """
        if order.payment_recorded:
            return self._already_processed(order)

        now = utc_now()
        payments: List[FeePayment] = []

        try:
            with UnitOfWork(self.db) as uow:
                uow.get_repo(GatewayOrderRepository).get_for_update(order.id)
                if order.payment_recorded:
                    return self._already_processed(order)

                records = order_for_allocation(
                    uow.get_repo(FeeRecordRepository).lock_many_for_coaching(order.record_ids, order.coaching_id)
                )
                if len(records) != len(order.record_ids):
                    raise NotFoundError("FeeRecord", ",".join(order.record_ids))

                allocations, unallocated = self._plan(order, records, captured_paise)
                by_id = {r.id: r for r in records}
                ledger = uow.get_repo(FeePaymentRepository)
                receipts = uow.get_repo(ReceiptSequenceRepository)
                for allocation in allocations:
                    record = by_id[allocation.record_id]
                    amount = from_paise(allocation.amount_paise)
                    payment = ledger.add(FeePayment(
                        coaching_id=order.coaching_id,
                        record_id=record.id,
                        amount=amount,
                        mode=PaymentMode.RAZORPAY,
                        razorpay_payment_id=payment_id,
                        razorpay_order_id=order.razorpay_order_id,
                        receipt_no=next_receipt_no(receipts, order.coaching_id),
                        paid_at=now,
                        recorded_by_user_id=order.user_id,
                    ))
                    apply_credit(record, amount, now)
                    payments.append(payment)

                order.status = GatewayOrderStatus.PAID
                order.payment_recorded = True
                order.razorpay_payment_id = payment_id
                order.razorpay_signature = signature
                order.paid_at = now
                order.unallocated_paise = unallocated
        except IntegrityError as exc:
            if not self._payment_exists(order, payment_id):
                logger.error("Payment could not be recorded", extra={
                    "order_id": order.razorpay_order_id,
                    "payment_id": payment_id,
                    "error": str(exc.orig),
                })
                raise ConflictError(
                    "Payment could not be recorded, please retry",
                    {"order_id": order.razorpay_order_id, "payment_id": payment_id},
                ) from exc
            logger.info("Payment already recorded by a concurrent request", extra={
                "order_id": order.razorpay_order_id,
                "payment_id": payment_id,
            })
            return self._already_processed(order)

        if unallocated:
            logger.error("Captured amount exceeds the outstanding balance, surplus held for refund", extra={
                "coaching_id": order.coaching_id,
                "order_id": order.razorpay_order_id,
                "payment_id": payment_id,
                "captured_paise": captured_paise,
                "unallocated_paise": unallocated,
            })

        logger.info("Payment recorded", extra={
            "coaching_id": order.coaching_id,
            "order_id": order.razorpay_order_id,
            "payment_id": payment_id,
            "amount_paise": captured_paise,
            "records": [a.record_id for a in allocations],
        })

        self.settlement.route_payment(order, payments, captured_paise - unallocated)
        self._notify_payers(order, records, payments)
        return CreditOutcome(
            already_processed=False,
            records=records,
            payments=payments,
            allocations=allocations,
            unallocated_paise=unallocated,
        )

    def _notify_payers(self, order: GatewayOrder, records: List[FeeRecord], payments: List[FeePayment]) -> None:
        by_id = {r.id: r for r in records}
        for payment in payments:
            record = by_id[payment.record_id]
            self.notifications.notify(
                order.coaching_id,
                self.members.payer_user_id(record.member),
                NotificationType.PAYMENT_RECEIVED,
                "Payment received",
                f"We received {payment.amount} towards {record.title}. Receipt {payment.receipt_no}.",
            )

    # ==================== Public Operations ====================

    def verify_payment(
        self,
        coaching_id: str,
        record_id: str,
        order_id: str,
        payment_id: str,
        signature: str,
        user_id: str,
    ) -> Dict[str, Any]:
        """Verify a single-record checkout and credit the record."""
        self._check_signature(
            order_id, payment_id, signature,
            coaching_id=coaching_id, record_id=record_id, user_id=user_id,
        )

        order = self._load_order(coaching_id, order_id)
        if order.is_multi or record_id not in order.record_ids:
            raise NotFoundError("Order", order_id)

        if order.payment_recorded:
            outcome = self._already_processed(order)
        else:
            captured = self._captured_amount(payment_id, order)
            if captured != order.amount_paise:
                logger.error("Captured amount differs from order amount", extra={
                    "order_id": order_id,
                    "payment_id": payment_id,
                    "captured_paise": captured,
                    "order_paise": order.amount_paise,
                })
                raise InvalidStateError("Captured amount does not match the order amount")
            outcome = self.record_captured_payment(order, payment_id, captured, signature)

        return {
            "already_processed": outcome.already_processed,
            "record": outcome.records[0],
            "payment": outcome.payments[0] if outcome.payments else None,
        }

    def verify_multi_payment(
        self,
        coaching_id: str,
        order_id: str,
        payment_id: str,
        signature: str,
        user_id: str,
    ) -> Dict[str, Any]:
        """Verify a multi-pay checkout and split the captured amount across its records."""
        self._check_signature(order_id, payment_id, signature, coaching_id=coaching_id, user_id=user_id)

        order = self._load_order(coaching_id, order_id)
        if not order.is_multi:
            raise NotFoundError("Order", order_id)

        if order.payment_recorded:
            outcome = self._already_processed(order)
        else:
            captured = self._captured_amount(payment_id, order)
            if captured <= 0 or captured > order.amount_paise:
                raise InvalidStateError("Captured amount does not match the order amount")
            outcome = self.record_captured_payment(order, payment_id, captured, signature)

        return {
            "already_processed": outcome.already_processed,
            "allocations": [
                {"record_id": a.record_id, "amount": from_paise(a.amount_paise)}
                for a in outcome.allocations
            ],
            "records": outcome.records,
            "unallocated_amount": from_paise(outcome.unallocated_paise),
        }

