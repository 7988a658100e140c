"""
Online refunds.

The gateway refund is issued first. Only once it has been accepted are the
local refund row, the gateway refund mirror and the record debit written,
together, in one transaction.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from tutorix.core.exceptions import (
    InvalidStateError,
    NotFoundError,
    RefundExceedsPaymentError,
)
from tutorix.core.logging import get_logger
from tutorix.core.permissions import ADMIN_ROLES
from tutorix.models.base.enums import GatewayRefundStatus, PaymentMode
from tutorix.models.fee import FeeRefund
from tutorix.models.payment import GatewayRefund
from tutorix.repositories.coaching import CoachingMemberRepository
from tutorix.repositories.fee import FeePaymentRepository, FeeRecordRepository, FeeRefundRepository
from tutorix.repositories.payment import GatewayRefundRepository
from tutorix.services.common import UnitOfWork
from tutorix.services.common.access import AccessService
from tutorix.services.gateway import RazorpayGateway
from tutorix.services.notification import NotificationService, NotificationType
from tutorix.services.payment.ledger import apply_debit
from tutorix.services.payment.settlement_service import SettlementService
from tutorix.utils.datetime_utils import utc_now
from tutorix.utils.money import to_decimal, to_paise

logger = get_logger(__name__)


class RefundService:
    """Refunds online payments back through the gateway."""

    def __init__(self, db: Session, gateway: RazorpayGateway, settlement: Optional[SettlementService] = None):
        self.db = db
        self.gateway = gateway
        self.settlement = settlement or SettlementService(db, gateway)
        self.access = AccessService(db)
        self.records = FeeRecordRepository(db)
        self.payments = FeePaymentRepository(db)
        self.refunds = FeeRefundRepository(db)
        self.members = CoachingMemberRepository(db)
        self.notifications = NotificationService(db)

    def initiate_online_refund(
        self,
        coaching_id: str,
        record_id: str,
        payment_id: str,
        amount: Optional[Decimal],
        reason: Optional[str],
        user_id: str,
    ) -> Dict[str, Any]:
        """
        Refund part or all of an online payment.

        Args:
            coaching_id: Coaching owning the record
            record_id: Fee record the payment was credited to
            payment_id: Local FeePayment id
            amount: Amount to refund; defaults to the refundable remainder
            reason: Free-text reason stored with the refund
            user_id: Acting owner or admin

        Returns:
            ``{"refund": FeeRefund, "record": FeeRecord}``
        """
        self.access.get_coaching(coaching_id)
        self.access.require(coaching_id, user_id, ADMIN_ROLES)

        record = self.records.get_for_coaching(record_id, coaching_id)
        if record is None:
            raise NotFoundError("FeeRecord", record_id)
        payment = self.payments.get_for_record(payment_id, record.id)
        if payment is None:
            raise NotFoundError("FeePayment", payment_id)
        if not payment.razorpay_payment_id:
            raise InvalidStateError("Only online payments can be refunded through the gateway")

        refundable = Decimal(payment.amount) - self.refunds.total_for_payment(payment.id)
        refund_amount = to_decimal(amount) if amount is not None else refundable
        if refund_amount <= 0 or refund_amount > refundable or refund_amount > Decimal(record.paid_amount):
            raise RefundExceedsPaymentError(
                f"Refund amount must be between 0.01 and {min(refundable, Decimal(record.paid_amount))}",
                refundable=str(refundable),
            )

        refund_paise = to_paise(refund_amount)
        remote = self.gateway.refund(
            payment.razorpay_payment_id,
            refund_paise,
            notes={"coaching_id": coaching_id, "record_id": record.id, "reason": (reason or "")[:200]},
        )
        remote_status = GatewayRefundStatus.PROCESSED if remote.get("status") == "processed" \
            else GatewayRefundStatus.INITIATED

        try:
            with UnitOfWork(self.db) as uow:
                uow.get_repo(FeeRecordRepository).get_for_update(record.id)
                refund = uow.get_repo(FeeRefundRepository).add(FeeRefund(
                    coaching_id=coaching_id,
                    record_id=record.id,
                    payment_id=payment.id,
                    amount=refund_amount,
                    reason=reason,
                    mode=PaymentMode.RAZORPAY,
                    refunded_at=utc_now(),
                    processed_by_user_id=user_id,
                ))
                uow.get_repo(GatewayRefundRepository).add(GatewayRefund(
                    coaching_id=coaching_id,
                    record_id=record.id,
                    payment_id=payment.id,
                    fee_refund_id=refund.id,
                    razorpay_refund_id=remote["id"],
                    amount_paise=refund_paise,
                    status=remote_status,
                ))
                apply_debit(record, refund_amount)
        except Exception:
            logger.critical("Gateway refund succeeded but local bookkeeping failed", extra={
                "coaching_id": coaching_id,
                "record_id": record.id,
                "payment_id": payment.id,
                "razorpay_refund_id": remote.get("id"),
                "amount_paise": refund_paise,
            })
            raise

        logger.info("Online refund initiated", extra={
            "coaching_id": coaching_id,
            "record_id": record.id,
            "razorpay_refund_id": remote["id"],
            "amount_paise": refund_paise,
            "record_status": record.status.value,
        })

        self.settlement.reverse_for_refund(payment.razorpay_payment_id, refund_paise)
        self.notifications.notify(
            coaching_id,
            self.members.payer_user_id(record.member),
            NotificationType.REFUND_INITIATED,
            "Refund initiated",
            f"A refund of {refund_amount} for {record.title} has been initiated.",
        )
        return {"refund": refund, "record": record}
