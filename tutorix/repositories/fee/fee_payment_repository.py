"""Payment and refund ledger queries."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select

from tutorix.models.base.enums import PaymentMode
from tutorix.models.fee import FeePayment, FeeRefund
from tutorix.repositories.base import BaseRepository
from tutorix.utils.money import to_decimal


class FeePaymentRepository(BaseRepository[FeePayment]):
    model = FeePayment

    def get_for_record(self, payment_id: str, record_id: str) -> Optional[FeePayment]:
        return self.find_one(id=payment_id, record_id=record_id)

    def find_gateway_payment(self, record_id: str, razorpay_payment_id: str) -> Optional[FeePayment]:
        return self.find_one(record_id=record_id, razorpay_payment_id=razorpay_payment_id)

    def list_for_records(self, record_ids: Iterable[str]) -> List[FeePayment]:
        ids = list(record_ids)
        if not ids:
            return []
        stmt = (
            select(FeePayment)
            .where(FeePayment.record_id.in_(ids))
            .order_by(FeePayment.paid_at, FeePayment.id)
        )
        return list(self.db.scalars(stmt))

    def list_online_for_record(self, record_id: str) -> List[FeePayment]:
        stmt = (
            select(FeePayment)
            .where(FeePayment.record_id == record_id)
            .where(FeePayment.razorpay_payment_id.is_not(None))
            .order_by(FeePayment.paid_at.desc(), FeePayment.id)
        )
        return list(self.db.scalars(stmt))

    def list_by_gateway_payment_ids(self, razorpay_payment_ids: Iterable[str]) -> List[FeePayment]:
        ids = list(razorpay_payment_ids)
        if not ids:
            return []
        stmt = select(FeePayment).where(FeePayment.razorpay_payment_id.in_(ids))
        return list(self.db.scalars(stmt))

    def list_online_paid_between(self, start: datetime, end: datetime) -> List[FeePayment]:
        stmt = (
            select(FeePayment)
            .where(FeePayment.razorpay_payment_id.is_not(None))
            .where(FeePayment.paid_at >= start)
            .where(FeePayment.paid_at <= end)
        )
        return list(self.db.scalars(stmt))

    def list_for_coaching_since(self, coaching_id: str, since: datetime) -> List[FeePayment]:
        stmt = (
            select(FeePayment)
            .where(FeePayment.coaching_id == coaching_id)
            .where(FeePayment.paid_at >= since)
            .order_by(FeePayment.paid_at)
        )
        return list(self.db.scalars(stmt))

    def totals_by_mode(self, coaching_id: str) -> Dict[PaymentMode, Dict[str, object]]:
        """Count and amount collected per payment mode."""
        stmt = (
            select(FeePayment.mode, func.count(FeePayment.id), func.coalesce(func.sum(FeePayment.amount), 0))
            .where(FeePayment.coaching_id == coaching_id)
            .group_by(FeePayment.mode)
        )
        return {
            mode: {"count": int(count), "amount": to_decimal(total or 0)}
            for mode, count, total in self.db.execute(stmt)
        }


class FeeRefundRepository(BaseRepository[FeeRefund]):
    model = FeeRefund

    def total_for_payment(self, payment_id: str) -> Decimal:
        stmt = select(func.coalesce(func.sum(FeeRefund.amount), 0)).where(FeeRefund.payment_id == payment_id)
        return Decimal(str(self.db.scalar(stmt) or 0)).quantize(Decimal("0.01"))

    def total_for_coaching(self, coaching_id: str) -> Decimal:
        stmt = select(func.coalesce(func.sum(FeeRefund.amount), 0)).where(FeeRefund.coaching_id == coaching_id)
        return to_decimal(self.db.scalar(stmt) or 0)

    def list_for_records(self, record_ids: Iterable[str]) -> List[FeeRefund]:
        ids = list(record_ids)
        if not ids:
            return []
        stmt = (
            select(FeeRefund)
            .where(FeeRefund.record_id.in_(ids))
            .order_by(FeeRefund.refunded_at, FeeRefund.id)
        )
        return list(self.db.scalars(stmt))
