"""
Fee Service

Handles the fee lifecycle around online collection:
- Fee structure management with plan quota enforcement
- Assignment of structures to members and first-record generation
- Record listing with role-aware visibility
- Offline (counter) payments, refunds and waivers
- Member ledgers, the collection summary and the payer's own fees
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tutorix.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    RefundExceedsPaymentError,
    ValidationError,
)
from tutorix.core.logging import get_logger
from tutorix.core.permissions import ADMIN_ROLES, Principal
from tutorix.core.rate_limiting import QuotaGuard
from tutorix.models.base.enums import FeeCycle, FeeRecordStatus
from tutorix.models.fee import FeeAssignment, FeePayment, FeeRecord, FeeRefund, FeeStructure
from tutorix.repositories.coaching import CoachingMemberRepository
from tutorix.repositories.fee import (
    FeeAssignmentRepository,
    FeePaymentRepository,
    FeeRecordRepository,
    FeeRefundRepository,
    FeeStructureRepository,
)
from tutorix.repositories.payment import ReceiptSequenceRepository
from tutorix.schemas.fee import (
    FeeAssignmentCreate,
    FeeStructureCreate,
    FeeStructureUpdate,
    OfflinePaymentRequest,
    OfflineRefundRequest,
)
from tutorix.services.common import UnitOfWork
from tutorix.services.common.access import AccessService
from tutorix.services.fee.quota import FEE_STRUCTURES
from tutorix.services.fee.tax import compute_tax
from tutorix.services.notification import NotificationService, NotificationType
from tutorix.services.payment.ledger import apply_credit, apply_debit, next_receipt_no
from tutorix.utils.datetime_utils import today_ist, utc_now
from tutorix.utils.money import ZERO, to_decimal

logger = get_logger(__name__)


def _record_title(structure: FeeStructure, start: date) -> str:
    if structure.cycle is FeeCycle.ONCE:
        return structure.name
    return f"{structure.name} - {start:%b %Y}"


def _normalized(field: str, value: Any) -> Any:
    if field == "line_items":
        return [{"label": i["label"], "amount": str(to_decimal(i["amount"]))} for i in (value or [])]
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return to_decimal(value)
    return value


class FeeService:
    """
    Fee structures, assignments, records and offline collection.

    Every operation resolves the caller's role first; admin-only operations
    raise ``ForbiddenError`` for everyone else.
    """

    def __init__(self, db: Session, quota: Optional[QuotaGuard] = None):
        self.db = db
        self.quota = quota
        self.access = AccessService(db)
        self.structures = FeeStructureRepository(db)
        self.assignments = FeeAssignmentRepository(db)
        self.records = FeeRecordRepository(db)
        self.payments = FeePaymentRepository(db)
        self.refunds = FeeRefundRepository(db)
        self.members = CoachingMemberRepository(db)
        self.notifications = NotificationService(db)

    def _admin(self, coaching_id: str, user_id: str) -> Principal:
        self.access.get_coaching(coaching_id)
        return self.access.require(coaching_id, user_id, ADMIN_ROLES)

    def _structure(self, coaching_id: str, structure_id: str) -> FeeStructure:
        structure = self.structures.get_for_coaching(structure_id, coaching_id)
        if structure is None:
            raise NotFoundError("FeeStructure", structure_id)
        return structure

    def _record(self, coaching_id: str, record_id: str) -> FeeRecord:
        record = self.records.get_for_coaching(record_id, coaching_id)
        if record is None:
            raise NotFoundError("FeeRecord", record_id)
        return record

    # ==================== Structures ====================

    def list_structures(self, coaching_id: str, user_id: str, include_inactive: bool = False) -> List[FeeStructure]:
        self._admin(coaching_id, user_id)
        return self.structures.list_for_coaching(coaching_id, include_inactive)

    def create_structure(self, coaching_id: str, user_id: str, request: FeeStructureCreate) -> FeeStructure:
        self._admin(coaching_id, user_id)
        if self.quota is not None:
            self.quota.check(coaching_id, FEE_STRUCTURES)

        data = request.model_dump(mode="python")
        data["line_items"] = _normalized("line_items", data["line_items"])
        data["installment_amounts"] = [str(a) for a in data["installment_amounts"]]

        with UnitOfWork(self.db) as uow:
            structure = uow.get_repo(FeeStructureRepository).add(FeeStructure(coaching_id=coaching_id, **data))

        if self.quota is not None:
            self.quota.invalidate(coaching_id)
        logger.info("Fee structure created", extra={
            "coaching_id": coaching_id,
            "structure_id": structure.id,
            "amount": str(structure.amount),
        })
        return structure

    def update_structure(
        self,
        coaching_id: str,
        structure_id: str,
        user_id: str,
        request: FeeStructureUpdate,
    ) -> FeeStructure:
        """
        Apply a partial update.

        Billing fields are frozen once the structure has an assignment, so
        records already generated keep matching their template.
        """
        self._admin(coaching_id, user_id)
        structure = self._structure(coaching_id, structure_id)

        patch = request.model_dump(exclude_unset=True, mode="python")
        patch = {k: v for k, v in patch.items() if v is not None or k == "description"}
        changes = {
            key: value
            for key, value in patch.items()
            if _normalized(key, value) != _normalized(key, getattr(structure, key))
        }
        if not changes:
            return structure

        frozen = sorted(k for k in changes if k in FeeStructure.BILLING_FIELDS)
        if frozen and self.structures.is_assigned(structure.id):
            raise InvalidStateError(
                f"Cannot change {', '.join(frozen)} on a fee structure that is already assigned"
            )

        if "line_items" in changes:
            changes["line_items"] = _normalized("line_items", changes["line_items"])
        if "installment_amounts" in changes:
            changes["installment_amounts"] = [str(a) for a in changes["installment_amounts"] or []]

        with UnitOfWork(self.db):
            for key, value in changes.items():
                setattr(structure, key, value)

        logger.info("Fee structure updated", extra={
            "coaching_id": coaching_id,
            "structure_id": structure.id,
            "fields": sorted(changes),
        })
        return structure

    def delete_structure(self, coaching_id: str, structure_id: str, user_id: str) -> None:
        self._admin(coaching_id, user_id)
        structure = self._structure(coaching_id, structure_id)
        if self.structures.is_assigned(structure.id):
            raise InvalidStateError("Fee structure is assigned to members and cannot be deleted")

        with UnitOfWork(self.db) as uow:
            uow.get_repo(FeeStructureRepository).delete(structure)

        if self.quota is not None:
            self.quota.invalidate(coaching_id)
        logger.info("Fee structure deleted", extra={"coaching_id": coaching_id, "structure_id": structure_id})

    # ==================== Assignments ====================

    def assign_fee(self, coaching_id: str, user_id: str, request: FeeAssignmentCreate) -> Dict[str, Any]:
        """Assign a structure to a member and generate the first fee record."""
        self._admin(coaching_id, user_id)
        structure = self._structure(coaching_id, request.fee_structure_id)
        if not structure.is_active:
            raise InvalidStateError("Fee structure is inactive")
        member = self.members.get_for_coaching(request.member_id, coaching_id)
        if member is None:
            raise NotFoundError("CoachingMember", request.member_id)
        if self.assignments.find_existing(structure.id, member.id) is not None:
            raise ConflictError("This fee structure is already assigned to the member")

        base = request.custom_amount if request.custom_amount is not None else Decimal(structure.amount)
        if request.discount_amount > base:
            raise ValidationError(
                "Discount cannot exceed the fee amount",
                field_errors={"discount_amount": [f"maximum {base}"]},
            )
        taxed = compute_tax(base - request.discount_amount, structure.tax_type, structure.gst_rate,
                            structure.supply_type)

        try:
            with UnitOfWork(self.db) as uow:
                assignment = uow.get_repo(FeeAssignmentRepository).add(FeeAssignment(
                    coaching_id=coaching_id,
                    member_id=member.id,
                    fee_structure_id=structure.id,
                    custom_amount=request.custom_amount,
                    discount_amount=request.discount_amount,
                    start_date=request.start_date,
                    end_date=request.end_date,
                ))
                record = uow.get_repo(FeeRecordRepository).add(FeeRecord(
                    coaching_id=coaching_id,
                    assignment_id=assignment.id,
                    member_id=member.id,
                    title=_record_title(structure, request.start_date),
                    base_amount=to_decimal(base),
                    discount_amount=request.discount_amount,
                    fine_amount=ZERO,
                    tax_amount=taxed.tax,
                    cgst=taxed.cgst,
                    sgst=taxed.sgst,
                    igst=taxed.igst,
                    final_amount=taxed.final,
                    paid_amount=ZERO,
                    status=FeeRecordStatus.PENDING,
                    due_date=request.start_date,
                ))
        except IntegrityError:
            raise ConflictError("This fee structure is already assigned to the member")

        logger.info("Fee assigned", extra={
            "coaching_id": coaching_id,
            "assignment_id": assignment.id,
            "member_id": member.id,
            "final_amount": str(record.final_amount),
        })
        return {"assignment": assignment, "record": record}

    def remove_assignment(self, coaching_id: str, assignment_id: str, user_id: str) -> int:
        """Deactivate an assignment and drop its untouched records."""
        self._admin(coaching_id, user_id)
        assignment = self.assignments.get_for_coaching(assignment_id, coaching_id)
        if assignment is None:
            raise NotFoundError("FeeAssignment", assignment_id)

        with UnitOfWork(self.db) as uow:
            assignment.is_active = False
            removed = uow.get_repo(FeeRecordRepository).delete_unpaid_for_assignment(assignment.id)
        self.db.expire_all()

        logger.info("Fee assignment removed", extra={
            "coaching_id": coaching_id,
            "assignment_id": assignment_id,
            "records_removed": removed,
        })
        return removed

    # ==================== Records ====================

    def list_records(
        self,
        coaching_id: str,
        user_id: str,
        status: Optional[FeeRecordStatus] = None,
        member_id: Optional[str] = None,
    ) -> List[FeeRecord]:
        """Admins see every record; students and parents see their own."""
        self.access.get_coaching(coaching_id)
        principal = self.access.resolve(coaching_id, user_id)
        if principal.is_admin:
            return self.records.list_for_coaching(coaching_id, status=status, member_id=member_id)
        if principal.role is None:
            raise ForbiddenError("You are not a member of this coaching")
        return self.records.list_for_coaching(
            coaching_id, status=status, member_id=member_id, member_ids=principal.member_ids
        )

    def get_record(self, coaching_id: str, record_id: str, user_id: str) -> FeeRecord:
        self.access.get_coaching(coaching_id)
        record = self._record(coaching_id, record_id)
        self.access.require_viewer(self.access.resolve(coaching_id, user_id), record)
        return record

    def record_offline_payment(
        self,
        coaching_id: str,
        record_id: str,
        user_id: str,
        request: OfflinePaymentRequest,
    ) -> Dict[str, Any]:
        self._admin(coaching_id, user_id)
        record = self._record(coaching_id, record_id)

        now = utc_now()
        with UnitOfWork(self.db) as uow:
            uow.get_repo(FeeRecordRepository).get_for_update(record.id)
            if record.status in (FeeRecordStatus.PAID, FeeRecordStatus.WAIVED):
                raise InvalidStateError(f"Fee record is already {record.status.value}", record.status.value)
            if request.amount > record.balance:
                raise ValidationError(
                    f"Payment amount cannot exceed the outstanding balance of {record.balance}",
                    field_errors={"amount": [f"maximum {record.balance}"]},
                )
            payment = uow.get_repo(FeePaymentRepository).add(FeePayment(
                coaching_id=coaching_id,
                record_id=record.id,
                amount=request.amount,
                mode=request.mode,
                receipt_no=next_receipt_no(uow.get_repo(ReceiptSequenceRepository), coaching_id),
                paid_at=now,
                recorded_by_user_id=user_id,
                notes=request.notes,
            ))
            apply_credit(record, request.amount, now)

        logger.info("Offline payment recorded", extra={
            "coaching_id": coaching_id,
            "record_id": record.id,
            "amount": str(request.amount),
            "mode": request.mode.value,
            "receipt_no": payment.receipt_no,
        })
        self.notifications.notify(
            coaching_id,
            self.members.payer_user_id(record.member),
            NotificationType.PAYMENT_RECEIVED,
            "Payment received",
            f"We received {payment.amount} towards {record.title}. Receipt {payment.receipt_no}.",
        )
        return {"record": record, "payment": payment}

    def waive_record(self, coaching_id: str, record_id: str, user_id: str, reason: str) -> FeeRecord:
        self._admin(coaching_id, user_id)
        record = self._record(coaching_id, record_id)
        if record.status is FeeRecordStatus.PAID:
            raise InvalidStateError("A paid fee record cannot be waived", record.status.value)
        if record.status is FeeRecordStatus.WAIVED:
            return record

        with UnitOfWork(self.db):
            record.status = FeeRecordStatus.WAIVED
            record.waived_reason = reason

        logger.info("Fee record waived", extra={"coaching_id": coaching_id, "record_id": record.id})
        return record

    # ==================== Offline Refunds ====================

    def record_offline_refund(
        self,
        coaching_id: str,
        record_id: str,
        user_id: str,
        request: OfflineRefundRequest,
    ) -> Dict[str, Any]:
        """
        Record money handed back at the counter against an offline payment.

        Refunds of one payment never add up to more than the payment itself.
        Online payments are refunded through the gateway instead.
        """
        self._admin(coaching_id, user_id)
        record = self._record(coaching_id, record_id)
        payment = self.payments.get_for_record(request.payment_id, record.id)
        if payment is None:
            raise NotFoundError("FeePayment", request.payment_id)
        if payment.razorpay_payment_id:
            raise InvalidStateError("Online payments are refunded through the gateway")

        with UnitOfWork(self.db) as uow:
            uow.get_repo(FeeRecordRepository).get_for_update(record.id)
            refundable = Decimal(payment.amount) - uow.get_repo(FeeRefundRepository).total_for_payment(payment.id)
            amount = request.amount if request.amount is not None else refundable
            if amount <= 0 or amount > refundable or amount > Decimal(record.paid_amount):
                raise RefundExceedsPaymentError(
                    f"Refund amount must be between 0.01 and {min(refundable, Decimal(record.paid_amount))}",
                    refundable=str(refundable),
                )
            refund = uow.get_repo(FeeRefundRepository).add(FeeRefund(
                coaching_id=coaching_id,
                record_id=record.id,
                payment_id=payment.id,
                amount=amount,
                reason=request.reason,
                mode=request.mode,
                refunded_at=utc_now(),
                processed_by_user_id=user_id,
            ))
            apply_debit(record, amount)

        logger.info("Offline refund recorded", extra={
            "coaching_id": coaching_id,
            "record_id": record.id,
            "payment_id": payment.id,
            "amount": str(amount),
            "record_status": record.status.value,
        })
        self.notifications.notify(
            coaching_id,
            self.members.payer_user_id(record.member),
            NotificationType.REFUND_RECORDED,
            "Refund recorded",
            f"A refund of {amount} for {record.title} has been recorded.",
        )
        return {"refund": refund, "record": record}

    # ==================== Reports ====================

    def get_member_ledger(self, coaching_id: str, member_id: str, user_id: str) -> Dict[str, Any]:
        """
        Chronological statement of charges, payments, refunds and waivers.

        Charges and refunds raise the amount owed; payments and waivers
        lower it. The closing balance equals the sum of open record balances.
        """
        self.access.get_coaching(coaching_id)
        principal = self.access.resolve(coaching_id, user_id)
        member = self.members.get_for_coaching(member_id, coaching_id)
        if member is None:
            raise NotFoundError("CoachingMember", member_id)
        if not (principal.is_admin or principal.can_pay_for(member.id)):
            raise ForbiddenError("You do not have access to this member's fees")

        records = self.records.list_for_coaching(coaching_id, member_id=member.id)
        titles = {r.id: r.title for r in records}
        ids = list(titles)

        lines = []
        for r in records:
            lines.append((datetime.combine(r.due_date, time.min), 0, {
                "entry_type": "CHARGE", "record_id": r.id, "debit": Decimal(r.final_amount),
            }))
            if r.status is FeeRecordStatus.WAIVED and r.balance > 0:
                lines.append((datetime.combine(r.due_date, time.min), 3, {
                    "entry_type": "WAIVER", "record_id": r.id, "credit": r.balance,
                    "reference": r.waived_reason,
                }))
        for p in self.payments.list_for_records(ids):
            lines.append((p.paid_at, 1, {
                "entry_type": "PAYMENT", "record_id": p.record_id, "credit": Decimal(p.amount),
                "reference": p.receipt_no, "mode": p.mode,
            }))
        for f in self.refunds.list_for_records(ids):
            lines.append((f.refunded_at, 2, {
                "entry_type": "REFUND", "record_id": f.record_id, "debit": Decimal(f.amount),
                "reference": f.reason, "mode": f.mode,
            }))
        lines.sort(key=lambda line: (line[0], line[1]))

        totals = {"CHARGE": ZERO, "PAYMENT": ZERO, "REFUND": ZERO, "WAIVER": ZERO}
        balance = ZERO
        entries = []
        for occurred_at, _, line in lines:
            debit = to_decimal(line.pop("debit", ZERO))
            credit = to_decimal(line.pop("credit", ZERO))
            balance += debit - credit
            totals[line["entry_type"]] += debit + credit
            entries.append({
                **line,
                "occurred_at": occurred_at,
                "title": titles[line["record_id"]],
                "debit": debit,
                "credit": credit,
                "balance": balance,
            })

        return {
            "member_id": member.id,
            "member_name": member.name,
            "entries": entries,
            "total_charged": totals["CHARGE"],
            "total_paid": totals["PAYMENT"],
            "total_refunded": totals["REFUND"],
            "total_waived": totals["WAIVER"],
            "balance": balance,
        }

    def get_summary(self, coaching_id: str, user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
        """Collection totals for the coaching dashboard."""
        self._admin(coaching_id, user_id)
        today = today or today_ist()

        collected = self.payments.totals_by_mode(coaching_id)
        total_collected = sum((m["amount"] for m in collected.values()), ZERO)
        total_refunded = self.refunds.total_for_coaching(coaching_id)
        outstanding = self.records.outstanding_totals(coaching_id, today)

        year, month = divmod(today.year * 12 + today.month - 12, 12)
        since = datetime(year, month + 1, 1)
        monthly: Dict[str, Decimal] = {}
        for p in self.payments.list_for_coaching_since(coaching_id, since):
            month = f"{p.paid_at:%Y-%m}"
            monthly[month] = monthly.get(month, ZERO) + Decimal(p.amount)

        return {
            "status_breakdown": self.records.status_totals(coaching_id),
            "total_collected": total_collected,
            "total_refunded": total_refunded,
            "net_collected": total_collected - total_refunded,
            "total_pending": outstanding["pending"],
            "total_overdue": outstanding["overdue"],
            "payment_modes": collected,
            "monthly_collection": [{"month": m, "amount": to_decimal(a)} for m, a in sorted(monthly.items())],
        }

    def get_my_fees(self, coaching_id: str, user_id: str) -> List[FeeRecord]:
        """Records the caller pays for: their own and their wards'."""
        self.access.get_coaching(coaching_id)
        principal = self.access.resolve(coaching_id, user_id)
        if not principal.member_ids:
            return []
        return self.records.list_for_coaching(coaching_id, member_ids=principal.member_ids)
