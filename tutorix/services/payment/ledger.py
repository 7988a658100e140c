"""
Record status and ledger helpers shared by every credit and debit path.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from tutorix.models.base.enums import FeeRecordStatus
from tutorix.models.fee import FeeRecord
from tutorix.repositories.payment import ReceiptSequenceRepository
from tutorix.utils.datetime_utils import financial_year, today_ist
from tutorix.utils.money import ZERO, to_decimal


def derive_status(paid: Decimal, final: Decimal, due_date: date, today: Optional[date] = None) -> FeeRecordStatus:
    """Status implied by the paid amount."""
    today = today or today_ist()
    if paid >= final:
        return FeeRecordStatus.PAID
    if paid <= ZERO:
        return FeeRecordStatus.OVERDUE if due_date < today else FeeRecordStatus.PENDING
    return FeeRecordStatus.PARTIALLY_PAID


def apply_credit(record: FeeRecord, amount: Decimal, paid_at: datetime) -> None:
    record.paid_amount = to_decimal(Decimal(record.paid_amount) + amount)
    record.status = derive_status(record.paid_amount, Decimal(record.final_amount), record.due_date)
    if record.status is FeeRecordStatus.PAID:
        record.paid_at = paid_at


def apply_debit(record: FeeRecord, amount: Decimal) -> None:
    record.paid_amount = to_decimal(Decimal(record.paid_amount) - amount)
    record.status = derive_status(record.paid_amount, Decimal(record.final_amount), record.due_date)
    if record.status is not FeeRecordStatus.PAID:
        record.paid_at = None


def next_receipt_no(receipts: ReceiptSequenceRepository, coaching_id: str, on: Optional[date] = None) -> str:
    """Allocate the next ``TXR/<FY>/<seq>`` receipt number."""
    fy = financial_year(on or today_ist())
    number = receipts.next_number(coaching_id, fy)
    return f"TXR/{fy}/{number:04d}"
