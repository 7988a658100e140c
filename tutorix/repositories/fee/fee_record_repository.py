"""Fee record queries."""

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, func, select

from tutorix.models.base.enums import PAYABLE_STATUSES, FeeRecordStatus
from tutorix.models.fee import FeeRecord
from tutorix.repositories.base import BaseRepository
from tutorix.utils.money import ZERO, to_decimal


class FeeRecordRepository(BaseRepository[FeeRecord]):
    model = FeeRecord

    def get_for_coaching(self, record_id: str, coaching_id: str) -> Optional[FeeRecord]:
        return self.find_one(id=record_id, coaching_id=coaching_id)

    def get_many_for_coaching(self, record_ids: Iterable[str], coaching_id: str) -> List[FeeRecord]:
        ids = list(record_ids)
        if not ids:
            return []
        stmt = (
            select(FeeRecord)
            .where(FeeRecord.coaching_id == coaching_id)
            .where(FeeRecord.id.in_(ids))
        )
        return list(self.db.scalars(stmt))

    def lock_many_for_coaching(self, record_ids: Iterable[str], coaching_id: str) -> List[FeeRecord]:
        """
        Re-read records under row locks inside the caller's transaction.

        Rows are locked in id order so concurrent crediting paths cannot
        deadlock, and loaded instances are refreshed with committed values.
        """
        ids = sorted(set(record_ids))
        if not ids:
            return []
        stmt = (
            select(FeeRecord)
            .where(FeeRecord.coaching_id == coaching_id)
            .where(FeeRecord.id.in_(ids))
            .order_by(FeeRecord.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(self.db.scalars(stmt))

    def list_for_coaching(
        self,
        coaching_id: str,
        *,
        status: Optional[FeeRecordStatus] = None,
        member_id: Optional[str] = None,
        member_ids: Optional[Iterable[str]] = None,
    ) -> List[FeeRecord]:
        stmt = select(FeeRecord).where(FeeRecord.coaching_id == coaching_id)
        if status is not None:
            stmt = stmt.where(FeeRecord.status == status)
        if member_id is not None:
            stmt = stmt.where(FeeRecord.member_id == member_id)
        if member_ids is not None:
            stmt = stmt.where(FeeRecord.member_id.in_(list(member_ids)))
        stmt = stmt.order_by(FeeRecord.due_date, FeeRecord.created_at, FeeRecord.id)
        return list(self.db.scalars(stmt))

    def delete_unpaid_for_assignment(self, assignment_id: str) -> int:
        stmt = (
            delete(FeeRecord)
            .where(FeeRecord.assignment_id == assignment_id)
            .where(FeeRecord.status == FeeRecordStatus.PENDING)
            .where(FeeRecord.paid_amount == 0)
        )
        result = self.db.execute(stmt, execution_options={"synchronize_session": False})
        return result.rowcount or 0

    def status_totals(self, coaching_id: str) -> Dict[FeeRecordStatus, Dict[str, object]]:
        """Record count, billed and paid amounts per status."""
        stmt = (
            select(
                FeeRecord.status,
                func.count(FeeRecord.id),
                func.coalesce(func.sum(FeeRecord.final_amount), 0),
                func.coalesce(func.sum(FeeRecord.paid_amount), 0),
            )
            .where(FeeRecord.coaching_id == coaching_id)
            .group_by(FeeRecord.status)
        )
        return {
            status: {"count": int(count), "billed": to_decimal(billed or 0), "paid": to_decimal(paid or 0)}
            for status, count, billed, paid in self.db.execute(stmt)
        }

    def outstanding_totals(self, coaching_id: str, today: date) -> Dict[str, Decimal]:
        """Unpaid balance of payable records, split by whether the due date has passed."""
        stmt = (
            select(FeeRecord.due_date, FeeRecord.final_amount - FeeRecord.paid_amount)
            .where(FeeRecord.coaching_id == coaching_id)
            .where(FeeRecord.status.in_(PAYABLE_STATUSES))
        )
        totals = {"pending": ZERO, "overdue": ZERO}
        for due_date, balance in self.db.execute(stmt):
            key = "overdue" if due_date < today else "pending"
            totals[key] += to_decimal(balance or 0)
        return totals
