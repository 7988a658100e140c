"""Plan quota checks consulted through ``QuotaGuard``."""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from tutorix.core.rate_limiting import QuotaDecision
from tutorix.models.fee import FeeStructure

FEE_STRUCTURES = "fee_structures"


class PlanQuotaChecker:
    """Answers whether a coaching may create more of a counted resource."""

    def __init__(self, db: Session, max_fee_structures: int):
        self.db = db
        self.max_fee_structures = max_fee_structures

    def __call__(self, coaching_id: str, dimension: str) -> QuotaDecision:
        if dimension != FEE_STRUCTURES:
            return QuotaDecision(True)

        stmt = select(func.count()).select_from(FeeStructure).where(FeeStructure.coaching_id == coaching_id)
        used = self.db.scalar(stmt) or 0
        if used >= self.max_fee_structures:
            return QuotaDecision(
                False,
                f"Your plan allows {self.max_fee_structures} fee structures. Upgrade to add more.",
            )
        return QuotaDecision(True)
