"""Fee structure and assignment queries."""

from typing import List, Optional

from sqlalchemy import select

from tutorix.models.fee import FeeAssignment, FeeStructure
from tutorix.repositories.base import BaseRepository


class FeeStructureRepository(BaseRepository[FeeStructure]):
    model = FeeStructure

    def get_for_coaching(self, structure_id: str, coaching_id: str) -> Optional[FeeStructure]:
        return self.find_one(id=structure_id, coaching_id=coaching_id)

    def list_for_coaching(self, coaching_id: str, include_inactive: bool = False) -> List[FeeStructure]:
        stmt = select(FeeStructure).where(FeeStructure.coaching_id == coaching_id)
        if not include_inactive:
            stmt = stmt.where(FeeStructure.is_active.is_(True))
        return list(self.db.scalars(stmt.order_by(FeeStructure.created_at, FeeStructure.id)))

    def is_assigned(self, structure_id: str) -> bool:
        stmt = select(FeeAssignment.id).where(FeeAssignment.fee_structure_id == structure_id).limit(1)
        return self.db.scalars(stmt).first() is not None


class FeeAssignmentRepository(BaseRepository[FeeAssignment]):
    model = FeeAssignment

    def get_for_coaching(self, assignment_id: str, coaching_id: str) -> Optional[FeeAssignment]:
        return self.find_one(id=assignment_id, coaching_id=coaching_id)

    def find_existing(self, structure_id: str, member_id: str) -> Optional[FeeAssignment]:
        return self.find_one(fee_structure_id=structure_id, member_id=member_id)
