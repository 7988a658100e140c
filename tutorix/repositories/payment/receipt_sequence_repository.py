"""Receipt number allocation."""

from sqlalchemy import select

from tutorix.models.payment import ReceiptSequence
from tutorix.repositories.base import BaseRepository


class ReceiptSequenceRepository(BaseRepository[ReceiptSequence]):
    model = ReceiptSequence

    def next_number(self, coaching_id: str, financial_year: str) -> int:
        """Increment and return the counter inside the caller's transaction."""
        stmt = (
            select(ReceiptSequence)
            .where(ReceiptSequence.coaching_id == coaching_id)
            .where(ReceiptSequence.financial_year == financial_year)
            .with_for_update()
        )
        sequence = self.db.scalars(stmt).first()
        if sequence is None:
            sequence = self.add(ReceiptSequence(coaching_id=coaching_id, financial_year=financial_year, last_number=0))
        sequence.last_number += 1
        self.db.flush()
        return sequence.last_number
