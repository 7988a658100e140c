"""Webhook audit log persistence."""

from sqlalchemy import select

from tutorix.models.payment import WebhookLog
from tutorix.repositories.base import BaseRepository


class WebhookLogRepository(BaseRepository[WebhookLog]):
    model = WebhookLog

    def was_processed(self, event_id: str) -> bool:
        """Whether a signed delivery with this event id was already handled."""
        stmt = (
            select(WebhookLog.id)
            .where(WebhookLog.event_id == event_id)
            .where(WebhookLog.signature_valid.is_(True))
            .where(WebhookLog.processed.is_(True))
            .limit(1)
        )
        return self.db.scalars(stmt).first() is not None
