"""
In-app notifications for payment events.

Delivery is best-effort: failures are logged and never reach the caller.
"""

from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from tutorix.core.logging import get_logger
from tutorix.models.notification import Notification

logger = get_logger(__name__)


class NotificationType(str, Enum):
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    REFUND_INITIATED = "REFUND_INITIATED"
    REFUND_RECORDED = "REFUND_RECORDED"
    PAYMENT_FAILED = "PAYMENT_FAILED"


class NotificationService:
    """
    Persists notifications in their own short transaction.

    Call only after the financial transaction has committed.
    """

    def __init__(self, db: Session):
        self.db = db

    def notify(
        self,
        coaching_id: str,
        user_id: Optional[str],
        type: NotificationType,
        title: str,
        body: str,
    ) -> bool:
        if not user_id:
            return False
        try:
            self.db.add(Notification(
                coaching_id=coaching_id,
                user_id=user_id,
                type=type.value,
                title=title,
                body=body,
            ))
            self.db.commit()
            return True
        except Exception as exc:
            self.db.rollback()
            logger.warning("Notification dispatch failed", extra={
                "coaching_id": coaching_id,
                "notification_type": type.value,
                "error": str(exc),
            })
            return False
