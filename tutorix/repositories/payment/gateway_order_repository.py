"""Gateway order queries."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, select

from tutorix.models.base.enums import GatewayOrderStatus
from tutorix.models.payment import GatewayOrder, GatewayOrderItem
from tutorix.repositories.base import BaseRepository


class GatewayOrderRepository(BaseRepository[GatewayOrder]):
    model = GatewayOrder

    def get_by_gateway_id(self, razorpay_order_id: str, coaching_id: Optional[str] = None) -> Optional[GatewayOrder]:
        filters = {"razorpay_order_id": razorpay_order_id}
        if coaching_id is not None:
            filters["coaching_id"] = coaching_id
        return self.find_one(**filters)

    def get_by_any_id(self, coaching_id: str, identifier: str) -> Optional[GatewayOrder]:
        """Match either the internal order id or the gateway order id."""
        stmt = (
            select(GatewayOrder)
            .where(GatewayOrder.coaching_id == coaching_id)
            .where(or_(GatewayOrder.id == identifier, GatewayOrder.razorpay_order_id == identifier))
            .limit(1)
        )
        return self.db.scalars(stmt).first()

    def find_reusable(
        self,
        record_id: str,
        user_id: str,
        amount_paise: int,
        created_after: datetime,
    ) -> Optional[GatewayOrder]:
        """Most recent single-record CREATED order with the same amount."""
        stmt = (
            select(GatewayOrder)
            .join(GatewayOrderItem, GatewayOrderItem.order_id == GatewayOrder.id)
            .where(GatewayOrderItem.record_id == record_id)
            .where(GatewayOrder.user_id == user_id)
            .where(GatewayOrder.is_multi.is_(False))
            .where(GatewayOrder.status == GatewayOrderStatus.CREATED)
            .where(GatewayOrder.amount_paise == amount_paise)
            .where(GatewayOrder.created_at >= created_after)
            .order_by(GatewayOrder.created_at.desc())
            .limit(1)
        )
        return self.db.scalars(stmt).first()

    def list_for_record(self, record_id: str, status: Optional[GatewayOrderStatus] = None) -> List[GatewayOrder]:
        stmt = (
            select(GatewayOrder)
            .join(GatewayOrderItem, GatewayOrderItem.order_id == GatewayOrder.id)
            .where(GatewayOrderItem.record_id == record_id)
        )
        if status is not None:
            stmt = stmt.where(GatewayOrder.status == status)
        stmt = stmt.order_by(GatewayOrder.created_at.desc(), GatewayOrder.id)
        return list(self.db.scalars(stmt).unique())

    def list_with_surplus(self, start: datetime, end: datetime) -> List[GatewayOrder]:
        """Paid orders whose capture could not be fully credited to their records."""
        stmt = (
            select(GatewayOrder)
            .where(GatewayOrder.unallocated_paise > 0)
            .where(GatewayOrder.razorpay_payment_id.is_not(None))
            .where(GatewayOrder.paid_at >= start)
            .where(GatewayOrder.paid_at <= end)
            .order_by(GatewayOrder.paid_at, GatewayOrder.id)
        )
        return list(self.db.scalars(stmt))
