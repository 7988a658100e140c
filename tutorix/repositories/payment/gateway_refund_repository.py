"""Gateway refund and transfer queries."""

from typing import List, Optional

from sqlalchemy import select

from tutorix.models.base.enums import TransferStatus
from tutorix.models.payment import GatewayRefund, GatewayTransfer
from tutorix.repositories.base import BaseRepository


class GatewayRefundRepository(BaseRepository[GatewayRefund]):
    model = GatewayRefund

    def get_by_gateway_id(self, razorpay_refund_id: str) -> Optional[GatewayRefund]:
        return self.find_one(razorpay_refund_id=razorpay_refund_id)


class GatewayTransferRepository(BaseRepository[GatewayTransfer]):
    model = GatewayTransfer

    def get_by_gateway_id(self, razorpay_transfer_id: str) -> Optional[GatewayTransfer]:
        return self.find_one(razorpay_transfer_id=razorpay_transfer_id)

    def get_for_gateway_payment(self, razorpay_payment_id: str) -> Optional[GatewayTransfer]:
        stmt = (
            select(GatewayTransfer)
            .where(GatewayTransfer.razorpay_payment_id == razorpay_payment_id)
            .order_by(GatewayTransfer.created_at.desc())
            .limit(1)
        )
        return self.db.scalars(stmt).first()

    def list_failed(self, limit: int = 100) -> List[GatewayTransfer]:
        stmt = (
            select(GatewayTransfer)
            .where(GatewayTransfer.status == TransferStatus.FAILED)
            .order_by(GatewayTransfer.created_at)
            .limit(limit)
        )
        return list(self.db.scalars(stmt))

    def exists_for_account(self, account_id: str) -> bool:
        stmt = (
            select(GatewayTransfer.id)
            .where(GatewayTransfer.account_id == account_id)
            .where(GatewayTransfer.status != TransferStatus.FAILED)
            .limit(1)
        )
        return self.db.scalars(stmt).first() is not None
