from tutorix.models.base.base_model import Base, BaseModel
from tutorix.models.base.enums import (
    FeeCycle,
    FeeRecordStatus,
    GatewayOrderStatus,
    GatewayRefundStatus,
    PaymentMode,
    SupplyType,
    TaxType,
    TransferStatus,
)
from tutorix.models.base.mixins import TimestampMixin

__all__ = [
    "Base",
    "BaseModel",
    "TimestampMixin",
    "FeeCycle",
    "FeeRecordStatus",
    "GatewayOrderStatus",
    "GatewayRefundStatus",
    "PaymentMode",
    "SupplyType",
    "TaxType",
    "TransferStatus",
]
