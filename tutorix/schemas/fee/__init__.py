from tutorix.schemas.fee.fee_record import (
    FeeAssignmentCreate,
    FeeAssignmentResponse,
    FeePaymentResponse,
    FeeRecordDetail,
    FeeRecordResponse,
    FeeSummaryResponse,
    LedgerEntry,
    MemberLedgerResponse,
    ModeTotals,
    MonthlyCollection,
    OfflinePaymentRequest,
    OfflineRefundRequest,
    StatusTotals,
    WaiveRequest,
)
from tutorix.schemas.fee.fee_structure import (
    FeeStructureCreate,
    FeeStructureResponse,
    FeeStructureUpdate,
    LineItem,
)

__all__ = [
    "LineItem",
    "FeeStructureCreate",
    "FeeStructureUpdate",
    "FeeStructureResponse",
    "FeeAssignmentCreate",
    "FeeAssignmentResponse",
    "FeeRecordResponse",
    "FeeRecordDetail",
    "FeePaymentResponse",
    "OfflinePaymentRequest",
    "OfflineRefundRequest",
    "WaiveRequest",
    "LedgerEntry",
    "MemberLedgerResponse",
    "StatusTotals",
    "ModeTotals",
    "MonthlyCollection",
    "FeeSummaryResponse",
]
