from tutorix.repositories.fee.fee_payment_repository import FeePaymentRepository, FeeRefundRepository
from tutorix.repositories.fee.fee_record_repository import FeeRecordRepository
from tutorix.repositories.fee.fee_structure_repository import FeeAssignmentRepository, FeeStructureRepository

__all__ = [
    "FeeStructureRepository",
    "FeeAssignmentRepository",
    "FeeRecordRepository",
    "FeePaymentRepository",
    "FeeRefundRepository",
]
