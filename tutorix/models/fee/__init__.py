from tutorix.models.fee.fee_payment import FeePayment, FeeRefund
from tutorix.models.fee.fee_record import FeeRecord
from tutorix.models.fee.fee_structure import FeeAssignment, FeeStructure

__all__ = ["FeeStructure", "FeeAssignment", "FeeRecord", "FeePayment", "FeeRefund"]
