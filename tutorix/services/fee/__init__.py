from tutorix.services.fee.fee_service import FeeService
from tutorix.services.fee.quota import FEE_STRUCTURES, PlanQuotaChecker
from tutorix.services.fee.tax import TaxBreakdown, compute_tax

__all__ = ["FeeService", "PlanQuotaChecker", "FEE_STRUCTURES", "TaxBreakdown", "compute_tax"]
