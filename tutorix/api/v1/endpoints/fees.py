"""
Fee structure, assignment and record endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from tutorix.api.deps import get_current_user_id, get_db, get_quota_guard
from tutorix.core.rate_limiting import QuotaGuard
from tutorix.models.base.enums import FeeRecordStatus
from tutorix.schemas.fee import (
    FeeAssignmentCreate,
    FeeAssignmentResponse,
    FeePaymentResponse,
    FeeRecordDetail,
    FeeRecordResponse,
    FeeStructureCreate,
    FeeStructureResponse,
    FeeStructureUpdate,
    FeeSummaryResponse,
    MemberLedgerResponse,
    OfflinePaymentRequest,
    OfflineRefundRequest,
    WaiveRequest,
)
from tutorix.schemas.common.base import BaseSchema
from tutorix.schemas.payment import FeeRefundResponse
from tutorix.services.fee import FeeService

router = APIRouter(prefix="/coaching/{coaching_id}/fee", tags=["Fees"])


class AssignFeeResponse(BaseSchema):
    assignment: FeeAssignmentResponse
    record: FeeRecordResponse


class OfflinePaymentResponse(BaseSchema):
    record: FeeRecordResponse
    payment: FeePaymentResponse


class OfflineRefundResponse(BaseSchema):
    refund: FeeRefundResponse
    record: FeeRecordResponse


class RemoveAssignmentResponse(BaseSchema):
    records_removed: int


# ==================== Structures ====================

@router.get("/structures", response_model=List[FeeStructureResponse])
def list_structures(
    coaching_id: str,
    include_inactive: bool = Query(False),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return FeeService(db).list_structures(coaching_id, user_id, include_inactive)


@router.post("/structures", response_model=FeeStructureResponse, status_code=status.HTTP_201_CREATED)
def create_structure(
    coaching_id: str,
    payload: FeeStructureCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    quota: QuotaGuard = Depends(get_quota_guard),
):
    """Create a fee structure, subject to the coaching's plan quota."""
    return FeeService(db, quota).create_structure(coaching_id, user_id, payload)


@router.patch("/structures/{structure_id}", response_model=FeeStructureResponse)
def update_structure(
    coaching_id: str,
    structure_id: str,
    payload: FeeStructureUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return FeeService(db).update_structure(coaching_id, structure_id, user_id, payload)


@router.delete("/structures/{structure_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_structure(
    coaching_id: str,
    structure_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    quota: QuotaGuard = Depends(get_quota_guard),
):
    FeeService(db, quota).delete_structure(coaching_id, structure_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==================== Assignments ====================

@router.post("/assign", response_model=AssignFeeResponse, status_code=status.HTTP_201_CREATED)
def assign_fee(
    coaching_id: str,
    payload: FeeAssignmentCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return FeeService(db).assign_fee(coaching_id, user_id, payload)


@router.delete("/assignments/{assignment_id}", response_model=RemoveAssignmentResponse)
def remove_assignment(
    coaching_id: str,
    assignment_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    removed = FeeService(db).remove_assignment(coaching_id, assignment_id, user_id)
    return {"records_removed": removed}


@router.get("/members/{member_id}/ledger", response_model=MemberLedgerResponse)
def get_member_ledger(
    coaching_id: str,
    member_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Statement of a member's charges, payments, refunds and waivers with a running balance."""
    return FeeService(db).get_member_ledger(coaching_id, member_id, user_id)


# ==================== Records ====================

@router.get("/records", response_model=List[FeeRecordResponse])
def list_records(
    coaching_id: str,
    record_status: Optional[FeeRecordStatus] = Query(None, alias="status"),
    member_id: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return FeeService(db).list_records(coaching_id, user_id, status=record_status, member_id=member_id)


@router.get("/records/{record_id}", response_model=FeeRecordDetail)
def get_record(
    coaching_id: str,
    record_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return FeeService(db).get_record(coaching_id, record_id, user_id)


@router.post("/records/{record_id}/pay", response_model=OfflinePaymentResponse, status_code=status.HTTP_201_CREATED)
def record_offline_payment(
    coaching_id: str,
    record_id: str,
    payload: OfflinePaymentRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Record a cash, UPI, bank transfer or cheque payment taken at the counter."""
    return FeeService(db).record_offline_payment(coaching_id, record_id, user_id, payload)


@router.post("/records/{record_id}/waive", response_model=FeeRecordResponse)
def waive_record(
    coaching_id: str,
    record_id: str,
    payload: WaiveRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return FeeService(db).waive_record(coaching_id, record_id, user_id, payload.reason)


@router.post("/records/{record_id}/refund", response_model=OfflineRefundResponse, status_code=status.HTTP_201_CREATED)
def record_offline_refund(
    coaching_id: str,
    record_id: str,
    payload: OfflineRefundRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return FeeService(db).record_offline_refund(coaching_id, record_id, user_id, payload)


# ==================== Summary & My Fees ====================

@router.get("/summary", response_model=FeeSummaryResponse)
def get_summary(
    coaching_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return FeeService(db).get_summary(coaching_id, user_id)


@router.get("/my", response_model=List[FeeRecordResponse])
def get_my_fees(
    coaching_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return FeeService(db).get_my_fees(coaching_id, user_id)
