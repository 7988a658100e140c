"""
Owner-only payment settings: bank details, linked account and bank verification.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tutorix.api.deps import get_current_user_id, get_db, get_payment_gateway
from tutorix.schemas.payment import (
    BankVerificationResponse,
    LinkedAccountCreate,
    PaymentSettingsResponse,
    PaymentSettingsUpdate,
)
from tutorix.services.gateway import RazorpayGateway
from tutorix.services.payment import SettlementService

router = APIRouter(prefix="/coaching/{coaching_id}/fee/payment-settings", tags=["Payment Settings"])


def _service(db: Session, gateway: RazorpayGateway) -> SettlementService:
    return SettlementService(db, gateway)


@router.get("", response_model=PaymentSettingsResponse)
def get_payment_settings(
    coaching_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    return _service(db, gateway).get_payment_settings(coaching_id, user_id)


@router.patch("", response_model=PaymentSettingsResponse)
def update_payment_settings(
    coaching_id: str,
    payload: PaymentSettingsUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    """Update tax identity and bank details. Changing bank details clears verification."""
    patch = payload.model_dump(exclude_unset=True)
    return _service(db, gateway).update_payment_settings(coaching_id, user_id, patch)


@router.post("/linked-account", response_model=PaymentSettingsResponse)
def create_linked_account(
    coaching_id: str,
    payload: LinkedAccountCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    return _service(db, gateway).create_linked_account(
        coaching_id,
        user_id,
        business_type=payload.business_type,
        contact_name=payload.contact_name,
        email=payload.email,
        phone=payload.phone,
    )


@router.delete("/linked-account", response_model=PaymentSettingsResponse)
def delete_linked_account(
    coaching_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    return _service(db, gateway).delete_linked_account(coaching_id, user_id)


@router.post("/linked-account/refresh", response_model=PaymentSettingsResponse)
def refresh_linked_account_status(
    coaching_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    return _service(db, gateway).refresh_linked_account_status(coaching_id, user_id)


@router.post("/verify-bank", response_model=BankVerificationResponse)
def verify_bank_account(
    coaching_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    return _service(db, gateway).verify_bank_account(coaching_id, user_id)
