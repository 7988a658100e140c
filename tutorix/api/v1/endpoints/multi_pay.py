"""
Multi-pay: settle several fee records with one checkout.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tutorix.api.deps import get_db, get_payment_gateway, rate_limited
from tutorix.schemas.payment import (
    MultiOrderRequest,
    MultiOrderResponse,
    MultiVerifyResponse,
    VerifyPaymentRequest,
)
from tutorix.services.gateway import RazorpayGateway
from tutorix.services.payment import OrderService, VerificationService

router = APIRouter(prefix="/coaching/{coaching_id}/fee/multi-pay", tags=["Online Payments"])


@router.post("/create-order", response_model=MultiOrderResponse)
def create_multi_order(
    coaching_id: str,
    payload: MultiOrderRequest,
    user_id: str = Depends(rate_limited("create_order")),
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    return OrderService(db, gateway).create_multi_order(coaching_id, user_id, payload.record_ids)


@router.post("/verify", response_model=MultiVerifyResponse)
def verify_multi_payment(
    coaching_id: str,
    payload: VerifyPaymentRequest,
    user_id: str = Depends(rate_limited("verify_payment")),
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    return VerificationService(db, gateway).verify_multi_payment(
        coaching_id,
        payload.order_id,
        payload.payment_id,
        payload.signature,
        user_id,
    )
