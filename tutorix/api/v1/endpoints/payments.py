"""
Online payment endpoints for a single fee record.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tutorix.api.deps import get_current_user_id, get_db, get_payment_gateway, rate_limited
from tutorix.schemas.payment import (
    CreateOrderRequest,
    CreateOrderResponse,
    FailedOrderResponse,
    MarkOrderFailedRequest,
    MarkOrderFailedResponse,
    OnlinePaymentResponse,
    OnlineRefundRequest,
    OnlineRefundResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from tutorix.services.gateway import RazorpayGateway
from tutorix.services.payment import OrderService, RefundService, VerificationService

router = APIRouter(prefix="/coaching/{coaching_id}/fee", tags=["Online Payments"])


@router.post("/records/{record_id}/create-order", response_model=CreateOrderResponse)
def create_order(
    coaching_id: str,
    record_id: str,
    payload: CreateOrderRequest,
    user_id: str = Depends(rate_limited("create_order")),
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    """Create a gateway order for the record's balance, or for an installment amount."""
    return OrderService(db, gateway).create_order(coaching_id, record_id, user_id, payload.amount)


@router.post("/records/{record_id}/verify-payment", response_model=VerifyPaymentResponse)
def verify_payment(
    coaching_id: str,
    record_id: str,
    payload: VerifyPaymentRequest,
    user_id: str = Depends(rate_limited("verify_payment")),
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    return VerificationService(db, gateway).verify_payment(
        coaching_id,
        record_id,
        payload.order_id,
        payload.payment_id,
        payload.signature,
        user_id,
    )


@router.post("/records/{record_id}/online-refund", response_model=OnlineRefundResponse)
def initiate_online_refund(
    coaching_id: str,
    record_id: str,
    payload: OnlineRefundRequest,
    user_id: str = Depends(rate_limited("online_refund")),
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    return RefundService(db, gateway).initiate_online_refund(
        coaching_id,
        record_id,
        payload.payment_id,
        payload.amount,
        payload.reason,
        user_id,
    )


@router.get("/records/{record_id}/online-payments", response_model=List[OnlinePaymentResponse])
def get_online_payments(
    coaching_id: str,
    record_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    return OrderService(db, gateway).get_online_payments(coaching_id, record_id, user_id)


@router.get("/records/{record_id}/failed-orders", response_model=List[FailedOrderResponse])
def get_failed_orders(
    coaching_id: str,
    record_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    return OrderService(db, gateway).get_failed_orders(coaching_id, record_id, user_id)


@router.post("/orders/{internal_order_id}/fail", response_model=MarkOrderFailedResponse)
def mark_order_failed(
    coaching_id: str,
    internal_order_id: str,
    payload: MarkOrderFailedRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    """Record that the checkout was dismissed or errored. Always answers 200."""
    return OrderService(db, gateway).mark_order_failed(coaching_id, internal_order_id, payload.reason, user_id)
