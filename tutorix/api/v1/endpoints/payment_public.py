"""
Endpoints outside the coaching scope: public checkout config and gateway webhooks.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from tutorix.api.deps import get_db, get_payment_gateway
from tutorix.schemas.payment import PaymentConfigResponse
from tutorix.services.gateway import RazorpayGateway
from tutorix.services.payment import OrderService, WebhookService

router = APIRouter(prefix="/payment", tags=["Payment Gateway"])


@router.get("/config", response_model=PaymentConfigResponse)
def get_payment_config(
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    """Public key id and whether online payments are configured. No authentication required."""
    return OrderService(db, gateway).get_config()


@router.post("/webhook")
async def receive_webhook(
    request: Request,
    x_razorpay_signature: Optional[str] = Header(None),
    x_razorpay_event_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
) -> Dict[str, Any]:
    """Signature-authenticated gateway callback. Answers 400 only for a bad signature."""
    body = await request.body()
    service = WebhookService(db, gateway)
    return await run_in_threadpool(service.handle, body, x_razorpay_signature, x_razorpay_event_id)
