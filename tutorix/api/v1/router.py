"""
API v1 Router - Main Entry Point
Aggregates all v1 endpoints for the fee payments backend
"""

from fastapi import APIRouter

from tutorix.api.v1.endpoints import fees, multi_pay, payment_public, payment_settings, payments

router = APIRouter(
    responses={
        400: {"description": "Bad Request"},
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Not Found"},
        409: {"description": "Conflict"},
        422: {"description": "Validation Error"},
        429: {"description": "Too Many Requests"},
        500: {"description": "Internal Server Error"},
        502: {"description": "Payment Gateway Error"},
    }
)

router.include_router(fees.router)
router.include_router(payments.router)
router.include_router(multi_pay.router)
router.include_router(payment_settings.router)
router.include_router(payment_public.router)
