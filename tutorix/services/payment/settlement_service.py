"""
Settlement: payment settings, linked accounts and route transfers.

Linked-account operations are thin proxies to the gateway's marketplace
APIs; the only local state is what the gateway returns.
"""

from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from tutorix.config.settings import Settings, settings as default_settings
from tutorix.core.exceptions import (
    ConflictError,
    GatewayError,
    InvalidStateError,
    ValidationError,
)
from tutorix.core.logging import get_logger
from tutorix.core.permissions import OWNER_ONLY
from tutorix.models.base.enums import TransferStatus
from tutorix.models.coaching import Coaching
from tutorix.models.fee import FeePayment
from tutorix.models.payment import GatewayOrder, GatewayTransfer
from tutorix.repositories.coaching import CoachingRepository
from tutorix.repositories.payment import GatewayTransferRepository
from tutorix.services.common import UnitOfWork
from tutorix.services.common.access import AccessService
from tutorix.services.gateway import RazorpayGateway
from tutorix.utils.datetime_utils import utc_now

logger = get_logger(__name__)

BANK_FIELDS = ("bank_account_name", "bank_account_number", "bank_ifsc_code", "bank_name")
SETTINGS_FIELDS = ("gst_number", "pan_number", "state_code") + BANK_FIELDS
VERIFIED_VALIDATION_STATUSES = {"completed", "created", "pending"}


def mask_account_number(number: Optional[str]) -> Optional[str]:
    if not number:
        return number
    return "X" * max(0, len(number) - 4) + number[-4:]


def platform_fee_paise(amount_paise: int, percent: Decimal) -> int:
    fee = (Decimal(amount_paise) * Decimal(percent) / Decimal(100)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(fee)


class SettlementService:
    """Owner-facing payment settings plus best-effort routing of collections."""

    def __init__(self, db: Session, gateway: RazorpayGateway, config: Optional[Settings] = None):
        self.db = db
        self.gateway = gateway
        self.config = config or default_settings
        self.access = AccessService(db)
        self.coachings = CoachingRepository(db)
        self.transfers = GatewayTransferRepository(db)

    def _owner_coaching(self, coaching_id: str, user_id: str) -> Coaching:
        coaching = self.access.get_coaching(coaching_id)
        self.access.require(coaching_id, user_id, OWNER_ONLY)
        return coaching

    @staticmethod
    def _settings_view(coaching: Coaching) -> Dict[str, Any]:
        return {
            "coaching_id": coaching.id,
            "gst_number": coaching.gst_number,
            "pan_number": coaching.pan_number,
            "state_code": coaching.state_code,
            "bank_account_name": coaching.bank_account_name,
            "bank_account_number": mask_account_number(coaching.bank_account_number),
            "bank_ifsc_code": coaching.bank_ifsc_code,
            "bank_name": coaching.bank_name,
            "bank_verified": coaching.bank_verified,
            "bank_verified_at": coaching.bank_verified_at,
            "platform_fee_percent": coaching.platform_fee_percent,
            "razorpay_account_id": coaching.razorpay_account_id,
            "razorpay_account_status": coaching.razorpay_account_status,
            "razorpay_activated": coaching.razorpay_activated,
        }

    # ==================== Payment Settings ====================

    def get_payment_settings(self, coaching_id: str, user_id: str) -> Dict[str, Any]:
        return self._settings_view(self._owner_coaching(coaching_id, user_id))

    def update_payment_settings(self, coaching_id: str, user_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        coaching = self._owner_coaching(coaching_id, user_id)

        changes = {k: v for k, v in patch.items() if k in SETTINGS_FIELDS and getattr(coaching, k) != v}
        if not changes:
            return self._settings_view(coaching)

        with UnitOfWork(self.db):
            for key, value in changes.items():
                setattr(coaching, key, value)
            if any(key in BANK_FIELDS for key in changes):
                coaching.bank_verified = False
                coaching.bank_verified_at = None
                coaching.fund_account_id = None

        logger.info("Payment settings updated", extra={
            "coaching_id": coaching_id,
            "fields": sorted(changes),
        })
        return self._settings_view(coaching)

    # ==================== Linked Account ====================

    def create_linked_account(
        self,
        coaching_id: str,
        user_id: str,
        business_type: str,
        contact_name: str,
        email: str,
        phone: str,
    ) -> Dict[str, Any]:
        coaching = self._owner_coaching(coaching_id, user_id)
        if not coaching.has_bank_details:
            raise ValidationError("Add bank account details before creating a linked account")
        if coaching.razorpay_account_id:
            raise ConflictError("A linked account already exists for this coaching")

        payload: Dict[str, Any] = {
            "email": email,
            "phone": phone,
            "type": "route",
            "reference_id": coaching.id[:20],
            "legal_business_name": coaching.name,
            "business_type": business_type,
            "contact_name": contact_name,
            "profile": {"category": "education", "subcategory": "coaching"},
            "notes": {"coaching_id": coaching.id, "platform": "tutorix"},
        }
        legal_info = {k: v for k, v in (("pan", coaching.pan_number), ("gst", coaching.gst_number)) if v}
        if legal_info:
            payload["legal_info"] = legal_info

        account = self.gateway.create_linked_account(payload)
        account_id = account["id"]

        stakeholder_id = None
        try:
            stakeholder = self.gateway.create_stakeholder(account_id, {
                "name": contact_name,
                "email": email,
                "phone": {"primary": phone},
                "notes": {"role": "owner", "coaching_id": coaching.id},
            })
            stakeholder_id = stakeholder.get("id")
        except GatewayError as exc:
            logger.warning("Stakeholder setup failed", extra={"account_id": account_id, "error": exc.message})

        product_id = None
        try:
            product = self.gateway.request_route_product(account_id, {
                "account_number": coaching.bank_account_number,
                "ifsc_code": coaching.bank_ifsc_code,
                "beneficiary_name": coaching.bank_account_name,
            })
            product_id = product.get("id")
        except GatewayError as exc:
            logger.warning("Route product setup failed", extra={"account_id": account_id, "error": exc.message})

        status = account.get("status") or "created"
        with UnitOfWork(self.db):
            coaching.razorpay_account_id = account_id
            coaching.razorpay_account_status = status
            coaching.razorpay_stakeholder_id = stakeholder_id
            coaching.razorpay_product_id = product_id
            coaching.razorpay_activated = status == "activated"

        logger.info("Linked account created", extra={
            "coaching_id": coaching_id,
            "account_id": account_id,
            "status": status,
        })
        return self._settings_view(coaching)

    def refresh_linked_account_status(self, coaching_id: str, user_id: str) -> Dict[str, Any]:
        coaching = self._owner_coaching(coaching_id, user_id)
        if not coaching.razorpay_account_id:
            raise InvalidStateError("No linked account exists for this coaching")

        account = self.gateway.fetch_linked_account(coaching.razorpay_account_id)
        status = account.get("status") or coaching.razorpay_account_status
        if coaching.razorpay_product_id:
            try:
                product = self.gateway.fetch_product(coaching.razorpay_account_id, coaching.razorpay_product_id)
                status = product.get("activation_status") or status
            except GatewayError as exc:
                logger.warning("Product status fetch failed", extra={
                    "account_id": coaching.razorpay_account_id,
                    "error": exc.message,
                })

        with UnitOfWork(self.db):
            coaching.razorpay_account_status = status
            coaching.razorpay_activated = status == "activated"
        return self._settings_view(coaching)

    def delete_linked_account(self, coaching_id: str, user_id: str) -> Dict[str, Any]:
        coaching = self._owner_coaching(coaching_id, user_id)
        account_id = coaching.razorpay_account_id
        if not account_id:
            return self._settings_view(coaching)
        if self.transfers.exists_for_account(account_id):
            raise ConflictError("Payments have already been routed to this linked account")

        try:
            self.gateway.delete_linked_account(account_id)
        except GatewayError as exc:
            logger.warning("Gateway account delete failed", extra={"account_id": account_id, "error": exc.message})

        with UnitOfWork(self.db):
            coaching.razorpay_account_id = None
            coaching.razorpay_account_status = None
            coaching.razorpay_stakeholder_id = None
            coaching.razorpay_product_id = None
            coaching.razorpay_activated = False

        logger.info("Linked account removed", extra={"coaching_id": coaching_id, "account_id": account_id})
        return self._settings_view(coaching)

    # ==================== Bank Verification ====================

    def verify_bank_account(self, coaching_id: str, user_id: str) -> Dict[str, Any]:
        """Penny-drop validation of the coaching's bank account."""
        coaching = self._owner_coaching(coaching_id, user_id)
        if not coaching.has_bank_details:
            raise ValidationError("Bank account number, IFSC code and account holder name are required")

        validity = timedelta(days=self.config.BANK_VERIFICATION_VALIDITY_DAYS)
        if coaching.bank_verified and coaching.bank_verified_at and utc_now() - coaching.bank_verified_at < validity:
            return {"verified": True, "skipped": True, "verified_at": coaching.bank_verified_at}

        notes = {"purpose": "bank_verification", "coaching_id": coaching.id}
        try:
            contact = self.gateway.create_contact({
                "name": coaching.bank_account_name,
                "type": "vendor",
                "reference_id": f"vfy_{coaching.id[:35]}",
                "notes": notes,
            })
            fund_account = self.gateway.create_fund_account({
                "contact_id": contact["id"],
                "account_type": "bank_account",
                "bank_account": {
                    "name": coaching.bank_account_name,
                    "ifsc": coaching.bank_ifsc_code,
                    "account_number": coaching.bank_account_number,
                },
            })
            validation = self.gateway.validate_fund_account(fund_account["id"], notes)
        except GatewayError as exc:
            lowered = exc.message.lower()
            if "ifsc" in lowered:
                raise ValidationError("Invalid IFSC code. Please check and try again.")
            if "account_number" in lowered or "account number" in lowered:
                raise ValidationError("Invalid bank account number. Please verify and try again.")
            raise

        status = validation.get("status")
        account_status = (validation.get("results") or {}).get("account_status")
        verified = status in VERIFIED_VALIDATION_STATUSES or account_status == "active"

        with UnitOfWork(self.db):
            coaching.fund_account_id = fund_account["id"]
            coaching.bank_verified = verified
            coaching.bank_verified_at = utc_now() if verified else None

        logger.info("Bank account validation finished", extra={
            "coaching_id": coaching_id,
            "validation_status": status,
            "verified": verified,
        })
        return {
            "verified": verified,
            "skipped": False,
            "verified_at": coaching.bank_verified_at,
            "validation_status": status,
            "registered_name": (validation.get("results") or {}).get("registered_name"),
        }

    # ==================== Route Transfers ====================

    def route_payment(
        self,
        order: GatewayOrder,
        payments: List[FeePayment],
        captured_paise: int,
    ) -> Optional[GatewayTransfer]:
        """Best-effort transfer of a captured payment to the linked account."""
        try:
            coaching = self.coachings.get(order.coaching_id)
            if not payments or coaching is None:
                return None
            if not (coaching.razorpay_activated and coaching.razorpay_account_id):
                return None

            fee = platform_fee_paise(captured_paise, order.platform_fee_percent)
            transfer = GatewayTransfer(
                coaching_id=coaching.id,
                payment_id=payments[0].id,
                razorpay_payment_id=payments[0].razorpay_payment_id,
                account_id=coaching.razorpay_account_id,
                amount_paise=captured_paise - fee,
                platform_fee_paise=fee,
            )
            self._attempt_transfer(transfer, order.razorpay_order_id)
            with UnitOfWork(self.db) as uow:
                uow.get_repo(GatewayTransferRepository).add(transfer)
            return transfer
        except Exception as exc:
            logger.error("Route transfer bookkeeping failed", extra={
                "order_id": order.razorpay_order_id,
                "error": str(exc),
            })
            return None

    def _attempt_transfer(self, transfer: GatewayTransfer, order_ref: str) -> None:
        try:
            remote = self.gateway.transfer(
                transfer.razorpay_payment_id,
                transfer.account_id,
                transfer.amount_paise,
                notes={"coaching_id": transfer.coaching_id, "order_id": order_ref},
            )
            transfer.razorpay_transfer_id = remote.get("id")
            transfer.status = TransferStatus.CREATED
            transfer.error = None
        except GatewayError as exc:
            transfer.status = TransferStatus.FAILED
            transfer.error = exc.message
            logger.warning("Route transfer failed", extra={
                "payment_id": transfer.razorpay_payment_id,
                "error": exc.message,
            })

    def retry_transfer(self, transfer: GatewayTransfer) -> bool:
        """Retry a FAILED transfer; returns whether it went through."""
        with UnitOfWork(self.db):
            self._attempt_transfer(transfer, transfer.razorpay_payment_id)
        return transfer.status is TransferStatus.CREATED

    def reverse_for_refund(self, razorpay_payment_id: str, refund_paise: int) -> Optional[int]:
        """Best-effort proportional reversal of the routed share of a refund."""
        try:
            transfer = self.transfers.get_for_gateway_payment(razorpay_payment_id)
            if transfer is None or transfer.status is not TransferStatus.CREATED or not transfer.razorpay_transfer_id:
                return None

            captured = transfer.amount_paise + transfer.platform_fee_paise
            share = int((Decimal(transfer.amount_paise) * refund_paise / captured).quantize(
                Decimal("1"), rounding=ROUND_HALF_UP
            ))
            share = min(share, transfer.amount_paise - transfer.reversed_paise)
            if share <= 0:
                return None

            self.gateway.reverse_transfer(transfer.razorpay_transfer_id, share)
            with UnitOfWork(self.db):
                transfer.reversed_paise += share
                if transfer.reversed_paise >= transfer.amount_paise:
                    transfer.status = TransferStatus.REVERSED
            return share
        except Exception as exc:
            logger.error("Transfer reversal failed", extra={
                "payment_id": razorpay_payment_id,
                "refund_paise": refund_paise,
                "error": str(exc),
            })
            return None
