"""
Daily reconciliation of gateway captures against the local payment ledger.

Usage:
    python -m tutorix.services.payment.reconciliation_service --date 2025-07-01
    python -m tutorix.services.payment.reconciliation_service --retry-transfers
"""

import argparse
import json
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from tutorix.core.logging import configure_logging, get_logger
from tutorix.db.session import SessionLocal
from tutorix.repositories.fee import FeePaymentRepository
from tutorix.repositories.payment import GatewayOrderRepository, GatewayTransferRepository
from tutorix.services.gateway import RazorpayGateway, get_gateway
from tutorix.services.payment.settlement_service import SettlementService
from tutorix.utils.datetime_utils import ist_day_bounds, today_ist
from tutorix.utils.money import to_paise

logger = get_logger(__name__)

MISMATCH_TOLERANCE_PAISE = 1


def _naive_utc(ts: int) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc).replace(tzinfo=None)


class ReconciliationService:
    """Compares captured gateway payments with recorded FeePayment rows."""

    def __init__(self, db: Session, gateway: RazorpayGateway, settlement: Optional[SettlementService] = None):
        self.db = db
        self.gateway = gateway
        self.settlement = settlement or SettlementService(db, gateway)
        self.payments = FeePaymentRepository(db)
        self.transfers = GatewayTransferRepository(db)
        self.orders = GatewayOrderRepository(db)

    def reconcile_day(self, day: date) -> Dict[str, Any]:
        """
        Reconcile one IST calendar day.

        A local payment is matched by gateway payment id, so a capture
        recorded just after midnight still lines up with its gateway row.
        Multi-pay rows sharing a gateway payment are summed before comparing.
        """
        from_ts, to_ts = ist_day_bounds(day)

        gateway_totals: Dict[str, int] = {}
        for payment in self.gateway.iter_payments(from_ts, to_ts):
            if payment.get("status") == "captured":
                gateway_totals[payment["id"]] = int(payment.get("amount") or 0)

        local_rows = {p.id: p for p in self.payments.list_by_gateway_payment_ids(gateway_totals)}
        for p in self.payments.list_online_paid_between(_naive_utc(from_ts), _naive_utc(to_ts)):
            local_rows.setdefault(p.id, p)

        db_totals: Dict[str, int] = defaultdict(int)
        for p in local_rows.values():
            db_totals[p.razorpay_payment_id] += to_paise(p.amount)
        # surplus held on an order is accounted for, just not credited
        surplus_orders = self.orders.list_with_surplus(_naive_utc(from_ts), _naive_utc(to_ts))
        for o in surplus_orders:
            db_totals[o.razorpay_payment_id] += o.unallocated_paise

        missing_in_db = sorted(pid for pid in gateway_totals if pid not in db_totals)
        missing_in_gateway = sorted(pid for pid in db_totals if pid not in gateway_totals)
        mismatches: List[Dict[str, Any]] = []
        for pid in sorted(set(gateway_totals) & set(db_totals)):
            difference = gateway_totals[pid] - db_totals[pid]
            if abs(difference) > MISMATCH_TOLERANCE_PAISE:
                mismatches.append({
                    "razorpay_payment_id": pid,
                    "gateway_paise": gateway_totals[pid],
                    "db_paise": db_totals[pid],
                    "difference_paise": difference,
                })

        unallocated = [
            {
                "razorpay_order_id": o.razorpay_order_id,
                "razorpay_payment_id": o.razorpay_payment_id,
                "unallocated_paise": o.unallocated_paise,
            }
            for o in surplus_orders
        ]

        report = {
            "date": day.isoformat(),
            "missing_in_db": missing_in_db,
            "missing_in_gateway": missing_in_gateway,
            "amount_mismatches": mismatches,
            "unallocated_captures": unallocated,
            "summary": {
                "gateway_count": len(gateway_totals),
                "db_count": len(db_totals),
                "gateway_total_paise": sum(gateway_totals.values()),
                "db_total_paise": sum(db_totals.values()),
            },
        }

        if missing_in_db or missing_in_gateway or mismatches or unallocated:
            logger.warning("Reconciliation found discrepancies", extra={
                "date": report["date"],
                "missing_in_db": len(missing_in_db),
                "missing_in_gateway": len(missing_in_gateway),
                "amount_mismatches": len(mismatches),
                "unallocated_captures": len(unallocated),
            })
        else:
            logger.info("Reconciliation clean", extra={"date": report["date"], **report["summary"]})
        return report

    def retry_failed_transfers(self, limit: int = 100) -> Dict[str, int]:
        retried = succeeded = 0
        for transfer in self.transfers.list_failed(limit):
            retried += 1
            if self.settlement.retry_transfer(transfer):
                succeeded += 1
        logger.info("Failed transfers retried", extra={"retried": retried, "succeeded": succeeded})
        return {"retried": retried, "succeeded": succeeded, "still_failed": retried - succeeded}


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Reconcile gateway payments against the fee ledger")
    parser.add_argument("--date", help="IST day to reconcile (YYYY-MM-DD), defaults to today")
    parser.add_argument("--retry-transfers", action="store_true", help="Retry failed route transfers")
    args = parser.parse_args(argv)

    configure_logging()

    day = date.fromisoformat(args.date) if args.date else today_ist()
    db = SessionLocal()
    try:
        service = ReconciliationService(db, get_gateway())
        output: Dict[str, Any] = {"reconciliation": service.reconcile_day(day)}
        if args.retry_transfers:
            output["transfers"] = service.retry_failed_transfers()
    finally:
        db.close()

    print(json.dumps(output, indent=2, default=str))
    report = output["reconciliation"]
    clean = not (
        report["missing_in_db"] or report["missing_in_gateway"]
        or report["amount_mismatches"] or report["unallocated_captures"]
    )
    return 0 if clean else 1


if __name__ == "__main__":
    raise SystemExit(main())
