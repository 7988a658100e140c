"""
Multi-record payment allocation.

The split is a pure function of the records and the amount: records are
ordered by ``(due_date, created_at, id)`` with a stable sort, so retries and
webhook replays always produce the same credits regardless of query order.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional, Protocol


class Allocatable(Protocol):
    id: str
    due_date: date
    created_at: Optional[datetime]


@dataclass(frozen=True)
class Allocation:
    record_id: str
    amount_paise: int


def allocation_order_key(record: Allocatable):
    return (record.due_date, record.created_at or datetime.min, record.id)


def order_for_allocation(records: Iterable[Allocatable]) -> List[Allocatable]:
    return sorted(records, key=allocation_order_key)


def allocate_payment(records: Iterable[Allocatable], balances_paise: dict, amount_paise: int) -> List[Allocation]:
    """
    Split ``amount_paise`` across records, oldest due date first.

    Args:
        records: Records covered by the payment
        balances_paise: Outstanding balance per record id, in paise
        amount_paise: Captured amount to distribute

    Returns:
        One allocation per record that receives a non-zero credit, in
        allocation order. Credits never exceed a record's balance and sum
        to ``amount_paise``.

    Raises:
        ValueError: If the amount is negative or larger than the total balance

    Example:
        >>> # balances 300 (Jan 1) and 500 (Feb 1), paid 600
        >>> [a.amount_paise for a in allocate_payment(recs, bal, 60000)]
        [30000, 30000]
    """
    if amount_paise < 0:
        raise ValueError("amount_paise must not be negative")

    ordered = order_for_allocation(records)
    total_balance = sum(max(0, int(balances_paise[r.id])) for r in ordered)
    if amount_paise > total_balance:
        raise ValueError(
            f"amount {amount_paise} exceeds outstanding balance {total_balance}"
        )

    allocations: List[Allocation] = []
    remaining = amount_paise
    for record in ordered:
        if remaining == 0:
            break
        credit = min(max(0, int(balances_paise[record.id])), remaining)
        if credit > 0:
            allocations.append(Allocation(record.id, credit))
            remaining -= credit

    return allocations
