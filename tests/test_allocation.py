import random
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

import pytest

from tutorix.services.payment.allocation import allocate_payment, order_for_allocation


@dataclass
class Rec:
    id: str
    due_date: date
    created_at: Optional[datetime] = None


def test_oldest_due_date_is_credited_first():
    jan = Rec("jan", date(2025, 1, 1))
    feb = Rec("feb", date(2025, 2, 1))
    balances = {"jan": 30000, "feb": 50000}

    allocations = allocate_payment([feb, jan], balances, 60000)

    assert [(a.record_id, a.amount_paise) for a in allocations] == [("jan", 30000), ("feb", 30000)]


def test_credits_sum_to_amount_and_respect_balances():
    records = [Rec(f"r{i}", date(2025, 1 + i % 12, 1 + i)) for i in range(8)]
    balances = {r.id: 1000 * (i + 1) for i, r in enumerate(records)}

    for amount in (0, 1, 999, 5000, sum(balances.values())):
        allocations = allocate_payment(records, balances, amount)
        assert sum(a.amount_paise for a in allocations) == amount
        assert all(0 < a.amount_paise <= balances[a.record_id] for a in allocations)

        order = [r.id for r in order_for_allocation(records)]
        positions = [order.index(a.record_id) for a in allocations]
        assert positions == sorted(positions)


def test_allocation_does_not_depend_on_input_order():
    records = [
        Rec("b", date(2025, 3, 1), datetime(2025, 1, 2)),
        Rec("a", date(2025, 3, 1), datetime(2025, 1, 1)),
        Rec("c", date(2025, 1, 1)),
    ]
    balances = {"a": 100, "b": 100, "c": 100}
    expected = allocate_payment(records, balances, 150)

    shuffled = records[:]
    for seed in range(5):
        random.Random(seed).shuffle(shuffled)
        assert allocate_payment(shuffled, balances, 150) == expected

    assert [a.record_id for a in expected] == ["c", "a"]


def test_zero_balance_records_are_skipped():
    records = [Rec("paid", date(2025, 1, 1)), Rec("open", date(2025, 2, 1))]

    allocations = allocate_payment(records, {"paid": 0, "open": 500}, 500)

    assert [a.record_id for a in allocations] == ["open"]


def test_rejects_amount_above_total_balance():
    with pytest.raises(ValueError):
        allocate_payment([Rec("a", date(2025, 1, 1))], {"a": 100}, 101)

    with pytest.raises(ValueError):
        allocate_payment([Rec("a", date(2025, 1, 1))], {"a": 100}, -1)
