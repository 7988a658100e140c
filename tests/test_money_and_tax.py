from datetime import date
from decimal import Decimal

import pytest

from tutorix.models.base.enums import FeeRecordStatus, SupplyType, TaxType
from tutorix.services.fee import compute_tax
from tutorix.services.payment.ledger import derive_status
from tutorix.services.payment.settlement_service import mask_account_number, platform_fee_paise
from tutorix.utils.datetime_utils import financial_year, ist_day_bounds
from tutorix.utils.money import from_paise, to_decimal, to_paise


@pytest.mark.parametrize("value, paise", [
    (Decimal("1000"), 100000),
    (Decimal("0.01"), 1),
    ("12.345", 1235),
    (99.99, 9999),
])
def test_to_paise_rounds_half_up(value, paise):
    assert to_paise(value) == paise


def test_from_paise_keeps_two_places():
    assert from_paise(60050) == Decimal("600.50")
    assert str(from_paise(100)) == "1.00"


def test_to_decimal_quantizes():
    assert to_decimal("10.005") == Decimal("10.01")
    assert to_decimal(5) == Decimal("5.00")


class TestComputeTax:
    def test_no_tax(self):
        result = compute_tax(Decimal("1000"), TaxType.NONE, Decimal("18"))
        assert result.tax == Decimal("0")
        assert result.final == Decimal("1000.00")

    def test_exclusive_intra_state_splits_cgst_sgst(self):
        result = compute_tax(Decimal("1000"), TaxType.GST_EXCLUSIVE, Decimal("18"))

        assert result.tax == Decimal("180.00")
        assert result.cgst == Decimal("90.00")
        assert result.sgst == Decimal("90.00")
        assert result.igst == Decimal("0")
        assert result.final == Decimal("1180.00")

    def test_inclusive_tax_is_carved_out(self):
        result = compute_tax(Decimal("1180"), TaxType.GST_INCLUSIVE, Decimal("18"))

        assert result.tax == Decimal("180.00")
        assert result.final == Decimal("1180.00")

    def test_inter_state_is_igst(self):
        result = compute_tax(Decimal("1000"), TaxType.GST_EXCLUSIVE, Decimal("18"), SupplyType.INTER_STATE)

        assert result.igst == Decimal("180.00")
        assert result.cgst == result.sgst == Decimal("0")

    def test_odd_paisa_goes_to_cgst(self):
        result = compute_tax(Decimal("100.05"), TaxType.GST_EXCLUSIVE, Decimal("18"))

        assert result.tax == Decimal("18.01")
        assert result.cgst + result.sgst == result.tax
        assert result.cgst == Decimal("9.01")
        assert result.sgst == Decimal("9.00")


@pytest.mark.parametrize("day, label", [
    (date(2025, 4, 1), "2025-26"),
    (date(2026, 3, 31), "2025-26"),
    (date(2025, 1, 15), "2024-25"),
    (date(2099, 12, 1), "2099-00"),
])
def test_financial_year(day, label):
    assert financial_year(day) == label


def test_ist_day_bounds_cover_one_ist_day():
    start, end = ist_day_bounds(date(2025, 7, 1))

    assert end - start == 86399
    # 2025-07-01 00:00 IST is 2025-06-30 18:30 UTC
    assert start == 1751308200


@pytest.mark.parametrize("paid, final, due, expected", [
    (Decimal("1000"), Decimal("1000"), date(2030, 1, 1), FeeRecordStatus.PAID),
    (Decimal("600"), Decimal("1000"), date(2030, 1, 1), FeeRecordStatus.PARTIALLY_PAID),
    (Decimal("0"), Decimal("1000"), date(2030, 1, 1), FeeRecordStatus.PENDING),
    (Decimal("0"), Decimal("1000"), date(2020, 1, 1), FeeRecordStatus.OVERDUE),
])
def test_derive_status(paid, final, due, expected):
    assert derive_status(paid, final, due, today=date(2025, 6, 1)) is expected


def test_platform_fee_and_masking():
    assert platform_fee_paise(100000, Decimal("1.00")) == 1000
    assert platform_fee_paise(12345, Decimal("2.50")) == 309
    assert mask_account_number("123456789012") == "XXXXXXXX9012"
    assert mask_account_number(None) is None
