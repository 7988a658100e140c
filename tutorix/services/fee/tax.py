"""GST computation for fee records."""

from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple

from tutorix.models.base.enums import SupplyType, TaxType
from tutorix.utils.money import PAISA, ZERO, to_decimal


class TaxBreakdown(NamedTuple):
    tax: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    final: Decimal


def _half_up(value: Decimal) -> Decimal:
    return value.quantize(PAISA, rounding=ROUND_HALF_UP)


def compute_tax(
    amount: Decimal,
    tax_type: TaxType,
    gst_rate: Decimal,
    supply_type: SupplyType = SupplyType.INTRA_STATE,
) -> TaxBreakdown:
    """
    Tax due on ``amount``.

    Inclusive GST is carved out of the amount, so the final amount does not
    change. Exclusive GST is added on top. Intra-state tax splits evenly into
    CGST and SGST, with CGST taking the odd paisa; inter-state tax is IGST.
    """
    amount = to_decimal(amount)
    rate = Decimal(gst_rate)

    if tax_type is TaxType.NONE or rate <= 0:
        return TaxBreakdown(ZERO, ZERO, ZERO, ZERO, amount)

    if tax_type is TaxType.GST_INCLUSIVE:
        tax = _half_up(amount - amount / (1 + rate / 100))
        final = amount
    else:
        tax = _half_up(amount * rate / 100)
        final = amount + tax

    if supply_type is SupplyType.INTER_STATE:
        return TaxBreakdown(tax, ZERO, ZERO, tax, final)

    cgst = _half_up(tax / 2)
    return TaxBreakdown(tax, cgst, tax - cgst, ZERO, final)
