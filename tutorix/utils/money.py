"""Money helpers.

Amounts are kept as ``Decimal`` rupees with two places and converted to
integer paise at the gateway boundary.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[Decimal, int, float, str]

PAISA = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value.quantize(PAISA, rounding=ROUND_HALF_UP)
    return Decimal(str(value)).quantize(PAISA, rounding=ROUND_HALF_UP)


def to_paise(value: Number) -> int:
    """Rupees to paise, rounding half up."""
    return int((Decimal(str(value)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_paise(paise: int) -> Decimal:
    return (Decimal(int(paise)) / 100).quantize(PAISA)
