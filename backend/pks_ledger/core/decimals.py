"""
Decimal helpers shared by the ledger and inventory services.

Money is stored with 2 places, quantities with 4 and unit costs with 6.
Every amount is rounded half-up before it is persisted or compared.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

ZERO = Decimal("0")
MONEY = Decimal("0.01")
QTY = Decimal("0.0001")
UNIT_COST = Decimal("0.000001")


def to_decimal(value: Any) -> Decimal:
    """Convert ints, floats, strings and None to Decimal without float noise."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def q_money(value: Any) -> Decimal:
    return to_decimal(value).quantize(MONEY, rounding=ROUND_HALF_UP)


def q_qty(value: Any) -> Decimal:
    return to_decimal(value).quantize(QTY, rounding=ROUND_HALF_UP)


def q_cost(value: Any) -> Decimal:
    return to_decimal(value).quantize(UNIT_COST, rounding=ROUND_HALF_UP)
