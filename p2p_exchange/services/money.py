"""Money / rounding helpers.

Centralized so the conversion calculator, the wallet ledger and the rate
providers share identical parsing and rounding semantics.
"""

from __future__ import annotations
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from p2p_exchange.core.errors import InvalidArgument

Number = Union[Decimal, int, float, str]

CENTS = Decimal("0.01")


def to_decimal(value: Number, field: str = "value") -> Decimal:
    """Parse a numeric input into a finite Decimal or raise InvalidArgument."""
    if value is None or isinstance(value, bool):
        raise InvalidArgument(f"{field} must be a number")
    try:
        # str() keeps float inputs at their displayed precision (0.85 not 0.8499...)
        parsed = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise InvalidArgument(f"{field} must be a number") from e
    if not parsed.is_finite():
        raise InvalidArgument(f"{field} must be a finite number")
    return parsed


def to_positive_decimal(value: Number, field: str = "value") -> Decimal:
    parsed = to_decimal(value, field)
    if parsed <= 0:
        raise InvalidArgument(f"{field} must be greater than zero")
    return parsed


def quantize2(value: Decimal) -> Decimal:
    try:
        return value.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:  # more digits than the context precision
        raise InvalidArgument("value is out of range") from e


def to_cents(value: Decimal) -> int:
    return int(quantize2(value) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENTS)
