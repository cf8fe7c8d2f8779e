"""Fee-inclusive currency conversion.

    base_amount = amount * rate
    fee         = base_amount * 0.002
    total       = base_amount + fee

Arithmetic stays in Decimal and each figure is rounded to 2 places
(ROUND_HALF_UP) only at the end, so total == round(amount * rate * 1.002, 2).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from p2p_exchange.core.errors import InvalidArgument
from p2p_exchange.models.constants import SERVICE_FEE_RATE
from p2p_exchange.models.currency import normalize_currency
from p2p_exchange.models.quote import ConversionQuote
from .money import Number, quantize2, to_positive_decimal


class SupportsRateLookup(Protocol):
    def get_rate(self, from_currency: str, to_currency: str) -> Decimal: ...


@dataclass(frozen=True)
class ConversionResult:
    base_amount: Decimal
    fee: Decimal
    total: Decimal


def convert(amount: Number, rate: Number) -> ConversionResult:
    amount_d = to_positive_decimal(amount, "amount")
    rate_d = to_positive_decimal(rate, "rate")
    try:
        base = amount_d * rate_d
        fee = base * SERVICE_FEE_RATE
        total = base + fee
    except ArithmeticError as e:  # decimal.Overflow past the context exponent
        raise InvalidArgument("value is out of range") from e
    return ConversionResult(
        base_amount=quantize2(base),
        fee=quantize2(fee),
        total=quantize2(total),
    )


def build_quote(
    from_currency: str,
    to_currency: str,
    amount: Number,
    rate_service: SupportsRateLookup,
) -> ConversionQuote:
    from_code = normalize_currency(from_currency)
    to_code = normalize_currency(to_currency)
    amount_d = to_positive_decimal(amount, "amount")
    if from_code == to_code:
        rate = Decimal(1)
    else:
        rate = rate_service.get_rate(from_code, to_code)
    result = convert(amount_d, rate)
    return ConversionQuote(
        from_currency=from_code,
        to_currency=to_code,
        rate=rate,
        amount=amount_d,
        base_amount=result.base_amount,
        fee=result.fee,
        total=result.total,
    )
