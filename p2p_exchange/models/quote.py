from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class ConversionQuote:
    """Transient conversion result; never persisted."""

    from_currency: str
    to_currency: str
    rate: Decimal
    amount: Decimal
    base_amount: Decimal
    fee: Decimal
    total: Decimal


class QuoteRequest(BaseModel):
    from_currency: str = Field(..., description="Currency the client pays in")
    to_currency: str = Field(..., description="Currency the client receives")
    amount: Decimal = Field(..., gt=0)


class QuoteOut(BaseModel):
    from_currency: str
    to_currency: str
    rate: float
    amount: float
    base_amount: float
    fee: float
    total: float
    fee_rate: float

    @classmethod
    def from_quote(cls, quote: ConversionQuote, fee_rate: Decimal) -> "QuoteOut":
        return cls(
            from_currency=quote.from_currency,
            to_currency=quote.to_currency,
            rate=float(quote.rate),
            amount=float(quote.amount),
            base_amount=float(quote.base_amount),
            fee=float(quote.fee),
            total=float(quote.total),
            fee_rate=float(fee_rate),
        )


class RateTableOut(BaseModel):
    base: str
    rates: Dict[str, float]
