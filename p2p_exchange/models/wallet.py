from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class Wallet:
    """Per-currency balance record."""

    currency: str
    balance: Decimal


class BalanceUpdateIn(BaseModel):
    amount: Decimal = Field(..., gt=0, description="Amount to credit")
    currency: str = Field(..., min_length=1, description="ISO 4217 code, any case")


class WalletOut(BaseModel):
    currency: str
    balance: float

    @classmethod
    def from_wallet(cls, wallet: Wallet) -> "WalletOut":
        return cls(currency=wallet.currency, balance=float(wallet.balance))


class WalletVerifyOut(BaseModel):
    exists: bool
    wallet: Optional[WalletOut] = None
    message: str
