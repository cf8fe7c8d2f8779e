"""Domain and API models for the P2P exchange service."""

from .constants import (
    SUPPORTED_CURRENCIES,
    SERVICE_FEE_RATE,
)  # re-export
from .currency import normalize_currency
from .wallet import Wallet, WalletOut, BalanceUpdateIn, WalletVerifyOut
from .quote import ConversionQuote, QuoteRequest, QuoteOut, RateTableOut
from .user import SignupIn, SignupOut

__all__ = [
    "SUPPORTED_CURRENCIES",
    "SERVICE_FEE_RATE",
    "normalize_currency",
    "Wallet",
    "WalletOut",
    "BalanceUpdateIn",
    "WalletVerifyOut",
    "ConversionQuote",
    "QuoteRequest",
    "QuoteOut",
    "RateTableOut",
    "SignupIn",
    "SignupOut",
]
