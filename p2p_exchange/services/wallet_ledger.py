from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from p2p_exchange.core.errors import InvalidArgument
from p2p_exchange.db.dal import MAX_BALANCE_CENTS, Database
from p2p_exchange.models.currency import normalize_currency
from p2p_exchange.models.wallet import Wallet
from .money import Number, from_cents, to_cents, to_decimal

logger = logging.getLogger("p2p_exchange.wallet")

# 10 trillion units per credit; the running balance is capped by MAX_BALANCE_CENTS
MAX_CREDIT_CENTS = 10**15


def _row_to_wallet(row: Dict[str, Any]) -> Wallet:
    return Wallet(currency=row["currency"], balance=from_cents(row["balance_cents"]))


class WalletLedger:
    """Per-currency wallet balances backed by the `wallets` table.

    Credits are applied with one atomic insert-or-increment, so concurrent
    credits to the same currency all land.
    """

    def __init__(self, db: Database):
        self._db = db

    def credit_balance(self, currency: str, amount: Number) -> Wallet:
        code = normalize_currency(currency)
        cents = to_cents(to_decimal(amount, "amount"))
        if cents <= 0:
            raise InvalidArgument("amount must be at least 0.01")
        if cents > MAX_CREDIT_CENTS:
            raise InvalidArgument("amount exceeds the maximum single credit")
        row = self._db.credit_wallet(code, cents, max_balance_cents=MAX_BALANCE_CENTS)
        wallet = _row_to_wallet(row)
        logger.info(
            "wallet credited",
            extra={
                "context": {
                    "currency": code,
                    "amount": str(from_cents(cents)),
                    "balance": str(wallet.balance),
                }
            },
        )
        return wallet

    def get_balances(self) -> List[Wallet]:
        return [_row_to_wallet(r) for r in self._db.list_wallets()]

    def find_wallet(self, currency: str) -> Optional[Wallet]:
        row = self._db.get_wallet(normalize_currency(currency))
        return _row_to_wallet(row) if row else None
