from typing import List

from fastapi import APIRouter, Depends

from p2p_exchange.models.wallet import BalanceUpdateIn, WalletOut, WalletVerifyOut
from p2p_exchange.services.wallet_ledger import WalletLedger
from .deps import get_ledger

router = APIRouter(prefix="/api/wallet", tags=["wallet"])


@router.get(
    "/balances", response_model=List[WalletOut], summary="List all wallet balances"
)
def list_balances(ledger: WalletLedger = Depends(get_ledger)):
    return [WalletOut.from_wallet(w) for w in ledger.get_balances()]


@router.post(
    "/update-balance",
    response_model=WalletOut,
    summary="Credit a wallet, creating it on first funding",
)
def update_balance(
    payload: BalanceUpdateIn,
    ledger: WalletLedger = Depends(get_ledger),
):
    wallet = ledger.credit_balance(payload.currency, payload.amount)
    return WalletOut.from_wallet(wallet)


@router.get(
    "/verify/{currency}",
    response_model=WalletVerifyOut,
    response_model_exclude_none=True,
    summary="Check whether a wallet exists for a currency",
)
def verify_wallet(currency: str, ledger: WalletLedger = Depends(get_ledger)):
    wallet = ledger.find_wallet(currency)
    if wallet is None:
        return WalletVerifyOut(exists=False, message="No wallet found for this currency")
    return WalletVerifyOut(
        exists=True, wallet=WalletOut.from_wallet(wallet), message="Wallet found"
    )
