"""FastAPI dependencies resolving the per-app storage handle and services.

`create_app` builds one Database and one RateCacheService per application
and stores them on `app.state`; routes never construct their own.
"""

from fastapi import Depends, Request

from p2p_exchange.db.dal import Database
from p2p_exchange.services.rates.cache_service import RateCacheService
from p2p_exchange.services.wallet_ledger import WalletLedger


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_rate_service(request: Request) -> RateCacheService:
    return request.app.state.rate_service


def get_ledger(db: Database = Depends(get_db)) -> WalletLedger:
    return WalletLedger(db)
