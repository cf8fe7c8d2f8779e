"""Rates router: currency list, rate tables and fee-inclusive quotes.

Endpoints:
    - GET  /api/currencies        -> currencies offered by the converter
    - GET  /api/rates/{base}      -> rate table for a base currency
    - POST /api/rates/quote       -> quote {from_currency, to_currency, amount}

None of these touch the database, so they keep working when storage is down.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from p2p_exchange.models.constants import SERVICE_FEE_RATE, SUPPORTED_CURRENCIES
from p2p_exchange.models.quote import QuoteOut, QuoteRequest, RateTableOut
from p2p_exchange.services.conversion import build_quote
from p2p_exchange.services.rates.cache_service import RateCacheService
from .deps import get_rate_service

router = APIRouter(prefix="/api", tags=["rates"])


@router.get(
    "/currencies", response_model=List[str], summary="Currencies offered for exchange"
)
def list_currencies():
    return list(SUPPORTED_CURRENCIES)


@router.post("/rates/quote", response_model=QuoteOut, summary="Quote a conversion")
def quote(
    payload: QuoteRequest,
    svc: RateCacheService = Depends(get_rate_service),
):
    result = build_quote(
        payload.from_currency, payload.to_currency, payload.amount, svc
    )
    return QuoteOut.from_quote(result, SERVICE_FEE_RATE)


@router.get(
    "/rates/{base}", response_model=RateTableOut, summary="Rate table for a base"
)
def rate_table(base: str, svc: RateCacheService = Depends(get_rate_service)):
    rates = svc.get_rates(base)
    return RateTableOut(
        base=base.strip().upper(),
        rates={code: float(rate) for code, rate in sorted(rates.items())},
    )
