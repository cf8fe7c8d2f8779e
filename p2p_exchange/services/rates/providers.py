"""Concrete rate providers and factory.

'static' serves a built-in USD-anchored table (offline dev and tests);
'external-http' queries exchangerate-api.com v6 (`/{key}/latest/{BASE}`).
"""

from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP
import logging
from typing import Any, Callable, Dict

from p2p_exchange.core.config import Settings
from p2p_exchange.core.errors import InvalidArgument, UpstreamUnavailable
from p2p_exchange.services.http_client import HttpError, get_json
from .base import RateProvider

logger = logging.getLogger("p2p_exchange.rates")

RATE_PLACES = Decimal("0.000001")

# Units of currency per 1 USD; placeholders close to market levels
_STATIC_USD_RATES: Dict[str, Decimal] = {
    "USD": Decimal("1"),
    "EUR": Decimal("0.85"),
    "GBP": Decimal("0.74"),
    "JPY": Decimal("149.50"),
    "AUD": Decimal("1.52"),
    "CAD": Decimal("1.37"),
    "CHF": Decimal("0.80"),
    "HKD": Decimal("7.78"),
    "NZD": Decimal("1.68"),
    "SGD": Decimal("1.29"),
    "SEK": Decimal("9.45"),
    "DKK": Decimal("6.35"),
    "NOK": Decimal("10.05"),
}


class StaticRateProvider(RateProvider):
    name = "static"

    def get_rates(self, base_currency: str) -> Dict[str, Decimal]:  # type: ignore[override]
        base_per_usd = _STATIC_USD_RATES.get(base_currency)
        if base_per_usd is None:
            raise InvalidArgument(f"unsupported base currency '{base_currency}'")
        return {
            code: (per_usd / base_per_usd).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)
            for code, per_usd in _STATIC_USD_RATES.items()
        }


class ExchangeRateApiProvider(RateProvider):
    """exchangerate-api.com v6 client.

    Success payload: {"result": "success", "conversion_rates": {"EUR": 0.85, ...}}
    Error payload:   {"result": "error", "error-type": "unsupported-code"}
    """

    name = "external-http"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 5.0,
        retries: int = 2,
        fetch: Callable[..., Dict[str, Any]] = get_json,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._retries = retries
        self._fetch = fetch

    def get_rates(self, base_currency: str) -> Dict[str, Decimal]:  # type: ignore[override]
        if not self._api_key:
            raise UpstreamUnavailable("exchange_api_key is not configured")
        url = f"{self._base_url}/{self._api_key}/latest/{base_currency}"
        try:
            data = self._fetch(url, timeout=self._timeout, retries=self._retries)
        except HttpError as e:
            raise UpstreamUnavailable(str(e)) from e

        if data.get("result") != "success":
            error_type = data.get("error-type", "unknown")
            if error_type == "unsupported-code":
                raise InvalidArgument(f"unsupported base currency '{base_currency}'")
            raise UpstreamUnavailable(f"rate provider error: {error_type}")

        raw = data.get("conversion_rates")
        if not isinstance(raw, dict):
            raise UpstreamUnavailable("rate provider response missing conversion_rates")
        rates: Dict[str, Decimal] = {}
        for code, value in raw.items():
            try:
                rate = Decimal(str(value))
            except ArithmeticError:
                logger.warning("skipping unparsable rate %s=%r", code, value)
                continue
            if rate.is_finite() and rate > 0:
                rates[str(code).upper()] = rate
        rates[base_currency] = Decimal(1)
        return rates


_PROVIDER_REGISTRY = {
    "static": lambda settings: StaticRateProvider(),
    "external-http": lambda settings: ExchangeRateApiProvider(
        settings.exchange_api_base_url,
        settings.exchange_api_key,
        timeout=settings.http_timeout_seconds,
        retries=settings.http_retries,
    ),
}


def make_rate_provider(settings: Settings) -> RateProvider:
    factory = _PROVIDER_REGISTRY.get(settings.exchange_rate_provider)
    if not factory:
        raise ValueError(
            f"Unknown rate provider kind '{settings.exchange_rate_provider}'"
        )
    return factory(settings)
