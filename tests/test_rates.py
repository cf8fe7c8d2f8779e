from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
import threading
import urllib.error

import pytest

from p2p_exchange.core.errors import InvalidArgument, UpstreamUnavailable
from p2p_exchange.services import http_client
from p2p_exchange.services.http_client import HttpError, get_json
from p2p_exchange.services.rates.base import RateProvider
from p2p_exchange.services.rates.cache_service import RateCacheService
from p2p_exchange.services.rates.providers import (
    ExchangeRateApiProvider,
    StaticRateProvider,
    make_rate_provider,
)
from .conftest import make_settings


class CountingProvider(RateProvider):
    name = "counting"

    def __init__(self, table):
        self.table = table
        self.calls = 0

    def get_rates(self, base_currency):
        self.calls += 1
        return dict(self.table)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


# Static provider -----------------------------------------------------
def test_static_provider_usd_table():
    rates = StaticRateProvider().get_rates("USD")
    assert rates["USD"] == Decimal(1)
    assert rates["EUR"] == Decimal("0.85")


def test_static_provider_cross_rate():
    rates = StaticRateProvider().get_rates("EUR")
    assert rates["EUR"] == Decimal(1)
    assert rates["USD"] == Decimal("1.176471")


def test_static_provider_unknown_base():
    with pytest.raises(InvalidArgument):
        StaticRateProvider().get_rates("XYZ")


# External provider ---------------------------------------------------
def test_external_provider_parses_conversion_rates():
    seen = {}

    def fetch(url, **kwargs):
        seen["url"] = url
        seen["kwargs"] = kwargs
        return {
            "result": "success",
            "base_code": "USD",
            "conversion_rates": {"USD": 1, "EUR": 0.9013, "JPY": 149.1, "BAD": 0},
        }

    provider = ExchangeRateApiProvider(
        "https://rates.example/v6/", "secret", timeout=2.0, retries=1, fetch=fetch
    )
    rates = provider.get_rates("USD")

    assert seen["url"] == "https://rates.example/v6/secret/latest/USD"
    assert seen["kwargs"] == {"timeout": 2.0, "retries": 1}
    assert rates == {
        "USD": Decimal(1),
        "EUR": Decimal("0.9013"),
        "JPY": Decimal("149.1"),
    }


def test_external_provider_unsupported_code():
    provider = ExchangeRateApiProvider(
        "https://rates.example/v6",
        "secret",
        fetch=lambda url, **kw: {"result": "error", "error-type": "unsupported-code"},
    )
    with pytest.raises(InvalidArgument):
        provider.get_rates("XYZ")


def test_external_provider_error_result():
    provider = ExchangeRateApiProvider(
        "https://rates.example/v6",
        "secret",
        fetch=lambda url, **kw: {"result": "error", "error-type": "quota-reached"},
    )
    with pytest.raises(UpstreamUnavailable):
        provider.get_rates("USD")


def test_external_provider_transport_failure():
    def fetch(url, **kwargs):
        raise HttpError("boom")

    provider = ExchangeRateApiProvider("https://rates.example/v6", "secret", fetch=fetch)
    with pytest.raises(UpstreamUnavailable):
        provider.get_rates("USD")


def test_external_provider_requires_key():
    def fetch(url, **kwargs):  # pragma: no cover - must not be reached
        raise AssertionError("fetch called without api key")

    provider = ExchangeRateApiProvider("https://rates.example/v6", "", fetch=fetch)
    with pytest.raises(UpstreamUnavailable):
        provider.get_rates("USD")


def test_make_rate_provider(tmp_path):
    assert isinstance(make_rate_provider(make_settings(tmp_path)), StaticRateProvider)
    external = make_rate_provider(
        make_settings(tmp_path, exchange_rate_provider="external-http")
    )
    assert isinstance(external, ExchangeRateApiProvider)


def test_unknown_provider_rejected(tmp_path):
    with pytest.raises(ValueError):
        make_settings(tmp_path, exchange_rate_provider="carrier-pigeon")


# Cache ---------------------------------------------------------------
def test_cache_reuses_table_within_ttl():
    provider = CountingProvider({"USD": Decimal(1), "EUR": Decimal("0.85")})
    clock = FakeClock()
    svc = RateCacheService(provider, ttl_seconds=60, clock=clock)

    assert svc.get_rate("usd", "eur") == Decimal("0.85")
    clock.now += 59
    assert svc.get_rate("USD", "EUR") == Decimal("0.85")
    assert provider.calls == 1

    clock.now += 2
    svc.get_rate("USD", "EUR")
    assert provider.calls == 2


def test_cache_missing_or_zero_rate_is_invalid():
    provider = CountingProvider({"USD": Decimal(1), "EUR": Decimal(0)})
    svc = RateCacheService(provider, ttl_seconds=60)
    with pytest.raises(InvalidArgument):
        svc.get_rate("USD", "GBP")
    with pytest.raises(InvalidArgument):
        svc.get_rate("USD", "EUR")


def test_cache_returns_copies():
    provider = CountingProvider({"USD": Decimal(1)})
    svc = RateCacheService(provider, ttl_seconds=60)
    svc.get_rates("USD")["USD"] = Decimal(5)
    assert svc.get_rates("USD")["USD"] == Decimal(1)


class SlowEurProvider(RateProvider):
    name = "slow"

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.calls = []

    def get_rates(self, base_currency):
        self.calls.append(base_currency)
        if base_currency == "EUR":
            self.entered.set()
            self.release.wait(timeout=5)
        return {base_currency: Decimal(1), "JPY": Decimal("150")}


def test_slow_refresh_does_not_block_cached_bases():
    provider = SlowEurProvider()
    svc = RateCacheService(provider, ttl_seconds=60)
    svc.get_rates("USD")

    with ThreadPoolExecutor(max_workers=1) as pool:
        pending = pool.submit(svc.get_rates, "EUR")
        assert provider.entered.wait(timeout=5)
        assert svc.get_rate("USD", "JPY") == Decimal("150")
        assert not pending.done()
        provider.release.set()
        assert pending.result(timeout=5)["EUR"] == Decimal(1)


def test_concurrent_refresh_of_one_base_fetches_once():
    provider = SlowEurProvider()
    svc = RateCacheService(provider, ttl_seconds=60)

    with ThreadPoolExecutor(max_workers=2) as pool:
        first = pool.submit(svc.get_rates, "EUR")
        assert provider.entered.wait(timeout=5)
        second = pool.submit(svc.get_rates, "EUR")
        provider.release.set()
        assert first.result(timeout=5) == second.result(timeout=5)

    assert provider.calls == ["EUR"]


# HTTP helper ---------------------------------------------------------
def test_get_json_retries_then_fails(monkeypatch):
    attempts = []
    sleeps = []

    def fake_urlopen(request, timeout):
        attempts.append(request.full_url)
        raise urllib.error.URLError("unreachable")

    monkeypatch.setattr(http_client.urllib.request, "urlopen", fake_urlopen)
    with pytest.raises(HttpError):
        get_json("https://rates.example/x", retries=2, backoff=0.5, sleep=sleeps.append)
    assert len(attempts) == 3
    assert sleeps == [0.5, 1.0]


# Routes --------------------------------------------------------------
def test_quote_route(client):
    resp = client.post(
        "/api/rates/quote",
        json={"from_currency": "usd", "to_currency": "EUR", "amount": 100},
    )
    assert resp.status_code == 200
    assert resp.json() == {
        "from_currency": "USD",
        "to_currency": "EUR",
        "rate": 0.85,
        "amount": 100.0,
        "base_amount": 85.0,
        "fee": 0.17,
        "total": 85.17,
        "fee_rate": 0.002,
    }


def test_quote_route_unknown_target(client):
    resp = client.post(
        "/api/rates/quote",
        json={"from_currency": "USD", "to_currency": "XYZ", "amount": 10},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_argument"


def test_quote_route_rejects_zero_amount(client):
    resp = client.post(
        "/api/rates/quote",
        json={"from_currency": "USD", "to_currency": "EUR", "amount": 0},
    )
    assert resp.status_code == 400


def test_quote_route_upstream_failure(tmp_path):
    from fastapi.testclient import TestClient
    from p2p_exchange.main import create_app

    # external provider without an api key can never succeed
    settings = make_settings(tmp_path, exchange_rate_provider="external-http")
    with TestClient(create_app(settings_override=settings)) as c:
        resp = c.post(
            "/api/rates/quote",
            json={"from_currency": "USD", "to_currency": "EUR", "amount": 10},
        )
    assert resp.status_code == 502
    assert resp.json()["error"] == "upstream_unavailable"


def test_rate_table_route(client):
    body = client.get("/api/rates/usd").json()
    assert body["base"] == "USD"
    assert body["rates"]["EUR"] == 0.85
    assert body["rates"]["USD"] == 1.0


def test_currencies_route(client):
    currencies = client.get("/api/currencies").json()
    assert currencies[:2] == ["USD", "EUR"]
    assert len(currencies) == 13


def test_quote_route_out_of_range_amount(client):
    resp = client.post(
        "/api/rates/quote",
        json={"from_currency": "USD", "to_currency": "JPY", "amount": "9e999999"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_argument"
