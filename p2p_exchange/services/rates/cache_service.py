"""Central rate cache service.

Purpose:
    Keep one rate table per base currency for a configurable TTL
    (settings.rates_cache_ttl_seconds) so repeated quotes for the same pair
    do not hit the external provider.

Design:
    - Wraps the RateProvider selected by settings.exchange_rate_provider.
    - Entries are stamped with a monotonic clock; an expired entry is
      refreshed on the next lookup.
    - A refresh holds only the lock of its own base currency, so a slow
      provider call never blocks lookups for other bases.
    - Provider failures propagate (UpstreamUnavailable / InvalidArgument);
      a stale table is never served past its TTL.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import logging
import threading
import time
from typing import Callable, Dict, Optional

from p2p_exchange.core.config import Settings
from p2p_exchange.core.errors import InvalidArgument
from p2p_exchange.models.currency import normalize_currency
from .base import RateProvider
from .providers import make_rate_provider

logger = logging.getLogger("p2p_exchange.rates")


@dataclass
class _CacheEntry:
    rates: Dict[str, Decimal]
    fetched_at: float


class RateCacheService:
    """Cached rate lookups with TTL-bound entries."""

    def __init__(
        self,
        provider: RateProvider,
        ttl_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._provider = provider
        self._ttl = ttl_seconds
        self._clock = clock
        self._cache: Dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()  # guards _cache and _refresh_locks
        self._refresh_locks: Dict[str, threading.Lock] = {}

    @property
    def provider_name(self) -> str:
        return self._provider.name

    # Internal --------------------------------------------------
    def _is_entry_valid(self, entry: _CacheEntry) -> bool:
        return self._clock() - entry.fetched_at < self._ttl

    def _cached(self, base: str) -> Optional[Dict[str, Decimal]]:
        with self._lock:
            entry = self._cache.get(base)
            if entry and self._is_entry_valid(entry):
                return dict(entry.rates)
            return None

    def _refresh_lock(self, base: str) -> threading.Lock:
        with self._lock:
            return self._refresh_locks.setdefault(base, threading.Lock())

    # Public API -----------------------------------------------
    def get_rates(self, base_currency: str) -> Dict[str, Decimal]:
        base = normalize_currency(base_currency)
        rates = self._cached(base)
        if rates is not None:
            return rates
        with self._refresh_lock(base):
            # another thread may have refreshed while we waited
            rates = self._cached(base)
            if rates is not None:
                return rates
            rates = self._provider.get_rates(base)
            with self._lock:
                self._cache[base] = _CacheEntry(rates=rates, fetched_at=self._clock())
        logger.debug(
            "rates refreshed",
            extra={"context": {"base": base, "provider": self._provider.name}},
        )
        return dict(rates)

    def get_rate(self, from_currency: str, to_currency: str) -> Decimal:
        quote = normalize_currency(to_currency)
        rate = self.get_rates(from_currency).get(quote)
        if rate is None or rate <= 0:
            raise InvalidArgument(
                f"no exchange rate available for {normalize_currency(from_currency)}->{quote}"
            )
        return rate


def build_rate_cache_service(settings: Settings) -> RateCacheService:
    return RateCacheService(
        make_rate_provider(settings), ttl_seconds=settings.rates_cache_ttl_seconds
    )
