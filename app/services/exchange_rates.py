"""
Exchange rate service.

Fetches USD exchange rates over HTTP and caches them in memory.
Falls back to approximate static rates if the provider is unreachable.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

import httpx

from app.calculations.currency import (
    BASE_CURRENCY,
    FALLBACK_RATES,
    SOURCE_FALLBACK,
    SOURCE_LIVE,
    ExchangeRateTable,
)
from app.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

CACHE_KEY = "exchange_rates_usd"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExchangeRateService:
    """Exchange rate lookup with a time-limited cache."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        ttl: Optional[timedelta] = None,
        retry_interval: Optional[timedelta] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.api_url = api_url or settings.exchange_rate_api_url
        self.ttl = ttl or timedelta(hours=settings.exchange_rate_cache_ttl_hours)
        self.retry_interval = retry_interval or timedelta(
            minutes=settings.exchange_rate_retry_minutes
        )
        self.timeout = timeout or settings.exchange_rate_timeout_seconds
        self.client = client
        self.clock = clock
        self._cache: Dict[str, ExchangeRateTable] = {}
        self._lock = threading.Lock()

    def _is_fresh(self, table: ExchangeRateTable) -> bool:
        if table.fetched_at is None:
            return False
        max_age = self.ttl if table.source == SOURCE_LIVE else self.retry_interval
        return self.clock() - table.fetched_at < max_age

    def get_rates(self) -> ExchangeRateTable:
        """
        Get current exchange rates.

        Returns the cached table while it is younger than the TTL, otherwise
        fetches fresh rates. Fallback rates are kept only for the retry
        interval.
        """
        with self._lock:
            cached = self._cache.get(CACHE_KEY)
            if cached is not None and self._is_fresh(cached):
                return cached
            return self._refresh()

    def refresh(self) -> ExchangeRateTable:
        """Force a fetch, bypassing the cache."""
        with self._lock:
            return self._refresh()

    def clear(self) -> None:
        with self._lock:
            self._cache.pop(CACHE_KEY, None)

    def _refresh(self) -> ExchangeRateTable:
        try:
            rates = self._fetch_rates()
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to fetch exchange rates: {str(e)}")
            table = ExchangeRateTable(
                rates=dict(FALLBACK_RATES),
                fetched_at=self.clock(),
                source=SOURCE_FALLBACK,
            )
            self._cache[CACHE_KEY] = table
            return table

        table = ExchangeRateTable(
            rates={BASE_CURRENCY: 1.0, **rates},
            fetched_at=self.clock(),
            source=SOURCE_LIVE,
        )
        self._cache[CACHE_KEY] = table
        logger.info(f"Fetched {len(table.rates)} exchange rates from {self.api_url}")
        return table

    def _fetch_rates(self) -> Dict[str, float]:
        if self.client is not None:
            response = self.client.get(self.api_url, timeout=self.timeout)
        else:
            response = httpx.get(self.api_url, timeout=self.timeout)

        response.raise_for_status()
        payload = response.json()

        return {code: float(rate) for code, rate in payload["rates"].items()}


# Singleton instance
_exchange_rate_service: Optional[ExchangeRateService] = None


def get_exchange_rate_service() -> ExchangeRateService:
    """Get the exchange rate service singleton."""
    global _exchange_rate_service
    if _exchange_rate_service is None:
        _exchange_rate_service = ExchangeRateService()
    return _exchange_rate_service
