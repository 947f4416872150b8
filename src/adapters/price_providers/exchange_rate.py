"""FX rate provider (ExchangeRate-API) and the cached rate the engines read."""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable

from src.adapters.price_providers.base import HttpJsonMixin
from src.domain.errors import ProviderUnavailableError
from src.domain.interfaces.price_provider import FxRateProvider
from src.infrastructure.logging import get_logger

logger = get_logger(__name__)

EXCHANGE_RATE_URL = "https://api.exchangerate-api.com/v4/latest/{base}"


class ExchangeRateApiProvider(HttpJsonMixin, FxRateProvider):
    """ExchangeRate-API v4 (free, no key).

    Response: {"base": "USD", "rates": {"INR": 83.2, ...}}
    """

    provider_name = "exchangerate_api"

    async def fetch_rate(self, base: str, quote: str) -> Decimal:
        data = await self._get_json(EXCHANGE_RATE_URL.format(base=base.upper()))
        rates = data.get("rates") if isinstance(data, dict) else None
        if not isinstance(rates, dict):
            raise ProviderUnavailableError(self.name, "missing 'rates'")
        return self._to_price(rates.get(quote.upper()), f"rates.{quote.upper()}")


class CachedFxRate:
    """FX rate with a refresh interval and last-known fallback.

    The rate starts at a configured default. A refresh is attempted at
    most once per interval; a failed refresh keeps the previous rate and
    still waits a full interval before the next attempt.
    """

    def __init__(
        self,
        provider: FxRateProvider | None,
        base: str = "USD",
        quote: str = "INR",
        default_rate: Decimal = Decimal("83.5"),
        refresh_interval: timedelta = timedelta(hours=1),
        timeout: float = 10.0,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the cache.

        Args:
            provider: FX provider (None = always use the default rate)
            base: Base currency (USD)
            quote: Quote currency (INR)
            default_rate: Rate used until the first successful fetch
            refresh_interval: Minimum time between fetch attempts
            timeout: Hard bound for a single fetch
            clock: Time source (injectable for tests)
        """
        self._provider = provider
        self._base = base
        self._quote = quote
        self._rate = default_rate
        self._refresh_interval = refresh_interval
        self._timeout = timeout
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._last_attempt: datetime | None = None
        self._last_success: datetime | None = None
        self._lock = asyncio.Lock()

    @property
    def rate(self) -> Decimal:
        """Current rate without refreshing."""
        return self._rate

    @property
    def last_success(self) -> datetime | None:
        return self._last_success

    def _is_fresh(self, now: datetime) -> bool:
        return (
            self._last_attempt is not None
            and now - self._last_attempt < self._refresh_interval
        )

    async def get_rate(self) -> Decimal:
        """Get the rate, refreshing first if the interval has elapsed.

        Never raises: on failure the last known rate is returned.
        """
        if self._provider is None or self._is_fresh(self._clock()):
            return self._rate

        async with self._lock:
            now = self._clock()
            if self._is_fresh(now):
                return self._rate
            self._last_attempt = now

            try:
                rate = await asyncio.wait_for(
                    self._provider.fetch_rate(self._base, self._quote),
                    timeout=self._timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    f"FX refresh timed out after {self._timeout}s, keeping {self._rate}"
                )
            except Exception as e:
                logger.warning(f"FX refresh failed ({e}), keeping {self._rate}")
            else:
                self._rate = rate
                self._last_success = now
                logger.info(f"Updated {self._base}/{self._quote} rate: {rate}")

        return self._rate
