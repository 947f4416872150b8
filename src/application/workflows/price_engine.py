"""Price acquisition engine for Metal Vault.

One engine instance per metal, created at startup and shared through
the composition root. Each engine owns the mutex that serializes its
write path.

Write path (update_price), under the lock:
1. Rate-limit cache: within the API interval, return the latest
   stored observation without calling providers or writing
2. Provider chain in priority order, first success wins
3. USD/oz -> local/gram with the cached FX rate
4. Symmetric spread around the converted mid
5. Bounds check, substituting fallback constants
6. Persist, cache in memory, stamp the last API call
7. All providers down: perturb the last price (synthetic), persist

Read path (get_effective_price) never fails and never calls providers:
memory -> store -> metal default.
"""

import asyncio
import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Callable

from src.domain.errors import InvalidPriceBoundsError, PriceUnavailableError
from src.domain.interfaces.repositories import PriceRepository
from src.domain.models.enums import MetalType, PriceSource
from src.domain.models.price import EffectivePrice, PriceObservation
from src.domain.rules import (
    DEFAULT_MARKET_SPREAD,
    PRICE_API_INTERVAL,
    PRICE_RETENTION,
    MetalRules,
    rules_for,
)
from src.domain.services.pricing import (
    QuotedPrice,
    enforce_bounds,
    quote_from_usd,
    synthesize_price,
    validate_quote,
)
from src.infrastructure.logging import get_logger

if TYPE_CHECKING:
    from src.adapters.price_providers.composite_provider import CompositePriceProvider
    from src.adapters.price_providers.exchange_rate import CachedFxRate

logger = get_logger(__name__)

SYNTHETIC_SOURCE = "synthetic"
DEFAULT_SOURCE = "default"


class PriceAcquisitionEngine:
    """Authoritative current price for a single metal."""

    def __init__(
        self,
        metal: MetalType,
        price_repo: PriceRepository,
        provider: "CompositePriceProvider",
        fx_rate: "CachedFxRate",
        rules: MetalRules | None = None,
        spread: Decimal = DEFAULT_MARKET_SPREAD,
        api_interval: timedelta = PRICE_API_INTERVAL,
        retention: timedelta = PRICE_RETENTION,
        currency: str = "INR",
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the engine.

        Args:
            metal: Metal this engine prices
            price_repo: Price time series store
            provider: Priority-ordered provider chain
            fx_rate: Shared cached USD->local FX rate
            rules: Metal price policy (defaults to the rules table)
            spread: Symmetric spread as decimal (0.025 = 2.5%)
            api_interval: Minimum time between provider fetches
            retention: Horizon for the retention sweep
            currency: Currency stored on observations
            rng: Random source for synthetic prices
            clock: Time source (injectable for tests)
        """
        self._metal = metal
        self._repo = price_repo
        self._provider = provider
        self._fx = fx_rate
        self._rules = rules or rules_for(metal)
        self._spread = spread
        self._api_interval = api_interval
        self._retention = retention
        self._currency = currency
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._lock = asyncio.Lock()
        self._current: PriceObservation | None = None
        self._last_api_call: datetime | None = None

    @property
    def metal(self) -> MetalType:
        return self._metal

    @property
    def rules(self) -> MetalRules:
        return self._rules

    @property
    def current(self) -> PriceObservation | None:
        """Price held in memory, if any."""
        return self._current

    @property
    def last_api_call(self) -> datetime | None:
        """When providers last produced a persisted price."""
        return self._last_api_call

    # ==========================================================================
    # Read path
    # ==========================================================================

    async def get_effective_price(self) -> EffectivePrice:
        """Resolve the price for display and order pricing.

        Resolution order: memory, most recent stored observation, metal
        default. Whichever tier answers seeds memory.

        Raises:
            PriceUnavailableError: Only if the metal's default is invalid.
        """
        if self._current is not None:
            return EffectivePrice.from_observation(self._current, PriceSource.MEMORY)

        try:
            latest = await self._repo.get_latest(self._metal)
        except Exception as e:
            logger.warning(f"Price store read failed for {self._metal.value}: {e}")
            latest = None

        if latest is not None:
            valid, reason = validate_quote(
                QuotedPrice(buy=latest.buy_price, sell=latest.sell_price), self._rules
            )
            if valid:
                self._remember(latest)
                return EffectivePrice.from_observation(latest, PriceSource.STORE)
            logger.warning(f"Ignoring stored {self._metal.value} price: {reason}")

        default = self._default_observation()
        self._remember(default)
        return EffectivePrice.from_observation(default, PriceSource.DEFAULT)

    # ==========================================================================
    # Write path
    # ==========================================================================

    async def update_price(self) -> PriceObservation:
        """Run one price update. Concurrent calls are serialized."""
        async with self._lock:
            return await self._update_locked()

    async def force_refresh(self) -> PriceObservation:
        """Reset the rate-limit clock and update immediately."""
        async with self._lock:
            self._last_api_call = None
            return await self._update_locked()

    async def cleanup_old_prices(self, now: datetime | None = None) -> int:
        """Delete observations older than the retention horizon.

        Returns:
            Number of observations removed.
        """
        cutoff = (now or self._clock()) - self._retention
        deleted = await self._repo.delete_older_than(self._metal, cutoff)
        logger.info(
            f"Retention sweep removed {deleted} {self._metal.value} prices "
            f"older than {cutoff.isoformat()}"
        )
        return deleted

    async def _update_locked(self) -> PriceObservation:
        now = self._clock()

        if self._last_api_call is not None and now - self._last_api_call < self._api_interval:
            cached = await self._latest_known()
            if cached is not None:
                logger.debug(
                    f"{self._metal.value} rate-limited, reusing price from "
                    f"{cached.timestamp.isoformat()}"
                )
                return cached

        quote = await self._provider.fetch_spot_price(self._metal)
        if quote is None:
            logger.warning(
                f"All providers failed for {self._metal.value}, generating synthetic price"
            )
            return await self._generate_synthetic()

        fx_rate = await self._fx.get_rate()
        converted = quote_from_usd(quote.mid_usd, fx_rate, self._spread)
        checked = enforce_bounds(converted, self._rules)
        if checked.substituted:
            for side in (converted.buy, converted.sell):
                if not self._rules.in_bounds(side):
                    error = InvalidPriceBoundsError(
                        self._metal, side, self._rules.min_price, self._rules.max_price
                    )
                    logger.warning(f"{error} from {quote.source}, using fallback")

        observation = await self._persist(checked, source=quote.source)
        self._last_api_call = now
        return observation

    async def _generate_synthetic(self) -> PriceObservation:
        """Last resort: perturb the last known price."""
        last = await self._latest_known()
        last_buy = last.buy_price if last is not None else self._rules.default_buy
        synthetic = synthesize_price(last_buy, self._rules, self._rng)
        return await self._persist(synthetic, source=SYNTHETIC_SOURCE)

    async def _persist(self, price: QuotedPrice, source: str) -> PriceObservation:
        timestamp = self._clock()
        if self._current is not None and self._current.timestamp > timestamp:
            timestamp = self._current.timestamp

        observation = PriceObservation(
            metal_type=self._metal,
            buy_price=price.buy,
            sell_price=price.sell,
            currency=self._currency,
            timestamp=timestamp,
            source=source,
        )
        await self._repo.save(observation)
        self._remember(observation)

        logger.info(
            f"Stored {self._metal.value} price buy={observation.buy_price} "
            f"sell={observation.sell_price} source={source}"
        )
        return observation

    async def _latest_known(self) -> PriceObservation | None:
        """Most recent stored observation, falling back to memory."""
        try:
            latest = await self._repo.get_latest(self._metal)
        except Exception as e:
            logger.warning(f"Price store read failed for {self._metal.value}: {e}")
            latest = None
        return latest or self._current

    def _remember(self, observation: PriceObservation) -> None:
        self._current = observation

    def _default_observation(self) -> PriceObservation:
        default = QuotedPrice(buy=self._rules.default_buy, sell=self._rules.default_sell)
        valid, reason = validate_quote(default, self._rules)
        if not valid:
            logger.error(f"Default {self._metal.value} price is invalid: {reason}")
            raise PriceUnavailableError(self._metal)

        return PriceObservation(
            metal_type=self._metal,
            buy_price=default.buy,
            sell_price=default.sell,
            currency=self._currency,
            timestamp=self._clock(),
            source=DEFAULT_SOURCE,
        )
