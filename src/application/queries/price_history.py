"""Price queries for Metal Vault.

Read-only views over the price time series: current price, history,
chart series, statistics and cross-period comparison. Only
force_refresh reaches the write path.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from src.domain.errors import InvalidOrderError
from src.domain.interfaces.repositories import PriceRepository
from src.domain.models.enums import MetalType
from src.domain.models.price import (
    ChartData,
    EffectivePrice,
    PriceComparison,
    PriceHistory,
    PriceObservation,
    PriceStatistics,
)
from src.domain.rules import (
    CHART_TARGET_POINTS,
    COMPARISON_PERIODS,
    HISTORY_MAX_POINTS,
    PERIOD_WINDOWS,
)
from src.domain.services.price_statistics import (
    calculate_statistics,
    chart_summary,
    compare_prices,
    normalize_period,
    period_start,
    resolve_interval,
    sample_by_interval,
    sample_evenly,
)

if TYPE_CHECKING:
    from src.application.workflows.price_engine import PriceAcquisitionEngine


class PriceQueryService:
    """Price views for the API layer."""

    def __init__(
        self,
        price_repo: PriceRepository,
        price_engines: dict[MetalType, "PriceAcquisitionEngine"],
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the query service.

        Args:
            price_repo: Price time series store
            price_engines: One price engine per metal
            clock: Time source (injectable for tests)
        """
        self._repo = price_repo
        self._engines = price_engines
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _engine(self, metal: MetalType) -> "PriceAcquisitionEngine":
        engine = self._engines.get(metal)
        if engine is None:
            raise InvalidOrderError(f"{metal.value} is not priced")
        return engine

    async def _window(self, metal: MetalType, period: str) -> list[PriceObservation]:
        start = period_start(period, self._clock())
        return await self._repo.get_range(metal, start=start)

    async def get_current_price(self, metal: MetalType) -> EffectivePrice:
        """Current effective price. Never calls providers."""
        return await self._engine(metal).get_effective_price()

    async def get_current_prices(self) -> dict[MetalType, EffectivePrice]:
        """Current effective price of every priced metal."""
        return {
            metal: await engine.get_effective_price()
            for metal, engine in self._engines.items()
        }

    async def get_history(
        self,
        metal: MetalType,
        period: str = "1D",
        interval: str | None = "auto",
        limit: int | None = HISTORY_MAX_POINTS,
    ) -> PriceHistory:
        """Price history for a period.

        Args:
            metal: Metal type
            period: 1H, 4H, 1D, 1W, 2W, 1M, 3M, 6M, 1Y or ALL
            interval: 'auto', 'none' or a code like '5m', '1h', '1d'
            limit: Maximum points returned after sampling

        Returns:
            PriceHistory with sampled prices and statistics over the
            full unsampled window.
        """
        period = normalize_period(period)
        resolved = resolve_interval(period, interval)
        prices = await self._window(metal, period)

        return PriceHistory(
            metal_type=metal,
            period=period,
            interval=resolved,
            prices=sample_by_interval(prices, resolved, limit),
            statistics=calculate_statistics(prices),
        )

    async def get_chart_data(
        self,
        metal: MetalType,
        period: str = "1D",
        target_points: int = CHART_TARGET_POINTS,
    ) -> ChartData:
        """Chart series bounded to about target_points, latest point included."""
        period = normalize_period(period)
        prices = await self._window(metal, period)
        points = sample_evenly(prices, target_points)

        return ChartData(
            metal_type=metal,
            period=period,
            points=points,
            summary=chart_summary(points),
            total_points=len(prices),
        )

    async def get_statistics(
        self, metal: MetalType, period: str = "1D"
    ) -> PriceStatistics | None:
        """Rolling statistics for a period. None if no data."""
        prices = await self._window(metal, normalize_period(period))
        return calculate_statistics(prices)

    async def get_comparison(self, metal: MetalType) -> PriceComparison:
        """Compare the current price with the price at or before each look-back."""
        current = await self._engine(metal).get_effective_price()
        now = self._clock()

        comparisons = []
        for period in COMPARISON_PERIODS:
            past = await self._repo.get_at_or_before(metal, now - PERIOD_WINDOWS[period])
            comparisons.append(compare_prices(period, current.buy_price, past))

        return PriceComparison(
            metal_type=metal,
            current_buy=current.buy_price,
            current_sell=current.sell_price,
            timestamp=current.timestamp,
            comparisons=comparisons,
        )

    async def force_refresh(self, metal: MetalType) -> PriceObservation:
        """User-triggered refresh bypassing the rate limit."""
        return await self._engine(metal).force_refresh()
