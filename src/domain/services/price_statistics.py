"""Price series statistics and sampling for Metal Vault.

All statistics are computed over buy prices. Sampling keeps chart and
history responses bounded:
- Interval sampling keeps the first point of each interval-sized gap
- Even sampling keeps every k-th point to hit a target count
Both always keep the latest point.
"""

from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from src.domain.models.price import (
    ChartSummary,
    PeriodComparison,
    PriceObservation,
    PriceStatistics,
)
from src.domain.rules import (
    AUTO_INTERVALS,
    CHART_TARGET_POINTS,
    DEFAULT_PERIOD,
    PERIOD_WINDOWS,
    STAT_QUANTUM,
)

_INTERVAL_UNITS: dict[str, timedelta] = {
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
}


def _round2(value: Decimal) -> Decimal:
    return value.quantize(STAT_QUANTUM, rounding=ROUND_HALF_UP)


# =============================================================================
# PERIODS & INTERVALS
# =============================================================================


def normalize_period(period: str | None) -> str:
    """Uppercase a period code. Unknown codes fall back to 1D."""
    if not period:
        return DEFAULT_PERIOD
    code = period.strip().upper()
    return code if code in PERIOD_WINDOWS else DEFAULT_PERIOD


def period_start(period: str, now: datetime) -> datetime | None:
    """Start of the window for a period (None = all history)."""
    window = PERIOD_WINDOWS[normalize_period(period)]
    if window is None:
        return None
    return now - window


def resolve_interval(period: str, interval: str | None = "auto") -> str:
    """Resolve 'auto' through the lookup table. Unknown periods get 'none'."""
    if interval is None or interval == "auto":
        return AUTO_INTERVALS.get(normalize_period(period), "none")
    return interval


def interval_to_timedelta(interval: str) -> timedelta:
    """Parse an interval like '5m', '4h', '1d', '1w'.

    Malformed intervals default to one minute.
    """
    try:
        value = int(interval[:-1])
    except (ValueError, IndexError):
        return _INTERVAL_UNITS["m"]
    unit = _INTERVAL_UNITS.get(interval[-1:])
    if unit is None or value <= 0:
        return _INTERVAL_UNITS["m"]
    return unit * value


# =============================================================================
# SAMPLING
# =============================================================================


def sample_by_interval(
    prices: list[PriceObservation],
    interval: str,
    limit: int | None = None,
) -> list[PriceObservation]:
    """Keep the first observation of every interval-sized gap.

    Args:
        prices: Observations, oldest first
        interval: Interval code, or 'none' to keep everything
        limit: Optional cap, counted from the oldest

    Returns:
        Sampled observations, oldest first. The latest observation is
        included unless the result was cut by limit.
    """
    if interval == "none" or not prices:
        return prices[:limit] if limit else list(prices)

    gap = interval_to_timedelta(interval)
    sampled: list[PriceObservation] = []
    last_ts: datetime | None = None

    for price in prices:
        if last_ts is None or price.timestamp - last_ts >= gap:
            sampled.append(price)
            last_ts = price.timestamp

    if sampled[-1].id != prices[-1].id:
        sampled.append(prices[-1])

    return sampled[:limit] if limit else sampled


def sample_evenly(
    prices: list[PriceObservation],
    target_points: int = CHART_TARGET_POINTS,
) -> list[PriceObservation]:
    """Keep every k-th observation so roughly target_points remain.

    k = max(1, len // target). The latest observation is always kept.
    """
    if not prices:
        return []

    skip = max(1, len(prices) // target_points)
    sampled = [p for i, p in enumerate(prices) if i % skip == 0]

    if sampled[-1].id != prices[-1].id:
        sampled.append(prices[-1])

    return sampled


# =============================================================================
# STATISTICS
# =============================================================================


def calculate_statistics(prices: list[PriceObservation]) -> PriceStatistics | None:
    """Compute high/low/average/change/volatility over buy prices.

    Volatility is the population standard deviation. Derived values are
    rounded to 2 decimals.

    Returns:
        PriceStatistics, or None for an empty series.
    """
    if not prices:
        return None

    buys = [p.buy_price for p in prices]
    first, last = prices[0], prices[-1]

    count = Decimal(len(buys))
    average = sum(buys, Decimal("0")) / count
    variance = sum(((b - average) ** 2 for b in buys), Decimal("0")) / count
    change = last.buy_price - first.buy_price
    change_percent = (
        change / first.buy_price * 100 if first.buy_price else Decimal("0")
    )

    return PriceStatistics(
        current=last.buy_price,
        high=max(buys),
        low=min(buys),
        average=_round2(average),
        change=change,
        change_percent=_round2(change_percent),
        volatility=_round2(variance.sqrt()),
        first_price=first.buy_price,
        last_price=last.buy_price,
        first_timestamp=first.timestamp,
        last_timestamp=last.timestamp,
        data_points=len(buys),
    )


def chart_summary(points: list[PriceObservation]) -> ChartSummary | None:
    """Headline numbers for a chart series."""
    if not points:
        return None

    buys = [p.buy_price for p in points]
    first, last = points[0].buy_price, points[-1].buy_price
    change = last - first
    change_percent = change / first * 100 if first else Decimal("0")

    return ChartSummary(
        current=last,
        change=change,
        change_percent=_round2(change_percent),
        high=max(buys),
        low=min(buys),
    )


def compare_prices(
    period: str,
    current_buy: Decimal,
    past: PriceObservation | None,
) -> PeriodComparison:
    """Compare the current buy price against a past observation."""
    if past is None or past.buy_price == 0:
        return PeriodComparison(period=period)

    change = current_buy - past.buy_price
    return PeriodComparison(
        period=period,
        price=past.buy_price,
        change=change,
        change_percent=_round2(change / past.buy_price * 100),
        timestamp=past.timestamp,
    )
