"""Price domain models for Metal Vault."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, computed_field

from src.domain.models.enums import MetalType, PriceSource


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


class SpotQuote(BaseModel):
    """Spot price quote from an external provider.

    Providers quote USD per troy ounce. When a provider exposes a single
    spot value, bid and ask are equal.
    """

    model_config = {"frozen": True}

    metal_type: MetalType
    buy_usd: Decimal = Field(..., gt=0, description="Ask, USD per troy ounce")
    sell_usd: Decimal = Field(..., gt=0, description="Bid, USD per troy ounce")
    source: str = Field(..., description="Provider name")
    fetched_at: datetime = Field(default_factory=utc_now)

    @computed_field
    @property
    def mid_usd(self) -> Decimal:
        """Mid-market USD per troy ounce."""
        return (self.buy_usd + self.sell_usd) / 2


class PriceObservation(BaseModel):
    """A single stored price point for a metal.

    Immutable once written. The store is append-only per metal type
    and timestamps never go backwards within a metal.
    """

    model_config = {"frozen": True}

    id: UUID = Field(default_factory=uuid4)
    metal_type: MetalType
    buy_price: Decimal = Field(..., description="Price the user pays per gram")
    sell_price: Decimal = Field(..., description="Price the user receives per gram")
    currency: str = "INR"
    timestamp: datetime = Field(default_factory=utc_now)
    source: str | None = Field(
        default=None, description="Provider that produced the quote, or 'synthetic'"
    )

    @property
    def spread(self) -> Decimal:
        """Absolute buy/sell gap."""
        return self.buy_price - self.sell_price

    @property
    def is_synthetic(self) -> bool:
        """Check if this price was generated without an external quote."""
        return self.source == "synthetic"


class EffectivePrice(BaseModel):
    """The price used for display and order pricing.

    Always resolvable: memory, then store, then the metal's default.
    """

    model_config = {"frozen": True}

    metal_type: MetalType
    buy_price: Decimal
    sell_price: Decimal
    currency: str = "INR"
    timestamp: datetime
    source: PriceSource

    @classmethod
    def from_observation(
        cls, observation: PriceObservation, source: PriceSource
    ) -> "EffectivePrice":
        """Build from a stored observation."""
        return cls(
            metal_type=observation.metal_type,
            buy_price=observation.buy_price,
            sell_price=observation.sell_price,
            currency=observation.currency,
            timestamp=observation.timestamp,
            source=source,
        )


class PriceStatistics(BaseModel):
    """Rolling statistics over the buy prices of a window."""

    model_config = {"frozen": True}

    current: Decimal
    high: Decimal
    low: Decimal
    average: Decimal
    change: Decimal
    change_percent: Decimal
    volatility: Decimal = Field(..., description="Population standard deviation")
    first_price: Decimal
    last_price: Decimal
    first_timestamp: datetime
    last_timestamp: datetime
    data_points: int


class PriceHistory(BaseModel):
    """Price series for a period, optionally sampled."""

    metal_type: MetalType
    period: str
    interval: str
    prices: list[PriceObservation] = Field(default_factory=list)
    statistics: PriceStatistics | None = None

    @property
    def count(self) -> int:
        return len(self.prices)


class ChartSummary(BaseModel):
    """Headline numbers shown above a chart."""

    model_config = {"frozen": True}

    current: Decimal
    change: Decimal
    change_percent: Decimal
    high: Decimal
    low: Decimal


class ChartData(BaseModel):
    """Chart-optimized series bounded to a target number of points."""

    metal_type: MetalType
    period: str
    points: list[PriceObservation] = Field(default_factory=list)
    summary: ChartSummary | None = None
    total_points: int = 0


class PeriodComparison(BaseModel):
    """Latest price compared against the price at or before a past instant."""

    model_config = {"frozen": True}

    period: str
    price: Decimal | None = None
    change: Decimal | None = None
    change_percent: Decimal | None = None
    timestamp: datetime | None = None


class PriceComparison(BaseModel):
    """Latest price compared across several look-back periods."""

    metal_type: MetalType
    current_buy: Decimal
    current_sell: Decimal
    timestamp: datetime
    comparisons: list[PeriodComparison] = Field(default_factory=list)

    def for_period(self, period: str) -> PeriodComparison | None:
        """Look up a single period's comparison."""
        for comparison in self.comparisons:
            if comparison.period == period:
                return comparison
        return None
