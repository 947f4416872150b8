"""Metal Vault pricing and trading rules.

This module defines the business rules as constants, making them
explicit and testable. Per-metal values are INR per gram unless noted.
"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Final

from src.domain.models.enums import MetalType

# =============================================================================
# UNITS & ROUNDING
# =============================================================================

# 1 troy ounce = 31.1035 grams
TROY_OUNCE_GRAMS: Final[Decimal] = Decimal("31.1035")

# Prices are stored in whole currency units
PRICE_QUANTUM: Final[Decimal] = Decimal("1")

# Order amounts are settled to the minor unit (paise)
AMOUNT_QUANTUM: Final[Decimal] = Decimal("0.01")

# Metal quantities are tracked to 0.1 mg
QUANTITY_QUANTUM: Final[Decimal] = Decimal("0.0001")

# Statistics are reported with 2 decimals
STAT_QUANTUM: Final[Decimal] = Decimal("0.01")


# =============================================================================
# SPREAD
# =============================================================================

# Symmetric market spread applied to the converted mid price
DEFAULT_MARKET_SPREAD: Final[Decimal] = Decimal("0.025")  # 2.5%


# =============================================================================
# PER-METAL RULES
# =============================================================================


@dataclass(frozen=True)
class MetalRules:
    """Price policy for a single metal."""

    metal: MetalType
    provider_symbol: str  # ISO 4217 code used by metals APIs (XAU, XAG)
    min_price: Decimal
    max_price: Decimal
    default_buy: Decimal  # Cold-start price and out-of-bounds substitute
    default_sell: Decimal
    fluctuation: Decimal  # Max synthetic move per tick
    spread_min: Decimal  # Synthetic buy/sell gap range
    spread_max: Decimal

    def in_bounds(self, price: Decimal) -> bool:
        """Check a price against the sane range."""
        return self.min_price <= price <= self.max_price


METAL_RULES: Final[dict[MetalType, MetalRules]] = {
    MetalType.GOLD: MetalRules(
        metal=MetalType.GOLD,
        provider_symbol="XAU",
        min_price=Decimal("3000"),
        max_price=Decimal("15000"),
        default_buy=Decimal("6500"),
        default_sell=Decimal("6400"),
        fluctuation=Decimal("50"),
        spread_min=Decimal("100"),
        spread_max=Decimal("150"),
    ),
    MetalType.SILVER: MetalRules(
        metal=MetalType.SILVER,
        provider_symbol="XAG",
        min_price=Decimal("40"),
        max_price=Decimal("400"),
        default_buy=Decimal("95"),
        default_sell=Decimal("92"),
        fluctuation=Decimal("2"),
        spread_min=Decimal("2"),
        spread_max=Decimal("4"),
    ),
}


def rules_for(metal: MetalType) -> MetalRules:
    """Get the price policy for a metal."""
    return METAL_RULES[metal]


# =============================================================================
# PRICE ACQUISITION
# =============================================================================

# Minimum time between external price fetches
PRICE_API_INTERVAL: Final[timedelta] = timedelta(seconds=60)

# FX rate is refreshed at most this often
FX_REFRESH_INTERVAL: Final[timedelta] = timedelta(hours=1)

# Observations older than this are swept
PRICE_RETENTION: Final[timedelta] = timedelta(days=30)


# =============================================================================
# ALERTS
# =============================================================================

# Recurring alerts fire at most once per cooldown
ALERT_COOLDOWN: Final[timedelta] = timedelta(hours=1)


# =============================================================================
# HISTORY WINDOWS & SAMPLING
# =============================================================================

# Window length per period code. None = all history.
PERIOD_WINDOWS: Final[dict[str, timedelta | None]] = {
    "1H": timedelta(hours=1),
    "4H": timedelta(hours=4),
    "1D": timedelta(days=1),
    "1W": timedelta(days=7),
    "2W": timedelta(days=14),
    "1M": timedelta(days=30),
    "3M": timedelta(days=91),
    "6M": timedelta(days=182),
    "1Y": timedelta(days=365),
    "ALL": None,
}

DEFAULT_PERIOD: Final[str] = "1D"

# Sampling interval used when the caller asks for interval="auto"
AUTO_INTERVALS: Final[dict[str, str]] = {
    "1H": "1m",
    "4H": "1m",
    "1D": "5m",
    "1W": "1h",
    "1M": "4h",
    "3M": "1d",
    "6M": "1d",
    "1Y": "1w",
    "ALL": "1w",
}

# Periods reported by the cross-period comparison
COMPARISON_PERIODS: Final[tuple[str, ...]] = ("1H", "1D", "1W", "1M", "3M", "6M", "1Y")

# Target number of points for chart series
CHART_TARGET_POINTS: Final[int] = 50

# Hard cap for un-sampled history responses
HISTORY_MAX_POINTS: Final[int] = 1000
