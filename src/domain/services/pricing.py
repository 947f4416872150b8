"""Price conversion and validation for Metal Vault.

Providers quote USD per troy ounce. The feed stores local currency per
gram, with a symmetric spread applied around the converted mid:

    mid  = round(USD_oz / 31.1035 * FX)
    buy  = round(mid * (1 + spread))
    sell = round(mid * (1 - spread))

Out-of-bounds sides are replaced by the metal's fallback constants, so
a provider glitch (e.g., a decimal shift) never reaches the feed.
"""

import random
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from src.domain.rules import (
    DEFAULT_MARKET_SPREAD,
    PRICE_QUANTUM,
    TROY_OUNCE_GRAMS,
    MetalRules,
)


@dataclass(frozen=True)
class QuotedPrice:
    """Buy/sell pair in local currency per gram."""

    buy: Decimal
    sell: Decimal
    substituted: bool = False  # True if a bound check replaced a side

    @property
    def is_valid(self) -> bool:
        """Check the pair is positive with buy above sell."""
        return self.sell > 0 and self.buy > self.sell


def round_price(value: Decimal) -> Decimal:
    """Round to whole currency units, halves away from zero."""
    return value.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)


def usd_ounce_to_local_gram(usd_per_ounce: Decimal, fx_rate: Decimal) -> Decimal:
    """Convert USD per troy ounce to local currency per gram (unrounded).

    Example:
        >>> # $2000/oz at 83 INR/USD
        >>> # 2000 / 31.1035 × 83 ≈ 5337.02 INR/g
    """
    return usd_per_ounce / TROY_OUNCE_GRAMS * fx_rate


def apply_spread(mid: Decimal, spread: Decimal = DEFAULT_MARKET_SPREAD) -> QuotedPrice:
    """Derive buy/sell from a mid price with a symmetric percentage spread."""
    return QuotedPrice(
        buy=round_price(mid * (1 + spread)),
        sell=round_price(mid * (1 - spread)),
    )


def quote_from_usd(
    usd_per_ounce: Decimal,
    fx_rate: Decimal,
    spread: Decimal = DEFAULT_MARKET_SPREAD,
) -> QuotedPrice:
    """Full conversion: USD/oz mid -> local/gram buy and sell."""
    mid = round_price(usd_ounce_to_local_gram(usd_per_ounce, fx_rate))
    return apply_spread(mid, spread)


def enforce_bounds(price: QuotedPrice, rules: MetalRules) -> QuotedPrice:
    """Replace out-of-range sides with the metal's fallback constants.

    Each side is checked on its own. If substitution leaves the pair
    inverted (buy <= sell), both sides fall back together.
    """
    buy_ok = rules.in_bounds(price.buy)
    sell_ok = rules.in_bounds(price.sell)

    if buy_ok and sell_ok:
        return price

    buy = price.buy if buy_ok else rules.default_buy
    sell = price.sell if sell_ok else rules.default_sell

    if buy <= sell:
        buy, sell = rules.default_buy, rules.default_sell

    return QuotedPrice(buy=buy, sell=sell, substituted=True)


def synthesize_price(
    last_buy: Decimal,
    rules: MetalRules,
    rng: random.Random | None = None,
) -> QuotedPrice:
    """Generate a plausible next price when every provider is down.

    Perturbs the last buy by a whole-unit step in [-fluctuation, +fluctuation],
    clamps it so both sides stay in bounds, then derives the sell side
    with a spread in [spread_min, spread_max).

    Args:
        last_buy: Last known buy price
        rules: Metal price policy
        rng: Random source (injectable for tests)

    Returns:
        QuotedPrice with buy > sell, both within bounds.
    """
    rng = rng or random.Random()

    step = int(rules.fluctuation)
    move = Decimal(rng.randint(-step, step))

    spread_low = int(rules.spread_min)
    spread_high = max(spread_low, int(rules.spread_max) - 1)
    spread = Decimal(rng.randint(spread_low, spread_high))

    # Keep sell = buy - spread inside [min, max]
    floor = rules.min_price + spread
    buy = round_price(last_buy + move)
    buy = min(max(buy, floor), rules.max_price)

    return QuotedPrice(buy=buy, sell=buy - spread)


def validate_quote(price: QuotedPrice, rules: MetalRules) -> tuple[bool, str]:
    """Validate a buy/sell pair for storage.

    Returns:
        Tuple of (is_valid, reason)
    """
    if price.sell <= 0:
        return False, f"Sell price <= 0: {price.sell}"
    if price.buy <= price.sell:
        return False, f"Buy ({price.buy}) <= Sell ({price.sell})"
    if not rules.in_bounds(price.buy):
        return False, f"Buy {price.buy} outside [{rules.min_price}, {rules.max_price}]"
    if not rules.in_bounds(price.sell):
        return False, f"Sell {price.sell} outside [{rules.min_price}, {rules.max_price}]"
    return True, "OK"
