"""Spot price and FX providers."""

from src.adapters.price_providers.composite_provider import CompositePriceProvider
from src.adapters.price_providers.exchange_rate import CachedFxRate, ExchangeRateApiProvider
from src.adapters.price_providers.goldapi import GoldApiProvider
from src.adapters.price_providers.goldprice import GoldPriceOrgProvider
from src.adapters.price_providers.metals_dev import MetalsDevProvider
from src.adapters.price_providers.metals_live import MetalsLiveProvider

__all__ = [
    "CompositePriceProvider",
    "CachedFxRate",
    "ExchangeRateApiProvider",
    "GoldApiProvider",
    "GoldPriceOrgProvider",
    "MetalsDevProvider",
    "MetalsLiveProvider",
]
