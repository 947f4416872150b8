"""Metals.dev spot price provider."""

import httpx

from src.adapters.price_providers.base import HttpPriceProvider
from src.domain.errors import ProviderUnavailableError
from src.domain.models.enums import MetalType
from src.domain.models.price import SpotQuote

METALS_DEV_URL = "https://api.metals.dev/v1/latest"


class MetalsDevProvider(HttpPriceProvider):
    """metals.dev latest rates in USD per troy ounce.

    Response: {"status": "success", "metals": {"gold": 2034.5, "silver": 23.1, ...}}
    """

    provider_name = "metals_dev"

    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        super().__init__(client=client, timeout=timeout)
        self._api_key = api_key

    async def fetch_spot_price(self, metal: MetalType) -> SpotQuote:
        if not self._api_key:
            raise ProviderUnavailableError(self.name, "API key not configured")

        data = await self._get_json(
            METALS_DEV_URL,
            params={"api_key": self._api_key, "currency": "USD", "unit": "toz"},
        )
        metals = data.get("metals") if isinstance(data, dict) else None
        if not isinstance(metals, dict):
            raise ProviderUnavailableError(self.name, "missing 'metals'")

        spot = self._to_price(metals.get(metal.value), f"metals.{metal.value}")
        return self._spot_quote(metal, spot)
