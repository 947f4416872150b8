"""Metals.live spot price provider (free, no key)."""

from src.adapters.price_providers.base import HttpPriceProvider
from src.domain.errors import ProviderUnavailableError
from src.domain.models.enums import MetalType
from src.domain.models.price import SpotQuote

METALS_LIVE_URL = "https://api.metals.live/v1/spot/{metal}"


class MetalsLiveProvider(HttpPriceProvider):
    """api.metals.live spot endpoint.

    The endpoint has answered both as an object ({"price": 2034.5}) and
    as a list of such objects (newest last); both shapes are accepted.
    """

    provider_name = "metals_live"

    async def fetch_spot_price(self, metal: MetalType) -> SpotQuote:
        data = await self._get_json(METALS_LIVE_URL.format(metal=metal.value))

        if isinstance(data, list):
            if not data:
                raise ProviderUnavailableError(self.name, "empty response")
            data = data[-1]
        if not isinstance(data, dict):
            raise ProviderUnavailableError(self.name, "unexpected payload")

        spot = self._to_price(data.get("price"), "price")
        return self._spot_quote(metal, spot)
