"""GoldAPI.io spot price provider (primary)."""

import httpx

from src.adapters.price_providers.base import HttpPriceProvider
from src.domain.errors import ProviderUnavailableError
from src.domain.models.enums import MetalType
from src.domain.models.price import SpotQuote
from src.domain.rules import rules_for

GOLDAPI_URL = "https://www.goldapi.io/api/{symbol}/USD"


class GoldApiProvider(HttpPriceProvider):
    """goldapi.io, authenticated with an x-access-token header.

    Response: {"price": 2034.5, "ask": 2035.1, "bid": 2033.9, ...}
    Bid/ask are used when present, otherwise the spot price.
    """

    provider_name = "goldapi"

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

        url = GOLDAPI_URL.format(symbol=rules_for(metal).provider_symbol)
        data = await self._get_json(url, headers={"x-access-token": self._api_key})
        if not isinstance(data, dict):
            raise ProviderUnavailableError(self.name, "unexpected payload")

        spot = self._to_price(data.get("price"), "price")
        if data.get("ask") and data.get("bid"):
            ask = self._to_price(data["ask"], "ask")
            bid = self._to_price(data["bid"], "bid")
            return SpotQuote(metal_type=metal, buy_usd=ask, sell_usd=bid, source=self.name)

        return self._spot_quote(metal, spot)
