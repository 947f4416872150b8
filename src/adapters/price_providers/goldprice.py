"""GoldPrice.org spot price provider (free, secondary)."""

from src.adapters.price_providers.base import HttpPriceProvider
from src.domain.errors import ProviderUnavailableError
from src.domain.models.enums import MetalType
from src.domain.models.price import SpotQuote

GOLDPRICE_URL = "https://data-asg.goldprice.org/dbXRates/USD"

_PRICE_FIELDS = {
    MetalType.GOLD: "xauPrice",
    MetalType.SILVER: "xagPrice",
}


class GoldPriceOrgProvider(HttpPriceProvider):
    """goldprice.org rates feed.

    Response: {"items": [{"curr": "USD", "xauPrice": 2034.5, "xagPrice": 23.1}]}
    """

    provider_name = "goldprice_org"

    async def fetch_spot_price(self, metal: MetalType) -> SpotQuote:
        data = await self._get_json(GOLDPRICE_URL, headers={"Accept": "application/json"})

        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            raise ProviderUnavailableError(self.name, "missing 'items'")

        field = _PRICE_FIELDS[metal]
        spot = self._to_price(items[0].get(field), field)
        return self._spot_quote(metal, spot)
