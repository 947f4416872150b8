"""Price provider interfaces (ports) - define how to fetch spot and FX quotes."""

from abc import ABC, abstractmethod
from decimal import Decimal

from src.domain.models.enums import MetalType
from src.domain.models.price import SpotQuote


class PriceProvider(ABC):
    """Abstract interface for an external spot price API.

    This is a port in Clean Architecture - defines what the domain needs
    without specifying implementation details.

    Implementations include:
    - GoldApiProvider: goldapi.io (primary, requires key)
    - MetalsDevProvider: metals.dev (requires key)
    - MetalsLiveProvider: api.metals.live (free)
    - GoldPriceOrgProvider: data-asg.goldprice.org (free)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name (e.g., 'goldapi', 'metals_live')."""
        ...

    @abstractmethod
    async def fetch_spot_price(self, metal: MetalType) -> SpotQuote:
        """Fetch the spot price in USD per troy ounce.

        Args:
            metal: Metal to quote

        Returns:
            SpotQuote with bid/ask in USD/oz.

        Raises:
            ProviderUnavailableError: On any transport error, non-2xx
                response or malformed payload.
        """
        ...


class FxRateProvider(ABC):
    """Abstract interface for a currency exchange rate API."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def fetch_rate(self, base: str, quote: str) -> Decimal:
        """Fetch units of quote currency per one unit of base.

        Raises:
            ProviderUnavailableError: If the rate cannot be obtained.
        """
        ...
