"""Shared HTTP plumbing for price and FX providers."""

from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from src.domain.errors import ProviderUnavailableError
from src.domain.interfaces.price_provider import PriceProvider
from src.domain.models.enums import MetalType
from src.domain.models.price import SpotQuote


class HttpJsonMixin:
    """JSON-over-HTTP helpers built on httpx.

    Every transport error, non-2xx status and malformed body is turned
    into ProviderUnavailableError so callers treat them the same.
    """

    provider_name = "http"

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        """Initialize provider.

        Args:
            client: Shared AsyncClient (a short-lived one is used if not provided)
            timeout: Request timeout in seconds
        """
        self._client = client
        self._timeout = timeout

    @property
    def name(self) -> str:
        return self.provider_name

    async def _get_json(
        self,
        url: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET a URL and decode the JSON body."""
        try:
            if self._client is not None:
                response = await self._client.get(
                    url, params=params, headers=headers, timeout=self._timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url, params=params, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderUnavailableError(
                self.name, f"HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(self.name, f"request failed: {e!r}") from e
        except ValueError as e:
            raise ProviderUnavailableError(self.name, "invalid JSON") from e

    def _to_price(self, value: Any, field: str) -> Decimal:
        """Parse a positive number from a payload value."""
        if value is None or isinstance(value, bool):
            raise ProviderUnavailableError(self.name, f"missing '{field}'")
        try:
            price = Decimal(str(value))
        except InvalidOperation as e:
            raise ProviderUnavailableError(self.name, f"bad '{field}': {value!r}") from e
        if not price.is_finite() or price <= 0:
            raise ProviderUnavailableError(self.name, f"non-positive '{field}': {value!r}")
        return price


class HttpPriceProvider(HttpJsonMixin, PriceProvider):
    """Base for spot price providers reached over HTTP."""

    def _spot_quote(self, metal: MetalType, spot: Decimal) -> SpotQuote:
        """Quote for providers that expose a single spot value."""
        return SpotQuote(metal_type=metal, buy_usd=spot, sell_usd=spot, source=self.name)
