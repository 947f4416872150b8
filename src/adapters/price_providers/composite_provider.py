"""Composite spot price provider with priority failover."""

import asyncio

from src.domain.interfaces.price_provider import PriceProvider
from src.domain.models.enums import MetalType
from src.domain.models.price import SpotQuote
from src.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CompositePriceProvider:
    """Tries providers in a fixed priority order, stopping at first success.

    Falls through to the next provider when one:
    - Raises any exception (transport, HTTP status, malformed payload)
    - Exceeds the per-call timeout
    """

    def __init__(
        self,
        providers: list[PriceProvider],
        timeout: float = 10.0,
    ):
        """Initialize composite provider.

        Args:
            providers: Providers in priority order
            timeout: Hard bound for each provider call in seconds
        """
        self._providers = providers
        self._timeout = timeout
        self._last_source: str | None = None
        self._last_errors: list[str] = []

    @property
    def providers(self) -> list[PriceProvider]:
        return list(self._providers)

    @property
    def last_source(self) -> str | None:
        """Return the provider used for the last successful quote."""
        return self._last_source

    @property
    def last_errors(self) -> list[str]:
        """Failures collected during the last fetch."""
        return list(self._last_errors)

    async def fetch_spot_price(self, metal: MetalType) -> SpotQuote | None:
        """Fetch a spot quote with automatic failover.

        Args:
            metal: Metal to quote

        Returns:
            SpotQuote from the first provider that answers, or None if
            every provider failed.
        """
        errors: list[str] = []

        for provider in self._providers:
            try:
                quote = await asyncio.wait_for(
                    provider.fetch_spot_price(metal), timeout=self._timeout
                )
            except asyncio.TimeoutError:
                errors.append(f"{provider.name}: timed out after {self._timeout}s")
                logger.warning(
                    f"{provider.name} timed out for {metal.value} after {self._timeout}s"
                )
                continue
            except Exception as e:
                errors.append(f"{provider.name}: {e}")
                logger.warning(f"{provider.name} failed for {metal.value}: {e}")
                continue

            self._last_source = provider.name
            self._last_errors = errors
            if errors:
                logger.info(f"Got {metal.value} price from {provider.name} (fallback)")
            return quote

        self._last_errors = errors
        return None
