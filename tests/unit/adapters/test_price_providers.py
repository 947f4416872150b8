"""Tests for spot price providers and the composite failover chain."""

import asyncio
from decimal import Decimal

import httpx
import pytest

from src.adapters.price_providers import (
    CompositePriceProvider,
    GoldApiProvider,
    GoldPriceOrgProvider,
    MetalsDevProvider,
    MetalsLiveProvider,
)
from src.domain.errors import ProviderUnavailableError
from src.domain.models.enums import MetalType
from tests.fakes import ScriptedPriceProvider, unavailable


def mock_client(handler) -> httpx.AsyncClient:
    """AsyncClient answering through a handler function."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def json_handler(payload, status_code: int = 200, seen: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=payload)

    return handler


class TestGoldApiProvider:
    """Tests for goldapi.io."""

    async def test_uses_bid_ask(self):
        seen: list[httpx.Request] = []
        client = mock_client(
            json_handler({"price": 2000, "ask": 2001.5, "bid": 1998.5}, seen=seen)
        )
        provider = GoldApiProvider("key-123", client=client)

        quote = await provider.fetch_spot_price(MetalType.GOLD)

        assert quote.buy_usd == Decimal("2001.5")
        assert quote.sell_usd == Decimal("1998.5")
        assert quote.mid_usd == Decimal("2000")
        assert quote.source == "goldapi"
        assert seen[0].url.path == "/api/XAU/USD"
        assert seen[0].headers["x-access-token"] == "key-123"

    async def test_spot_only(self):
        client = mock_client(json_handler({"price": 24.1}))
        provider = GoldApiProvider("key", client=client)

        quote = await provider.fetch_spot_price(MetalType.SILVER)

        assert quote.buy_usd == quote.sell_usd == Decimal("24.1")

    async def test_missing_key_skips_network(self):
        seen: list[httpx.Request] = []
        provider = GoldApiProvider("", client=mock_client(json_handler({}, seen=seen)))

        with pytest.raises(ProviderUnavailableError, match="API key"):
            await provider.fetch_spot_price(MetalType.GOLD)
        assert seen == []

    async def test_http_error(self):
        provider = GoldApiProvider("key", client=mock_client(json_handler({}, status_code=403)))

        with pytest.raises(ProviderUnavailableError, match="HTTP 403"):
            await provider.fetch_spot_price(MetalType.GOLD)


class TestMetalsDevProvider:
    """Tests for metals.dev."""

    async def test_parses_metal(self):
        seen: list[httpx.Request] = []
        client = mock_client(
            json_handler({"status": "success", "metals": {"gold": 2000, "silver": 25}}, seen=seen)
        )
        provider = MetalsDevProvider("dev-key", client=client)

        quote = await provider.fetch_spot_price(MetalType.SILVER)

        assert quote.mid_usd == Decimal("25")
        assert seen[0].url.params["api_key"] == "dev-key"
        assert seen[0].url.params["unit"] == "toz"

    async def test_missing_metals(self):
        provider = MetalsDevProvider("k", client=mock_client(json_handler({"status": "failure"})))
        with pytest.raises(ProviderUnavailableError):
            await provider.fetch_spot_price(MetalType.GOLD)


class TestMetalsLiveProvider:
    """Tests for metals.live."""

    async def test_object_shape(self):
        provider = MetalsLiveProvider(client=mock_client(json_handler({"price": 2000})))
        quote = await provider.fetch_spot_price(MetalType.GOLD)
        assert quote.mid_usd == Decimal("2000")

    async def test_list_shape_uses_latest(self):
        provider = MetalsLiveProvider(
            client=mock_client(json_handler([{"price": 1990}, {"price": 2000}]))
        )
        quote = await provider.fetch_spot_price(MetalType.GOLD)
        assert quote.mid_usd == Decimal("2000")

    async def test_empty_list(self):
        provider = MetalsLiveProvider(client=mock_client(json_handler([])))
        with pytest.raises(ProviderUnavailableError):
            await provider.fetch_spot_price(MetalType.GOLD)

    @pytest.mark.parametrize("value", [0, -5, "abc", None, True])
    async def test_malformed_price(self, value):
        provider = MetalsLiveProvider(client=mock_client(json_handler({"price": value})))
        with pytest.raises(ProviderUnavailableError):
            await provider.fetch_spot_price(MetalType.GOLD)

    async def test_invalid_json(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>down</html>")

        provider = MetalsLiveProvider(client=mock_client(handler))
        with pytest.raises(ProviderUnavailableError, match="invalid JSON"):
            await provider.fetch_spot_price(MetalType.GOLD)

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        provider = MetalsLiveProvider(client=mock_client(handler))
        with pytest.raises(ProviderUnavailableError, match="request failed"):
            await provider.fetch_spot_price(MetalType.GOLD)


class TestGoldPriceOrgProvider:
    """Tests for goldprice.org."""

    async def test_parses_fields(self):
        payload = {"items": [{"curr": "USD", "xauPrice": 2000.5, "xagPrice": 24.75}]}
        provider = GoldPriceOrgProvider(client=mock_client(json_handler(payload)))

        gold = await provider.fetch_spot_price(MetalType.GOLD)
        silver = await provider.fetch_spot_price(MetalType.SILVER)

        assert gold.mid_usd == Decimal("2000.5")
        assert silver.mid_usd == Decimal("24.75")

    async def test_missing_items(self):
        provider = GoldPriceOrgProvider(client=mock_client(json_handler({"items": []})))
        with pytest.raises(ProviderUnavailableError):
            await provider.fetch_spot_price(MetalType.GOLD)


class TestCompositePriceProvider:
    """Tests for priority failover."""

    async def test_first_success_wins(self):
        first = ScriptedPriceProvider("first", [Decimal("2000")])
        second = ScriptedPriceProvider("second", [Decimal("2100")])
        composite = CompositePriceProvider([first, second])

        quote = await composite.fetch_spot_price(MetalType.GOLD)

        assert quote.source == "first"
        assert second.calls == 0
        assert composite.last_source == "first"

    async def test_falls_through_failures(self):
        providers = [
            ScriptedPriceProvider("a", [unavailable("a")]),
            ScriptedPriceProvider("b", [ValueError("bad payload")]),
            ScriptedPriceProvider("c", [Decimal("2000")]),
        ]
        composite = CompositePriceProvider(providers)

        quote = await composite.fetch_spot_price(MetalType.GOLD)

        assert quote.source == "c"
        assert len(composite.last_errors) == 2

    async def test_stuck_provider_treated_as_failed(self):
        providers = [
            ScriptedPriceProvider("slow", ["hang"]),
            ScriptedPriceProvider("fast", [Decimal("2000")]),
        ]
        composite = CompositePriceProvider(providers, timeout=0.05)

        quote = await asyncio.wait_for(composite.fetch_spot_price(MetalType.GOLD), timeout=2)

        assert quote.source == "fast"
        assert "timed out" in composite.last_errors[0]

    async def test_all_failed_returns_none(self):
        composite = CompositePriceProvider(
            [ScriptedPriceProvider("a", [unavailable()]), ScriptedPriceProvider("b", [unavailable()])]
        )
        assert await composite.fetch_spot_price(MetalType.GOLD) is None
        assert len(composite.last_errors) == 2
