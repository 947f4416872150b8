"""Tests for the per-metal price acquisition engine."""

import asyncio
from decimal import Decimal

import pytest

from src.domain.errors import PriceUnavailableError
from src.domain.models.enums import MetalType, PriceSource
from src.domain.models.price import PriceObservation
from src.domain.rules import MetalRules, rules_for
from src.domain.services.pricing import QuotedPrice, validate_quote
from tests.fakes import ScriptedPriceProvider, unavailable

GOLD = rules_for(MetalType.GOLD)


def stored(metal: MetalType, buy: str, sell: str, clock) -> PriceObservation:
    return PriceObservation(
        metal_type=metal,
        buy_price=Decimal(buy),
        sell_price=Decimal(sell),
        timestamp=clock(),
        source="goldapi",
    )


class TestEffectivePrice:
    """Tests for the never-failing read path."""

    async def test_cold_start_uses_default(self, make_engine, price_repo):
        engine = make_engine()
        price = await engine.get_effective_price()

        assert price.source == PriceSource.DEFAULT
        assert price.buy_price == GOLD.default_buy
        assert price.sell_price == GOLD.default_sell
        assert price_repo.observations == []

    async def test_store_then_memory(self, make_engine, price_repo, clock):
        await price_repo.save(stored(MetalType.GOLD, "7000", "6850", clock))
        engine = make_engine()

        first = await engine.get_effective_price()
        second = await engine.get_effective_price()

        assert first.source == PriceSource.STORE
        assert first.buy_price == Decimal("7000")
        assert second.source == PriceSource.MEMORY
        assert second.buy_price == Decimal("7000")

    async def test_invalid_stored_price_ignored(self, make_engine, price_repo, clock):
        await price_repo.save(stored(MetalType.GOLD, "70000", "68500", clock))
        price = await make_engine().get_effective_price()
        assert price.source == PriceSource.DEFAULT

    async def test_store_failure_falls_back_to_default(self, make_engine, price_repo):
        price_repo.fail_reads = True
        price = await make_engine().get_effective_price()
        assert price.source == PriceSource.DEFAULT

    async def test_misconfigured_default_raises(self, make_engine):
        broken = MetalRules(
            metal=MetalType.GOLD,
            provider_symbol="XAU",
            min_price=Decimal("3000"),
            max_price=Decimal("15000"),
            default_buy=Decimal("100"),
            default_sell=Decimal("200"),
            fluctuation=Decimal("50"),
            spread_min=Decimal("100"),
            spread_max=Decimal("150"),
        )
        with pytest.raises(PriceUnavailableError):
            await make_engine(rules=broken).get_effective_price()

    @pytest.mark.parametrize(
        "outcomes",
        [
            [unavailable()],
            [Decimal("2000")],
            [Decimal("200000")],
            [Decimal("0.02")],
        ],
    )
    async def test_always_available(self, make_engine, clock, outcomes):
        """Any provider behaviour leaves a valid in-bounds price."""
        engine = make_engine(outcomes=outcomes)
        for _ in range(5):
            await engine.update_price()
            clock.advance(minutes=2)
            price = await engine.get_effective_price()
            valid, reason = validate_quote(QuotedPrice(price.buy_price, price.sell_price), GOLD)
            assert valid, reason


class TestUpdatePrice:
    """Tests for the write path."""

    async def test_failover_reference_scenario(self, make_engine, price_repo, clock):
        """Stored 7000, two providers down, third returns 2000 USD/oz at FX 83."""
        await price_repo.save(stored(MetalType.GOLD, "7000", "6850", clock))
        providers = [
            ScriptedPriceProvider("goldapi", [unavailable("goldapi")]),
            ScriptedPriceProvider("metals_dev", [unavailable("metals_dev")]),
            ScriptedPriceProvider("metals_live", [Decimal("2000")]),
        ]
        engine = make_engine(providers=providers)
        clock.advance(minutes=1)

        observation = await engine.update_price()

        assert observation.buy_price == Decimal("5470")
        assert observation.sell_price == Decimal("5204")
        assert observation.source == "metals_live"
        assert price_repo.observations[-1] == observation
        assert engine.last_api_call == clock()

    async def test_out_of_bounds_uses_fallback(self, make_engine, price_repo):
        """A price 100x too high is stored as the fallback constants."""
        engine = make_engine(outcomes=[Decimal("200000")])
        observation = await engine.update_price()

        assert observation.buy_price == GOLD.default_buy
        assert observation.sell_price == GOLD.default_sell
        assert len(price_repo.observations) == 1

    async def test_rate_limited_within_interval(self, make_engine, price_repo, clock):
        provider = ScriptedPriceProvider("p", [Decimal("2000"), Decimal("2100")])
        engine = make_engine(providers=[provider])

        first = await engine.update_price()
        clock.advance(seconds=30)
        second = await engine.update_price()

        assert second.id == first.id
        assert provider.calls == 1
        assert len(price_repo.observations) == 1

    async def test_fetches_again_after_interval(self, make_engine, price_repo, clock):
        provider = ScriptedPriceProvider("p", [Decimal("2000"), Decimal("2100")])
        engine = make_engine(providers=[provider])

        await engine.update_price()
        clock.advance(seconds=60)
        second = await engine.update_price()

        assert provider.calls == 2
        assert second.buy_price > Decimal("5470")
        assert len(price_repo.observations) == 2

    async def test_all_providers_down_generates_synthetic(self, make_engine, price_repo, clock):
        await price_repo.save(stored(MetalType.GOLD, "7000", "6850", clock))
        engine = make_engine(outcomes=[unavailable()])

        observation = await engine.update_price()

        assert observation.is_synthetic
        assert abs(observation.buy_price - Decimal("7000")) <= GOLD.fluctuation
        assert GOLD.spread_min <= observation.spread < GOLD.spread_max
        assert len(price_repo.observations) == 2
        assert engine.last_api_call is None

    async def test_synthetic_from_default_on_cold_start(self, make_engine):
        engine = make_engine(outcomes=[unavailable()])
        observation = await engine.update_price()
        assert abs(observation.buy_price - GOLD.default_buy) <= GOLD.fluctuation

    async def test_force_refresh_bypasses_rate_limit(self, make_engine, clock):
        provider = ScriptedPriceProvider("p", [Decimal("2000"), Decimal("2100")])
        engine = make_engine(providers=[provider])

        await engine.update_price()
        clock.advance(seconds=5)
        refreshed = await engine.force_refresh()

        assert provider.calls == 2
        assert refreshed.buy_price == Decimal("5744")

    async def test_concurrent_updates_serialized(self, make_engine, price_repo):
        """Two overlapping ticks produce one provider call and one write."""
        provider = ScriptedPriceProvider("p", [Decimal("2000")])
        engine = make_engine(providers=[provider])

        first, second = await asyncio.gather(engine.update_price(), engine.update_price())

        assert provider.calls == 1
        assert len(price_repo.observations) == 1
        assert first.id == second.id

    async def test_update_seeds_memory(self, make_engine):
        engine = make_engine()
        observation = await engine.update_price()
        price = await engine.get_effective_price()

        assert price.source == PriceSource.MEMORY
        assert price.buy_price == observation.buy_price

    async def test_timestamps_never_go_backwards(self, make_engine, price_repo, clock):
        engine = make_engine(outcomes=[unavailable()])
        await engine.update_price()
        clock.advance(minutes=-10)
        await engine.update_price()

        stamps = [o.timestamp for o in price_repo.observations]
        assert stamps == sorted(stamps)

    async def test_silver(self, make_engine):
        observation = await make_engine(MetalType.SILVER, outcomes=[Decimal("25")]).update_price()
        assert observation.metal_type == MetalType.SILVER
        assert (observation.buy_price, observation.sell_price) == (Decimal("69"), Decimal("65"))


class TestRetention:
    """Tests for the retention sweep."""

    async def test_cleanup_old_prices(self, make_engine, price_repo, clock):
        old = stored(MetalType.GOLD, "7000", "6850", clock)
        await price_repo.save(old)
        clock.advance(days=31)
        await price_repo.save(stored(MetalType.GOLD, "7010", "6860", clock))
        await price_repo.save(stored(MetalType.SILVER, "95", "92", clock))

        deleted = await make_engine().cleanup_old_prices()

        assert deleted == 1
        assert old not in price_repo.observations
        assert len(price_repo.observations) == 2
