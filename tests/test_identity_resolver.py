import pytest

from brokerage_base import AccountPosition
from rebalance_sync import ResolutionError, SecurityIdentityResolver
from sync_config import DualClassPair, PlanningConfig

from conftest import AAPL_FIGI, BRK_A_FIGI, BRK_B_FIGI, FakeStrategyEngine


@pytest.fixture
def engine():
    return FakeStrategyEngine()


@pytest.fixture
def resolver(engine):
    return SecurityIdentityResolver(engine, PlanningConfig())


class TestSecurityIdentityResolver:

    @pytest.mark.asyncio
    async def test_class_separator_is_translated_for_lookup(self, resolver, engine):
        assert await resolver.to_strategy_identity("BRK.B") == BRK_B_FIGI
        assert engine.resolve_calls == ["BRK/B"]

    @pytest.mark.asyncio
    async def test_lookups_are_cached_within_one_resolver(self, resolver, engine):
        await resolver.to_strategy_identity("AAPL")
        await resolver.to_strategy_identity("AAPL")
        # identifier lookups reuse the entry found by ticker
        assert await resolver.to_broker_symbol(AAPL_FIGI) == "AAPL"
        assert engine.resolve_calls == ["AAPL"]

    @pytest.mark.asyncio
    async def test_cache_is_not_shared_between_resolvers(self, engine):
        await SecurityIdentityResolver(engine, PlanningConfig()).to_strategy_identity("AAPL")
        await SecurityIdentityResolver(engine, PlanningConfig()).to_strategy_identity("AAPL")
        assert engine.resolve_calls == ["AAPL", "AAPL"]

    @pytest.mark.asyncio
    async def test_high_class_collapses_to_low_class_broker_symbol(self, resolver):
        assert await resolver.to_broker_symbol(BRK_A_FIGI) == "BRK.B"
        assert await resolver.to_broker_symbol(BRK_B_FIGI) == "BRK.B"

    def test_high_class_symbols_follow_configured_pairs(self, engine):
        config = PlanningConfig(dual_class_pairs=[
            DualClassPair(high_class="BRK.A", low_class="BRK.B"),
            DualClassPair(high_class="BF.A", low_class="BF.B"),
        ])
        resolver = SecurityIdentityResolver(engine, config)
        assert resolver.high_class_symbols("BRK.B") == ["BRK.A"]
        assert resolver.high_class_symbols("BF.B") == ["BF.A"]
        assert resolver.high_class_symbols("AAPL") == []

    @pytest.mark.asyncio
    async def test_unknown_security_is_a_resolution_error(self, resolver):
        with pytest.raises(ResolutionError) as exc_info:
            await resolver.to_strategy_identity("ZZZZ")
        assert exc_info.value.security == "ZZZZ"
        assert "security=ZZZZ" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_resolve_positions_keeps_sign_and_broker_symbol(self, resolver):
        positions = await resolver.resolve_positions([
            AccountPosition(symbol="AAPL", quantity=10),
            AccountPosition(symbol="BRK.B", quantity=-3),
        ])
        assert [(p.security_identifier, p.broker_symbol, p.share_quantity) for p in positions] == [
            (AAPL_FIGI, "AAPL", 10.0),
            (BRK_B_FIGI, "BRK.B", -3.0),
        ]
