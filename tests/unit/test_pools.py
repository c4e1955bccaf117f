"""Unit tests for investment pools, platform parameters and aggregates"""
import pytest

from estate_ledger.exceptions import AuthorizationError, InsufficientResourceError, ValidationError
from estate_ledger.models.property import PropertyType, RiskLevel
from estate_ledger.services.parameters import ParameterService
from estate_ledger.services.pools import PoolService
from estate_ledger.services.portfolio import investor_portfolio, platform_stats
from estate_ledger.services.property_registry import PropertyRegistry

from tests.conftest import ADMIN, ALICE, BOB, CAROL, OWNER, POOL_TREASURY


@pytest.fixture
def create_pool(ledger):
    async def _create_pool(min_investment=100, max_investment=10_000):
        async with ledger.transaction() as db:
            pool = await PoolService(db, ledger.ctx).create_pool(
                ADMIN, "Core residential", "Stabilised rentals", min_investment, max_investment, RiskLevel.LOW
            )
            return pool.id

    return _create_pool


@pytest.fixture
def invest(ledger, fund, approve):
    async def _invest(investor, pool_id, amount):
        await fund(investor, amount)
        await approve(investor, POOL_TREASURY, amount)
        async with ledger.transaction() as db:
            position = await PoolService(db, ledger.ctx).invest(investor, pool_id, amount)
            return position.shares

    return _invest


@pytest.fixture
def deposit_returns(ledger, fund):
    async def _deposit_returns(pool_id, amount, depositor=OWNER):
        await fund(depositor, amount)
        async with ledger.transaction() as db:
            pool = await PoolService(db, ledger.ctx).deposit_returns(depositor, pool_id, amount)
            return pool.returns_balance

    return _deposit_returns


class TestPools:
    @pytest.mark.asyncio
    async def test_create_requires_admin(self, ledger):
        with pytest.raises(AuthorizationError):
            async with ledger.transaction() as db:
                await PoolService(db, ledger.ctx).create_pool(ALICE, "p", "", 1, 10, RiskLevel.LOW)

    @pytest.mark.asyncio
    async def test_only_verified_properties_join(self, ledger, create_pool, verified_property):
        pool_id = await create_pool()
        verified = await verified_property()
        async with ledger.transaction() as db:
            unverified = await PropertyRegistry(db, ledger.ctx).list_property(
                OWNER, "ipfs://pending", 10_000, 10, PropertyType.MIXED, RiskLevel.HIGH
            )
            unverified_id = unverified.id

        async with ledger.transaction() as db:
            await PoolService(db, ledger.ctx).add_property(ADMIN, pool_id, verified)
        with pytest.raises(ValidationError):
            async with ledger.transaction() as db:
                await PoolService(db, ledger.ctx).add_property(ADMIN, pool_id, unverified_id)
        with pytest.raises(ValidationError):
            async with ledger.transaction() as db:
                await PoolService(db, ledger.ctx).add_property(ADMIN, pool_id, verified)

        async with ledger.transaction() as db:
            assert await PoolService(db, ledger.ctx).pool_property_ids(pool_id) == [verified]

    @pytest.mark.asyncio
    async def test_invest_within_bounds(self, ledger, create_pool, invest, balance_of):
        pool_id = await create_pool(min_investment=100, max_investment=1_000)
        assert await invest(ALICE, pool_id, 300) == 300
        assert await invest(ALICE, pool_id, 200) == 500
        assert await balance_of(POOL_TREASURY) == 500

        with pytest.raises(ValidationError):
            await invest(BOB, pool_id, 99)
        with pytest.raises(ValidationError):
            await invest(BOB, pool_id, 1_001)

        async with ledger.transaction() as db:
            pool = await PoolService(db, ledger.ctx).get_pool(pool_id)
            assert pool.total_invested == 500
            assert pool.total_shares == 500

    @pytest.mark.asyncio
    async def test_distribute_returns(self, ledger, create_pool, invest, deposit_returns, balance_of):
        pool_id = await create_pool()
        await invest(ALICE, pool_id, 200)
        await invest(BOB, pool_id, 100)
        assert await deposit_returns(pool_id, 1_000) == 1_000

        async with ledger.transaction() as db:
            distribution = await PoolService(db, ledger.ctx).distribute_returns(ADMIN, pool_id, 1_000)
        assert distribution.payouts == {ALICE: 666, BOB: 333}
        assert distribution.reference_type == "pool"
        assert await balance_of(POOL_TREASURY) == 301

        async with ledger.transaction() as db:
            pool = await PoolService(db, ledger.ctx).get_pool(pool_id)
            assert pool.returns_balance == 1
            assert pool.total_invested == 300

    @pytest.mark.asyncio
    async def test_returns_never_drawn_from_principal(self, ledger, create_pool, invest, balance_of):
        pool_id = await create_pool()
        await invest(ALICE, pool_id, 500)
        with pytest.raises(InsufficientResourceError):
            async with ledger.transaction() as db:
                await PoolService(db, ledger.ctx).distribute_returns(ADMIN, pool_id, 100)
        assert await balance_of(POOL_TREASURY) == 500
        assert await balance_of(ALICE) == 0

    @pytest.mark.asyncio
    async def test_returns_are_kept_per_pool(self, ledger, create_pool, invest, deposit_returns, balance_of):
        first = await create_pool()
        second = await create_pool()
        await invest(ALICE, first, 100)
        await invest(BOB, second, 5_000)
        await deposit_returns(second, 400)

        # The treasury holds 5,500 but none of it is returns for the first pool
        with pytest.raises(InsufficientResourceError):
            async with ledger.transaction() as db:
                await PoolService(db, ledger.ctx).distribute_returns(ADMIN, first, 100)

        async with ledger.transaction() as db:
            distribution = await PoolService(db, ledger.ctx).distribute_returns(ADMIN, second, 400)
        assert distribution.payouts == {BOB: 400}
        assert await balance_of(ALICE) == 0
        assert await balance_of(POOL_TREASURY) == 5_100

        async with ledger.transaction() as db:
            service = PoolService(db, ledger.ctx)
            assert (await service.get_pool(first)).returns_balance == 0
            assert (await service.get_pool(second)).returns_balance == 0

    @pytest.mark.asyncio
    async def test_deposit_requires_balance(self, ledger, create_pool):
        pool_id = await create_pool()
        with pytest.raises(InsufficientResourceError):
            async with ledger.transaction() as db:
                await PoolService(db, ledger.ctx).deposit_returns(CAROL, pool_id, 10)
        with pytest.raises(ValidationError):
            async with ledger.transaction() as db:
                await PoolService(db, ledger.ctx).deposit_returns(CAROL, pool_id, 0)


class TestParameters:
    @pytest.mark.asyncio
    async def test_fee_cannot_exceed_maximum(self, ledger):
        with pytest.raises(ValidationError):
            async with ledger.transaction() as db:
                await ParameterService(db, ledger.ctx).update(ADMIN, fee_bps=1_001)
        async with ledger.transaction() as db:
            params = await ParameterService(db, ledger.ctx).update(ADMIN, fee_bps=1_000)
            assert params.fee_bps == 1_000

    @pytest.mark.asyncio
    async def test_update_requires_admin(self, ledger):
        with pytest.raises(AuthorizationError):
            async with ledger.transaction() as db:
                await ParameterService(db, ledger.ctx).update(ALICE, fee_bps=0)


class TestAggregates:
    @pytest.mark.asyncio
    async def test_portfolio_and_platform_stats(self, ledger, verified_property, buy_shares):
        first = await verified_property()
        second = await verified_property(total_valuation=50_000, total_shares=50)
        await buy_shares(ALICE, first, 10)
        await buy_shares(ALICE, second, 5)
        await buy_shares(BOB, first, 1)

        async with ledger.transaction() as db:
            portfolio = await investor_portfolio(db, ALICE)
            stats = await platform_stats(db)

        assert portfolio.property_ids == [first, second]
        assert portfolio.total_shares == 15
        assert portfolio.total_invested == 15_000
        assert stats.total_properties == 2
        assert stats.verified_properties == 2
        assert stats.total_investors == 2
        assert stats.total_shares_sold == 16
        assert stats.total_value_locked == 16_000
