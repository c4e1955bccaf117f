"""Supply conservation across modules and rollback of partially applied operations"""
import pytest
from sqlalchemy import select, func

from estate_ledger.exceptions import ConsistencyError
from estate_ledger.models.disaster import ClaimStatus, DisasterType, Severity
from estate_ledger.models.governance import ProposalState
from estate_ledger.models.ledger_event import LedgerEvent
from estate_ledger.models.property import Holding, Property, RiskLevel
from estate_ledger.models.token import Balance, WrappedBalance
from estate_ledger.services.disaster_registry import DisasterRegistry
from estate_ledger.services.faucet import Faucet
from estate_ledger.services.governance import GovernanceService
from estate_ledger.services.ledger import Ledger
from estate_ledger.services.order_book import OrderBook
from estate_ledger.services.pools import PoolService
from estate_ledger.services.property_registry import PropertyRegistry
from estate_ledger.services.token_ledger import TokenLedger
from estate_ledger.services.wrapped_token import WrappedToken

from tests.conftest import ADMIN, ALICE, BOB, CAROL, OWNER, POOL_TREASURY, REGISTRY


async def _count(db, column, *criteria) -> int:
    result = await db.execute(select(func.count(column)).where(*criteria))
    return result.scalar()


async def _assert_conserved(ledger):
    async with ledger.transaction() as db:
        tokens = TokenLedger(db, ledger.ctx)
        supply = await tokens.supply()
        assert await tokens.sum_of_balances() == supply.total_supply
        assert supply.total_issued - supply.total_destroyed == supply.total_supply
        assert supply.total_supply <= supply.cap

        assert await _count(db, Balance.id, Balance.amount < 0) == 0
        assert await _count(db, WrappedBalance.id, WrappedBalance.amount < 0) == 0
        assert await _count(db, Holding.id, Holding.shares < 0) == 0
        assert await _count(db, Property.id, Property.available_shares < 0) == 0

        for prop in await PropertyRegistry(db, ledger.ctx).list_properties():
            held = await db.execute(
                select(func.coalesce(func.sum(Holding.shares), 0)).where(Holding.property_id == prop.id)
            )
            assert held.scalar() + prop.available_shares == prop.total_shares

        wrapped = WrappedToken(db, ledger.ctx)
        assert await wrapped.total_locked() == await wrapped.total_wrapped()


class TestConservation:
    @pytest.mark.asyncio
    async def test_supply_conserved_across_modules(self, ledger, fund, approve, verified_property, buy_shares):
        property_id = await verified_property()
        await buy_shares(ALICE, property_id, 200)
        await buy_shares(BOB, property_id, 100)
        await _assert_conserved(ledger)

        # Secondary sale, then a fill that the seller can no longer cover
        async with ledger.transaction() as db:
            order = await OrderBook(db, ledger.ctx).create_sell_order(ALICE, property_id, 150, 1_200, 30)
            first_order = order.id
        async with ledger.transaction() as db:
            order = await OrderBook(db, ledger.ctx).create_sell_order(ALICE, property_id, 150, 1_100, 30)
            second_order = order.id
        await fund(CAROL, 400_000)
        await approve(CAROL, REGISTRY, 400_000)
        async with ledger.transaction() as db:
            await OrderBook(db, ledger.ctx).fulfil(CAROL, first_order, 100)
        with pytest.raises(ConsistencyError):
            async with ledger.transaction() as db:
                await OrderBook(db, ledger.ctx).fulfil(CAROL, second_order, 150)
        await _assert_conserved(ledger)

        # Income
        await fund(REGISTRY, 1_000)
        async with ledger.transaction() as db:
            await PropertyRegistry(db, ledger.ctx).distribute_income(ADMIN, property_id, 1_000)

        # Disaster claim paid from the fund
        async with ledger.transaction() as db:
            registry = DisasterRegistry(db, ledger.ctx)
            report = await registry.report_disaster(ADMIN, property_id, DisasterType.FLOOD, Severity.HIGH, "Flooded")
            await registry.verify_disaster(ADMIN, report.id)
            report_id = report.id
        await fund(OWNER, 3_000)
        async with ledger.transaction() as db:
            registry = DisasterRegistry(db, ledger.ctx)
            await registry.deposit_insurance_funds(OWNER, 2_000)
            claim = await registry.submit_claim(ALICE, property_id, report_id, 800)
            await registry.process_claim(ADMIN, claim.id, ClaimStatus.APPROVED, 500)
        await _assert_conserved(ledger)

        # Pool investment and returns
        async with ledger.transaction() as db:
            pool = await PoolService(db, ledger.ctx).create_pool(ADMIN, "Core", "", 100, 10_000, RiskLevel.LOW)
            pool_id = pool.id
        await approve(BOB, POOL_TREASURY, 300)
        async with ledger.transaction() as db:
            service = PoolService(db, ledger.ctx)
            await service.invest(BOB, pool_id, 300)
            await service.deposit_returns(OWNER, pool_id, 1_000)
            await service.distribute_returns(ADMIN, pool_id, 999)

        # Wrapping, burning and the faucet
        async with ledger.transaction() as db:
            await WrappedToken(db, ledger.ctx).wrap(ALICE, 250)
            await WrappedToken(db, ledger.ctx).transfer(ALICE, BOB, 50)
            await WrappedToken(db, ledger.ctx).unwrap(BOB, 50)
            await TokenLedger(db, ledger.ctx).destroy(CAROL, 10)
            await Faucet(db, ledger.ctx).claim(CAROL)
        await _assert_conserved(ledger)


@pytest.fixture
def failing_executor():
    calls = []

    def _executor(proposal):
        calls.append(proposal.id)
        raise RuntimeError("payload could not be applied")

    _executor.calls = calls
    return _executor


class TestRollbackAfterWrites:
    @pytest.mark.asyncio
    async def test_executor_failure_rolls_back_execution(self, settings, clock, failing_executor):
        ledger = Ledger.from_settings(settings, clock=clock, proposal_executor=failing_executor)
        await ledger.init_schema()
        try:
            async with ledger.transaction() as db:
                tokens = TokenLedger(db, ledger.ctx)
                await tokens.issue(ADMIN, ALICE, 90_000)
                await tokens.issue(ADMIN, BOB, 20_000)
                await tokens.issue(ADMIN, CAROL, 890_000)
            async with ledger.transaction() as db:
                service = GovernanceService(db, ledger.ctx)
                proposal = await service.create_proposal(ALICE, "Replace the roof", "From reserves")
                proposal_id = proposal.id
                await service.cast_vote(ALICE, proposal_id, True)
                await service.cast_vote(BOB, proposal_id, False)

            clock.advance(seconds=settings.voting_period_seconds)
            async with ledger.transaction() as db:
                events_before = await _count(db, LedgerEvent.id)

            # The outcome fields are written before the hook raises
            with pytest.raises(RuntimeError):
                async with ledger.transaction() as db:
                    await GovernanceService(db, ledger.ctx).execute(ADMIN, proposal_id)
            assert failing_executor.calls == [proposal_id]

            async with ledger.transaction() as db:
                service = GovernanceService(db, ledger.ctx)
                proposal = await service.get_proposal(proposal_id)
                assert proposal.executed is False
                assert proposal.passed is False
                assert proposal.quorum is None
                assert proposal.executed_at is None
                assert (proposal.votes_for, proposal.votes_against) == (90_000, 20_000)
                assert (await service.get_vote(proposal_id, ALICE)).weight == 90_000
                assert (await service.get_vote(proposal_id, BOB)).weight == 20_000
                assert await service.proposal_state(proposal) == ProposalState.SUCCEEDED
                assert await _count(db, LedgerEvent.id) == events_before
        finally:
            await ledger.close()
