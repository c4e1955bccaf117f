"""Unit tests for the property registry and primary share sales"""
import pytest

from estate_ledger.exceptions import (
    AuthorizationError,
    InsufficientResourceError,
    NotFoundError,
    ValidationError,
)
from estate_ledger.models.ledger_event import EventType
from estate_ledger.models.property import PropertyType, RiskLevel
from estate_ledger.services.event_log import EventRecorder
from estate_ledger.services.parameters import ParameterService, split_fee
from estate_ledger.services.property_registry import PropertyRegistry
from estate_ledger.services.token_ledger import TokenLedger

from tests.conftest import ADMIN, ALICE, BOB, OWNER, FEE_RECIPIENT, REGISTRY


async def _list(ledger, total_valuation=1_000_000, total_shares=1_000):
    async with ledger.transaction() as db:
        prop = await PropertyRegistry(db, ledger.ctx).list_property(
            owner=OWNER,
            metadata_uri="ipfs://listing",
            total_valuation=total_valuation,
            total_shares=total_shares,
            property_type=PropertyType.COMMERCIAL,
            risk_level=RiskLevel.MEDIUM,
        )
        return prop.id


class TestSplitFee:
    def test_fee_is_floored(self):
        assert split_fee(10_000, 250) == (250, 9_750)
        assert split_fee(999, 250) == (24, 975)
        assert split_fee(0, 250) == (0, 0)


class TestListing:
    """Listing and verification"""

    @pytest.mark.asyncio
    async def test_ids_are_dense_from_zero(self, ledger):
        assert await _list(ledger) == 0
        assert await _list(ledger) == 1

    @pytest.mark.asyncio
    async def test_share_price_is_floored(self, ledger):
        property_id = await _list(ledger, total_valuation=1_000, total_shares=3)
        async with ledger.transaction() as db:
            prop = await PropertyRegistry(db, ledger.ctx).get_property(property_id)
            assert prop.share_price == 333
            assert prop.available_shares == 3
            assert not prop.is_active
            assert not prop.is_verified

    @pytest.mark.asyncio
    async def test_invalid_listing_is_rejected(self, ledger):
        with pytest.raises(ValidationError):
            await _list(ledger, total_shares=0)
        with pytest.raises(ValidationError):
            await _list(ledger, total_valuation=0)
        with pytest.raises(ValidationError):
            async with ledger.transaction() as db:
                await PropertyRegistry(db, ledger.ctx).list_property(
                    OWNER, "ipfs://x", 1_000, 10, "castle", RiskLevel.LOW
                )

    @pytest.mark.asyncio
    async def test_verify_activates_once(self, ledger):
        property_id = await _list(ledger)
        async with ledger.transaction() as db:
            registry = PropertyRegistry(db, ledger.ctx)
            first = await registry.verify(ADMIN, property_id)
            verified_at = first.verified_at
            second = await registry.verify(ADMIN, property_id)
            assert second.is_active and second.is_verified
            assert second.verified_at == verified_at
        async with ledger.transaction() as db:
            events = await EventRecorder(db, ledger.ctx).list(event_type=EventType.PROPERTY_VERIFIED)
            assert len(events) == 1

    @pytest.mark.asyncio
    async def test_verify_requires_admin(self, ledger):
        property_id = await _list(ledger)
        with pytest.raises(AuthorizationError):
            async with ledger.transaction() as db:
                await PropertyRegistry(db, ledger.ctx).verify(ALICE, property_id)

    @pytest.mark.asyncio
    async def test_unknown_property(self, ledger):
        with pytest.raises(NotFoundError):
            async with ledger.transaction() as db:
                await PropertyRegistry(db, ledger.ctx).get_property(42)


class TestPurchaseShares:
    """Primary sales from a property's unsold supply"""

    @pytest.mark.asyncio
    async def test_purchase_splits_fee_and_credits_holding(self, ledger, verified_property, fund, approve, balance_of):
        property_id = await verified_property()
        await fund(ALICE, 10_000)
        await approve(ALICE, REGISTRY, 10_000)

        async with ledger.transaction() as db:
            holding = await PropertyRegistry(db, ledger.ctx).purchase_shares(ALICE, property_id, 10)
            assert holding.shares == 10
            assert holding.amount_paid == 10_000

        assert await balance_of(ALICE) == 0
        assert await balance_of(FEE_RECIPIENT) == 250
        assert await balance_of(OWNER) == 9_750
        assert await balance_of(REGISTRY) == 0
        async with ledger.transaction() as db:
            prop = await PropertyRegistry(db, ledger.ctx).get_property(property_id)
            assert prop.available_shares == 990
            assert prop.sold_shares == 10

    @pytest.mark.asyncio
    async def test_repeat_purchases_accumulate(self, ledger, verified_property, buy_shares, shares_of):
        property_id = await verified_property()
        await buy_shares(ALICE, property_id, 5)
        await buy_shares(ALICE, property_id, 7)
        assert await shares_of(property_id, ALICE) == 12
        async with ledger.transaction() as db:
            investors = await PropertyRegistry(db, ledger.ctx).investors_of(property_id)
            assert [h.account for h in investors] == [ALICE]

    @pytest.mark.asyncio
    async def test_purchase_requires_active_property(self, ledger, fund, approve):
        property_id = await _list(ledger)
        await fund(ALICE, 10_000)
        await approve(ALICE, REGISTRY, 10_000)
        with pytest.raises(ValidationError):
            async with ledger.transaction() as db:
                await PropertyRegistry(db, ledger.ctx).purchase_shares(ALICE, property_id, 1)

    @pytest.mark.asyncio
    async def test_purchase_below_min_investment(self, ledger, fund, approve):
        async with ledger.transaction() as db:
            await ParameterService(db, ledger.ctx).update(ADMIN, min_investment=5_000)
        property_id = await _list(ledger)
        async with ledger.transaction() as db:
            await PropertyRegistry(db, ledger.ctx).verify(ADMIN, property_id)
        await fund(ALICE, 10_000)
        await approve(ALICE, REGISTRY, 10_000)
        with pytest.raises(ValidationError):
            async with ledger.transaction() as db:
                await PropertyRegistry(db, ledger.ctx).purchase_shares(ALICE, property_id, 4)

    @pytest.mark.asyncio
    async def test_purchase_more_than_available(self, ledger, verified_property, fund, approve):
        property_id = await verified_property(total_valuation=10_000, total_shares=10)
        await fund(ALICE, 11_000)
        await approve(ALICE, REGISTRY, 11_000)
        with pytest.raises(InsufficientResourceError):
            async with ledger.transaction() as db:
                await PropertyRegistry(db, ledger.ctx).purchase_shares(ALICE, property_id, 11)

    @pytest.mark.asyncio
    async def test_failed_purchase_changes_nothing(self, ledger, verified_property, fund, approve, balance_of, shares_of):
        """Without an approval the sale fails and no balance, holding or supply moves"""
        property_id = await verified_property()
        await fund(ALICE, 10_000)
        await approve(ALICE, REGISTRY, 9_999)

        with pytest.raises(InsufficientResourceError):
            async with ledger.transaction() as db:
                await PropertyRegistry(db, ledger.ctx).purchase_shares(ALICE, property_id, 10)

        assert await balance_of(ALICE) == 10_000
        assert await balance_of(OWNER) == 0
        assert await shares_of(property_id, ALICE) == 0
        async with ledger.transaction() as db:
            prop = await PropertyRegistry(db, ledger.ctx).get_property(property_id)
            assert prop.available_shares == 1_000
            assert await TokenLedger(db, ledger.ctx).allowance(ALICE, REGISTRY) == 9_999
            events = await EventRecorder(db, ledger.ctx).list(event_type=EventType.SHARES_PURCHASED)
            assert events == []

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, ledger, verified_property, fund, approve):
        property_id = await verified_property()
        await fund(BOB, 500)
        await approve(BOB, REGISTRY, 1_000)
        with pytest.raises(InsufficientResourceError):
            async with ledger.transaction() as db:
                await PropertyRegistry(db, ledger.ctx).purchase_shares(BOB, property_id, 1)
