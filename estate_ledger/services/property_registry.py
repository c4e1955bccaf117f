"""Property registry: listings, verification, primary share sales and holdings."""
from typing import List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.exceptions import (
    InsufficientResourceError,
    NotFoundError,
    ValidationError,
)
from estate_ledger.models.property import Property, Holding, PropertyType, RiskLevel
from estate_ledger.models.ledger_event import EventType
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.event_log import EventRecorder
from estate_ledger.services.ids import next_id
from estate_ledger.services.income import Distribution, IncomeDistributor
from estate_ledger.services.parameters import ParameterService, split_fee
from estate_ledger.services.token_ledger import TokenLedger

logger = structlog.get_logger()

FIRST_PROPERTY_ID = 0


class PropertyRegistry:
    """Owns property records and the per-property investment ledger."""

    def __init__(self, db: AsyncSession, ctx: LedgerContext):
        self.db = db
        self.ctx = ctx
        self.tokens = TokenLedger(db, ctx)
        self.events = EventRecorder(db, ctx)

    # Reads

    async def get_property(self, property_id: int) -> Property:
        prop = await self.db.get(Property, property_id)
        if prop is None:
            raise NotFoundError("Property not found", property_id=property_id)
        return prop

    async def list_properties(self, active_only: bool = False) -> List[Property]:
        query = select(Property)
        if active_only:
            query = query.where(Property.is_active.is_(True))
        result = await self.db.execute(query.order_by(Property.id))
        return list(result.scalars().all())

    async def get_holding(self, property_id: int, account: str) -> Optional[Holding]:
        result = await self.db.execute(
            select(Holding).where(Holding.property_id == property_id, Holding.account == account)
        )
        return result.scalar_one_or_none()

    async def shares_of(self, property_id: int, account: str) -> int:
        holding = await self.get_holding(property_id, account)
        return holding.shares if holding else 0

    async def investors_of(self, property_id: int, include_divested: bool = True) -> List[Holding]:
        """Holdings of a property in acquisition order, including zero-share rows by default."""
        query = select(Holding).where(Holding.property_id == property_id)
        if not include_divested:
            query = query.where(Holding.shares > 0)
        result = await self.db.execute(query.order_by(Holding.id))
        return list(result.scalars().all())

    async def properties_of(self, account: str, include_divested: bool = True) -> List[Holding]:
        query = select(Holding).where(Holding.account == account)
        if not include_divested:
            query = query.where(Holding.shares > 0)
        result = await self.db.execute(query.order_by(Holding.id))
        return list(result.scalars().all())

    # Holding bookkeeping shared with the order book

    async def credit_holding(self, property_id: int, account: str, shares: int, amount_paid: int) -> Holding:
        now = self.ctx.now()
        holding = await self.get_holding(property_id, account)
        if holding is None:
            holding = Holding(
                property_id=property_id,
                account=account,
                shares=0,
                amount_paid=0,
                first_acquired_at=now,
                last_acquired_at=now,
            )
            self.db.add(holding)
        holding.shares += shares
        holding.amount_paid += amount_paid
        holding.last_acquired_at = now
        return holding

    async def debit_holding(self, property_id: int, account: str, shares: int) -> Holding:
        holding = await self.get_holding(property_id, account)
        owned = holding.shares if holding else 0
        if owned < shares:
            raise InsufficientResourceError(
                "Holding has fewer shares than requested",
                property_id=property_id,
                account=account,
                owned=owned,
                requested=shares,
            )
        holding.shares -= shares
        return holding

    # Mutations

    async def list_property(
        self,
        owner: str,
        metadata_uri: str,
        total_valuation: int,
        total_shares: int,
        property_type: PropertyType,
        risk_level: RiskLevel,
    ) -> Property:
        """List a new property; it stays inactive until the admin verifies it."""
        if total_valuation <= 0:
            raise ValidationError("Total valuation must be positive", total_valuation=total_valuation)
        if total_shares <= 0:
            raise ValidationError("Total shares must be positive", total_shares=total_shares)
        if not metadata_uri:
            raise ValidationError("Metadata URI is required")

        try:
            property_type = PropertyType(property_type)
            risk_level = RiskLevel(risk_level)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        # Floor division: total_shares * share_price may fall short of total_valuation
        share_price = total_valuation // total_shares

        prop = Property(
            id=await next_id(self.db, Property, first=FIRST_PROPERTY_ID),
            metadata_uri=metadata_uri,
            total_valuation=total_valuation,
            total_shares=total_shares,
            available_shares=total_shares,
            share_price=share_price,
            owner=owner,
            is_active=False,
            is_verified=False,
            property_type=property_type.value,
            risk_level=risk_level.value,
            created_at=self.ctx.now(),
        )
        self.db.add(prop)
        await self.db.flush()

        await self.events.record(
            EventType.PROPERTY_LISTED,
            account=owner,
            amount=total_valuation,
            reference_id=prop.id,
            reference_type="property",
            data={"share_price": share_price, "total_shares": total_shares},
        )
        logger.info(
            "Property listed",
            property_id=prop.id,
            owner=owner,
            total_valuation=total_valuation,
            share_price=share_price,
        )
        return prop

    async def verify(self, caller: str, property_id: int) -> Property:
        """Activate a listing. Verifying an already verified property changes nothing."""
        self.ctx.admin.check(caller, "verify properties")
        prop = await self.get_property(property_id)
        if prop.is_verified:
            return prop

        prop.is_verified = True
        prop.is_active = True
        prop.verified_at = self.ctx.now()

        await self.events.record(
            EventType.PROPERTY_VERIFIED,
            account=caller,
            reference_id=property_id,
            reference_type="property",
        )
        logger.info("Property verified", property_id=property_id)
        return prop

    async def purchase_shares(self, buyer: str, property_id: int, share_count: int) -> Holding:
        """
        Buy shares directly from the property's unsold supply.

        The buyer must have approved the registry account for at least the cost.
        Cost moves buyer -> registry, then the fee goes to the fee recipient and
        the rest to the property owner, so nothing rests in the registry.
        """
        if share_count <= 0:
            raise ValidationError("Share count must be positive", share_count=share_count)

        prop = await self.get_property(property_id)
        if not prop.is_active:
            raise ValidationError("Property is not active", property_id=property_id)
        if share_count > prop.available_shares:
            raise InsufficientResourceError(
                "Not enough shares available",
                available=prop.available_shares,
                requested=share_count,
            )

        params = await ParameterService(self.db, self.ctx).get()
        cost = share_count * prop.share_price
        if cost < params.min_investment:
            raise ValidationError(
                "Purchase is below the minimum investment",
                cost=cost,
                min_investment=params.min_investment,
            )

        balance = await self.tokens.balance_of(buyer)
        if balance < cost:
            raise InsufficientResourceError("Insufficient token balance", balance=balance, cost=cost)

        fee, net = split_fee(cost, params.fee_bps)
        registry = self.ctx.registry_account
        await self.tokens.transfer_from(registry, buyer, registry, cost)
        await self.tokens.transfer(registry, params.fee_recipient, fee)
        await self.tokens.transfer(registry, prop.owner, net)

        holding = await self.credit_holding(property_id, buyer, share_count, cost)
        prop.available_shares -= share_count

        await self.events.record(
            EventType.SHARES_PURCHASED,
            account=buyer,
            counterparty=prop.owner,
            amount=share_count,
            reference_id=property_id,
            reference_type="property",
            data={"cost": cost, "fee": fee, "net": net},
        )
        logger.info(
            "Shares purchased",
            property_id=property_id,
            buyer=buyer,
            shares=share_count,
            cost=cost,
            fee=fee,
        )
        return holding

    async def distribute_income(self, caller: str, property_id: int, total_income: int) -> Distribution:
        return await IncomeDistributor(self.db, self.ctx).distribute_income(caller, property_id, total_income)
