"""Investment pools over verified properties."""
from typing import List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.exceptions import (
    InsufficientResourceError,
    NotFoundError,
    ValidationError,
)
from estate_ledger.models.pool import InvestmentPool, PoolProperty, PoolPosition
from estate_ledger.models.property import Property, RiskLevel
from estate_ledger.models.ledger_event import EventType
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.event_log import EventRecorder
from estate_ledger.services.ids import next_id
from estate_ledger.services.income import Distribution, pro_rata
from estate_ledger.services.token_ledger import TokenLedger

logger = structlog.get_logger()


class PoolService:
    """
    Pool investments are held by the pool treasury account; shares are 1:1 with tokens paid.

    Every pool shares the one treasury account, so each pool tracks the returns
    deposited for it in ``returns_balance``. Distributions draw only on that
    balance, never on principal or on another pool's returns.
    """

    def __init__(self, db: AsyncSession, ctx: LedgerContext):
        self.db = db
        self.ctx = ctx
        self.tokens = TokenLedger(db, ctx)
        self.events = EventRecorder(db, ctx)

    async def get_pool(self, pool_id: int) -> InvestmentPool:
        pool = await self.db.get(InvestmentPool, pool_id)
        if pool is None:
            raise NotFoundError("Pool not found", pool_id=pool_id)
        return pool

    async def list_pools(self) -> List[InvestmentPool]:
        result = await self.db.execute(select(InvestmentPool).order_by(InvestmentPool.id))
        return list(result.scalars().all())

    async def pool_property_ids(self, pool_id: int) -> List[int]:
        result = await self.db.execute(
            select(PoolProperty.property_id).where(PoolProperty.pool_id == pool_id).order_by(PoolProperty.id)
        )
        return list(result.scalars().all())

    async def pool_position(self, pool_id: int, investor: str) -> Optional[PoolPosition]:
        result = await self.db.execute(
            select(PoolPosition).where(PoolPosition.pool_id == pool_id, PoolPosition.investor == investor)
        )
        return result.scalar_one_or_none()

    async def create_pool(
        self,
        caller: str,
        name: str,
        description: str,
        min_investment: int,
        max_investment: int,
        risk_level: RiskLevel,
    ) -> InvestmentPool:
        self.ctx.admin.check(caller, "create pools")
        if not name:
            raise ValidationError("Pool name is required")
        if min_investment <= 0 or max_investment < min_investment:
            raise ValidationError(
                "Investment bounds must satisfy 0 < min <= max",
                min_investment=min_investment,
                max_investment=max_investment,
            )
        try:
            risk_level = RiskLevel(risk_level)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        pool = InvestmentPool(
            id=await next_id(self.db, InvestmentPool),
            name=name,
            description=description,
            min_investment=min_investment,
            max_investment=max_investment,
            risk_level=risk_level.value,
            total_invested=0,
            total_shares=0,
            returns_balance=0,
            is_active=True,
            created_at=self.ctx.now(),
        )
        self.db.add(pool)
        await self.db.flush()

        await self.events.record(
            EventType.POOL_CREATED,
            account=caller,
            reference_id=pool.id,
            reference_type="pool",
            data={"name": name, "min_investment": min_investment, "risk_level": risk_level.value},
        )
        logger.info("Pool created", pool_id=pool.id, name=name)
        return pool

    async def add_property(self, caller: str, pool_id: int, property_id: int) -> None:
        self.ctx.admin.check(caller, "add properties to pools")
        await self.get_pool(pool_id)
        prop = await self.db.get(Property, property_id)
        if prop is None:
            raise NotFoundError("Property not found", property_id=property_id)
        if not prop.is_verified:
            raise ValidationError("Only verified properties can join a pool", property_id=property_id)
        if property_id in await self.pool_property_ids(pool_id):
            raise ValidationError("Property is already in this pool", property_id=property_id)

        self.db.add(PoolProperty(pool_id=pool_id, property_id=property_id, added_at=self.ctx.now()))
        await self.events.record(
            EventType.POOL_PROPERTY_ADDED,
            account=caller,
            reference_id=pool_id,
            reference_type="pool",
            data={"property_id": property_id},
        )

    async def invest(self, investor: str, pool_id: int, amount: int) -> PoolPosition:
        """Move ``amount`` into the pool treasury; the investor must have approved the pool account."""
        pool = await self.get_pool(pool_id)
        if not pool.is_active:
            raise ValidationError("Pool is not active", pool_id=pool_id)
        if amount < pool.min_investment or amount > pool.max_investment:
            raise ValidationError(
                "Amount is outside the pool's investment bounds",
                amount=amount,
                min_investment=pool.min_investment,
                max_investment=pool.max_investment,
            )
        balance = await self.tokens.balance_of(investor)
        if balance < amount:
            raise InsufficientResourceError("Insufficient token balance", balance=balance, amount=amount)

        treasury = self.ctx.pool_account
        await self.tokens.transfer_from(treasury, investor, treasury, amount)

        now = self.ctx.now()
        position = await self.pool_position(pool_id, investor)
        if position is None:
            position = PoolPosition(pool_id=pool_id, investor=investor, amount=0, shares=0, last_invested_at=now)
            self.db.add(position)
        position.amount += amount
        position.shares += amount
        position.last_invested_at = now
        pool.total_invested += amount
        pool.total_shares += amount

        await self.events.record(
            EventType.POOL_INVESTMENT,
            account=investor,
            counterparty=treasury,
            amount=amount,
            reference_id=pool_id,
            reference_type="pool",
        )
        logger.info("Pool investment", pool_id=pool_id, investor=investor, amount=amount)
        return position

    async def deposit_returns(self, depositor: str, pool_id: int, amount: int) -> InvestmentPool:
        """Transfer ``amount`` from the depositor into the treasury as returns for this pool."""
        if amount <= 0:
            raise ValidationError("Deposit must be positive", amount=amount)
        pool = await self.get_pool(pool_id)

        treasury = self.ctx.pool_account
        await self.tokens.transfer(depositor, treasury, amount)
        pool.returns_balance += amount

        await self.events.record(
            EventType.POOL_RETURNS_DEPOSITED,
            account=depositor,
            counterparty=treasury,
            amount=amount,
            reference_id=pool_id,
            reference_type="pool",
        )
        logger.info("Pool returns deposited", pool_id=pool_id, amount=amount, returns_balance=pool.returns_balance)
        return pool

    async def distribute_returns(self, caller: str, pool_id: int, total_returns: int) -> Distribution:
        """Pay ``total_returns`` out of the pool's deposited returns, pro-rata over pool shares.

        The rounding remainder stays in ``returns_balance`` for a later distribution.
        """
        self.ctx.admin.check(caller, "distribute pool returns")
        if total_returns <= 0:
            raise ValidationError("Returns must be positive", total_returns=total_returns)
        pool = await self.get_pool(pool_id)
        if pool.total_shares <= 0:
            raise ValidationError("Pool has no investors", pool_id=pool_id)
        if pool.returns_balance < total_returns:
            raise InsufficientResourceError(
                "Pool returns balance is below the returns to distribute",
                pool_id=pool_id,
                returns_balance=pool.returns_balance,
                requested=total_returns,
            )

        result = await self.db.execute(
            select(PoolPosition).where(PoolPosition.pool_id == pool_id).order_by(PoolPosition.id)
        )
        weights = [(p.investor, p.shares) for p in result.scalars().all()]
        payouts = {a: v for a, v in pro_rata(total_returns, weights).items() if v > 0}
        treasury = self.ctx.pool_account
        for account, amount in payouts.items():
            await self.tokens.transfer(treasury, account, amount)

        distribution = Distribution(
            reference_type="pool",
            reference_id=pool_id,
            total_amount=total_returns,
            total_weight=pool.total_shares,
            payouts=payouts,
        )
        pool.returns_balance -= distribution.total_paid

        await self.events.record(
            EventType.POOL_RETURNS_DISTRIBUTED,
            account=caller,
            amount=distribution.total_paid,
            reference_id=pool_id,
            reference_type="pool",
            data={"total_returns": total_returns, "investor_count": len(payouts)},
        )
        logger.info(
            "Pool returns distributed",
            pool_id=pool_id,
            total_paid=distribution.total_paid,
            returns_balance=pool.returns_balance,
        )
        return distribution
