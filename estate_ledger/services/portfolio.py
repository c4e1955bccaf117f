"""Read-only portfolio and platform aggregates."""
from dataclasses import dataclass, field
from typing import List

from sqlalchemy import select, func, distinct
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.models.property import Property, Holding


@dataclass
class InvestorPortfolio:
    account: str
    property_ids: List[int] = field(default_factory=list)
    total_invested: int = 0
    total_shares: int = 0


@dataclass
class PlatformStats:
    total_properties: int
    verified_properties: int
    total_investors: int
    total_value_locked: int
    total_shares_sold: int


async def investor_portfolio(db: AsyncSession, account: str) -> InvestorPortfolio:
    """Properties an account currently holds shares in, with cost basis totals."""
    result = await db.execute(
        select(Holding).where(Holding.account == account, Holding.shares > 0).order_by(Holding.property_id)
    )
    portfolio = InvestorPortfolio(account=account)
    for holding in result.scalars().all():
        portfolio.property_ids.append(holding.property_id)
        portfolio.total_invested += holding.amount_paid
        portfolio.total_shares += holding.shares
    return portfolio


async def platform_stats(db: AsyncSession) -> PlatformStats:
    properties = await db.execute(
        select(
            func.count(Property.id),
            func.coalesce(func.sum(Property.total_shares - Property.available_shares), 0),
        )
    )
    total_properties, shares_sold = properties.one()

    verified = await db.execute(select(func.count(Property.id)).where(Property.is_verified.is_(True)))

    investors = await db.execute(
        select(func.count(distinct(Holding.account))).where(Holding.shares > 0)
    )
    value_locked = await db.execute(
        select(func.coalesce(func.sum(Holding.amount_paid), 0)).where(Holding.shares > 0)
    )

    return PlatformStats(
        total_properties=total_properties,
        verified_properties=verified.scalar() or 0,
        total_investors=investors.scalar() or 0,
        total_value_locked=value_locked.scalar() or 0,
        total_shares_sold=shares_sold,
    )
