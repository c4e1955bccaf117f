"""
Income Distributor

Pays rental or other income to the current investors of a property,
pro-rata over the shares that have been sold (not over total shares).

Each payout is floored, so the sum paid never exceeds the income; the
remainder stays with the registry account and is not carried over.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.exceptions import InsufficientResourceError, NotFoundError, ValidationError
from estate_ledger.models.property import Property, Holding
from estate_ledger.models.ledger_event import EventType
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.event_log import EventRecorder
from estate_ledger.services.token_ledger import TokenLedger

logger = structlog.get_logger()


def pro_rata(total: int, weights: List[Tuple[str, int]]) -> Dict[str, int]:
    """
    Split ``total`` across weighted accounts with floor division.

    Args:
        total: Amount to split
        weights: (account, weight) pairs; zero weights receive nothing

    Returns:
        Mapping of account to payout; sum(payouts) <= total
    """
    denominator = sum(weight for _, weight in weights if weight > 0)
    if denominator == 0:
        return {}
    payouts: Dict[str, int] = {}
    for account, weight in weights:
        if weight <= 0:
            continue
        payouts[account] = payouts.get(account, 0) + total * weight // denominator
    return payouts


@dataclass
class Distribution:
    """Result of one pro-rata payout (property income or pool returns)"""
    reference_type: str
    reference_id: int
    total_amount: int
    total_weight: int
    payouts: Dict[str, int] = field(default_factory=dict)

    @property
    def total_paid(self) -> int:
        return sum(self.payouts.values())

    @property
    def remainder(self) -> int:
        return self.total_amount - self.total_paid

    def to_dict(self) -> dict:
        return {
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "total_amount": self.total_amount,
            "total_weight": self.total_weight,
            "total_paid": self.total_paid,
            "remainder": self.remainder,
            "payouts": dict(self.payouts),
        }


class IncomeDistributor:
    def __init__(self, db: AsyncSession, ctx: LedgerContext):
        self.db = db
        self.ctx = ctx
        self.tokens = TokenLedger(db, ctx)

    async def distribute_income(self, caller: str, property_id: int, total_income: int) -> Distribution:
        """Pay ``total_income`` from the registry account to the property's investors."""
        self.ctx.admin.check(caller, "distribute income")
        if total_income <= 0:
            raise ValidationError("Income must be positive", total_income=total_income)

        prop = await self.db.get(Property, property_id)
        if prop is None:
            raise NotFoundError("Property not found", property_id=property_id)

        sold = prop.sold_shares
        if sold <= 0:
            raise ValidationError("Property has no sold shares", property_id=property_id)

        registry = self.ctx.registry_account
        available = await self.tokens.balance_of(registry)
        if available < total_income:
            raise InsufficientResourceError(
                "Registry balance is below the income to distribute",
                balance=available,
                requested=total_income,
            )

        result = await self.db.execute(
            select(Holding)
            .where(Holding.property_id == property_id, Holding.shares > 0)
            .order_by(Holding.id)
        )
        holdings = result.scalars().all()

        # Holding shares always sum to the sold shares of the property
        weights = [(holding.account, holding.shares) for holding in holdings]
        payouts = {
            account: amount
            for account, amount in pro_rata(total_income, weights).items()
            if amount > 0
        }

        distribution = Distribution(
            reference_type="property",
            reference_id=property_id,
            total_amount=total_income,
            total_weight=sold,
            payouts=payouts,
        )
        for account, amount in payouts.items():
            await self.tokens.transfer(registry, account, amount)

        await EventRecorder(self.db, self.ctx).record(
            EventType.INCOME_DISTRIBUTED,
            account=caller,
            amount=distribution.total_paid,
            reference_id=property_id,
            reference_type="property",
            data=distribution.to_dict(),
        )
        logger.info(
            "Income distributed",
            property_id=property_id,
            total_income=total_income,
            total_paid=distribution.total_paid,
            investor_count=len(payouts),
        )
        return distribution
