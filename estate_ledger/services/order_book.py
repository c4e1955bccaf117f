"""Secondary market: sell orders on property shares."""
from datetime import timedelta
from typing import List

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.exceptions import (
    AuthorizationError,
    ConsistencyError,
    InsufficientResourceError,
    NotFoundError,
    ValidationError,
)
from estate_ledger.models.order import SellOrder
from estate_ledger.models.ledger_event import EventType
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.event_log import EventRecorder
from estate_ledger.services.ids import next_id
from estate_ledger.services.parameters import ParameterService, split_fee
from estate_ledger.services.property_registry import PropertyRegistry
from estate_ledger.services.token_ledger import TokenLedger

logger = structlog.get_logger()


class OrderBook:
    """
    Per-property resale orders.

    Orders do not reserve the seller's shares. A seller may post orders that
    together exceed the holding; each fill re-checks the seller's current
    holding, so at most the owned shares can ever be sold.
    """

    def __init__(self, db: AsyncSession, ctx: LedgerContext):
        self.db = db
        self.ctx = ctx
        self.tokens = TokenLedger(db, ctx)
        self.registry = PropertyRegistry(db, ctx)
        self.events = EventRecorder(db, ctx)

    async def get_order(self, order_id: int) -> SellOrder:
        order = await self.db.get(SellOrder, order_id)
        if order is None:
            raise NotFoundError("Sell order not found", order_id=order_id)
        return order

    async def active_orders(self, property_id: int) -> List[SellOrder]:
        """Open orders for a property; expired orders are filtered out."""
        result = await self.db.execute(
            select(SellOrder)
            .where(
                SellOrder.property_id == property_id,
                SellOrder.is_active.is_(True),
                SellOrder.expires_at >= self.ctx.now(),
            )
            .order_by(SellOrder.price_per_share, SellOrder.id)
        )
        return list(result.scalars().all())

    async def orders_of(self, seller: str) -> List[SellOrder]:
        result = await self.db.execute(
            select(SellOrder).where(SellOrder.seller == seller).order_by(SellOrder.id)
        )
        return list(result.scalars().all())

    async def create_sell_order(
        self,
        seller: str,
        property_id: int,
        share_count: int,
        price_per_share: int,
        duration_days: int,
    ) -> SellOrder:
        if share_count <= 0:
            raise ValidationError("Share count must be positive", share_count=share_count)
        if price_per_share <= 0:
            raise ValidationError("Price per share must be positive", price_per_share=price_per_share)
        max_days = self.ctx.settings.max_order_duration_days
        if duration_days < 1 or duration_days > max_days:
            raise ValidationError(
                f"Duration must be between 1 and {max_days} days", duration_days=duration_days
            )

        await self.registry.get_property(property_id)
        owned = await self.registry.shares_of(property_id, seller)
        # Checked against the holding only, not against the seller's other open orders
        if owned < share_count:
            raise InsufficientResourceError(
                "Seller does not own enough shares", owned=owned, requested=share_count
            )

        now = self.ctx.now()
        order = SellOrder(
            id=await next_id(self.db, SellOrder),
            property_id=property_id,
            seller=seller,
            shares_offered=share_count,
            shares_filled=0,
            price_per_share=price_per_share,
            is_active=True,
            created_at=now,
            expires_at=now + timedelta(days=duration_days),
        )
        self.db.add(order)
        await self.db.flush()

        await self.events.record(
            EventType.SELL_ORDER_CREATED,
            account=seller,
            amount=share_count,
            reference_id=order.id,
            reference_type="sell_order",
            data={"property_id": property_id, "price_per_share": price_per_share},
        )
        logger.info(
            "Sell order created",
            order_id=order.id,
            property_id=property_id,
            seller=seller,
            shares=share_count,
            price_per_share=price_per_share,
        )
        return order

    async def fulfil(self, buyer: str, order_id: int, share_count: int) -> SellOrder:
        """Buy ``share_count`` shares from an open order."""
        order = await self.get_order(order_id)
        if not order.is_active:
            raise ValidationError("Sell order is not active", order_id=order_id)
        if order.is_expired(self.ctx.now()):
            raise ValidationError("Sell order has expired", order_id=order_id)
        if share_count <= 0:
            raise ValidationError("Share count must be positive", share_count=share_count)
        if share_count > order.shares_offered:
            raise InsufficientResourceError(
                "Order offers fewer shares than requested",
                offered=order.shares_offered,
                requested=share_count,
            )
        if buyer == order.seller:
            raise ValidationError("Seller cannot buy from their own order", order_id=order_id)

        owned = await self.registry.shares_of(order.property_id, order.seller)
        if owned < share_count:
            raise ConsistencyError(
                "Seller no longer holds the shares this order offers",
                order_id=order_id,
                owned=owned,
                requested=share_count,
            )

        cost = share_count * order.price_per_share
        balance = await self.tokens.balance_of(buyer)
        if balance < cost:
            raise InsufficientResourceError("Insufficient token balance", balance=balance, cost=cost)

        params = await ParameterService(self.db, self.ctx).get()
        fee, net = split_fee(cost, params.fee_bps)
        registry = self.ctx.registry_account
        await self.tokens.transfer_from(registry, buyer, registry, cost)
        await self.tokens.transfer(registry, params.fee_recipient, fee)
        await self.tokens.transfer(registry, order.seller, net)

        await self.registry.debit_holding(order.property_id, order.seller, share_count)
        await self.registry.credit_holding(order.property_id, buyer, share_count, cost)

        order.shares_offered -= share_count
        order.shares_filled += share_count
        if order.shares_offered == 0:
            order.is_active = False

        await self.events.record(
            EventType.SELL_ORDER_FULFILLED,
            account=buyer,
            counterparty=order.seller,
            amount=share_count,
            reference_id=order.id,
            reference_type="sell_order",
            data={"cost": cost, "fee": fee, "net": net, "remaining": order.shares_offered},
        )
        logger.info(
            "Sell order fulfilled",
            order_id=order.id,
            buyer=buyer,
            shares=share_count,
            cost=cost,
            remaining=order.shares_offered,
        )
        return order

    async def cancel(self, caller: str, order_id: int) -> SellOrder:
        order = await self.get_order(order_id)
        if caller != order.seller and not self.ctx.admin.is_admin(caller):
            raise AuthorizationError("Only the seller or the admin may cancel", order_id=order_id)
        if not order.is_active:
            raise ValidationError("Sell order is not active", order_id=order_id)

        order.is_active = False
        order.cancelled_at = self.ctx.now()

        await self.events.record(
            EventType.SELL_ORDER_CANCELLED,
            account=caller,
            reference_id=order.id,
            reference_type="sell_order",
        )
        logger.info("Sell order cancelled", order_id=order.id, by=caller)
        return order
