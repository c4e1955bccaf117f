"""Fungible utility token: balances, allowances, supply cap and pause switch."""
from typing import List

import structlog
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.exceptions import (
    AuthorizationError,
    InsufficientResourceError,
    NotFoundError,
    ValidationError,
)
from estate_ledger.models.token import TokenSupply, Balance, Allowance, Minter
from estate_ledger.models.ledger_event import EventType
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.event_log import EventRecorder

logger = structlog.get_logger()

SUPPLY_ROW_ID = 1


def _require_amount(amount: int, allow_zero: bool = True) -> None:
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError("Amount must be positive", amount=amount)


class TokenLedger:
    """
    Balance and allowance bookkeeping for the utility token.

    Every method is all-or-nothing inside the caller's transaction: checks run
    before any row is touched, and a raised error rolls back the whole unit of
    work anyway.
    """

    def __init__(self, db: AsyncSession, ctx: LedgerContext):
        self.db = db
        self.ctx = ctx
        self.events = EventRecorder(db, ctx)

    # Reads

    async def supply(self) -> TokenSupply:
        supply = await self.db.get(TokenSupply, SUPPLY_ROW_ID)
        if supply is None:
            raise NotFoundError("Token supply has not been initialized")
        return supply

    async def seed(self) -> TokenSupply:
        """Create the supply row from settings if it does not exist yet."""
        supply = await self.db.get(TokenSupply, SUPPLY_ROW_ID)
        if supply is not None:
            return supply
        settings = self.ctx.settings
        supply = TokenSupply(
            id=SUPPLY_ROW_ID,
            name=settings.token_name,
            symbol=settings.token_symbol,
            decimals=settings.token_decimals,
            cap=settings.token_cap,
            total_supply=0,
            total_issued=0,
            total_destroyed=0,
            is_paused=False,
        )
        self.db.add(supply)
        await self.db.flush()
        return supply

    async def total_supply(self) -> int:
        return (await self.supply()).total_supply

    async def balance_of(self, account: str) -> int:
        result = await self.db.execute(select(Balance.amount).where(Balance.account == account))
        return result.scalar() or 0

    async def allowance(self, owner: str, spender: str) -> int:
        result = await self.db.execute(
            select(Allowance.amount).where(Allowance.owner == owner, Allowance.spender == spender)
        )
        return result.scalar() or 0

    async def sum_of_balances(self) -> int:
        result = await self.db.execute(select(func.coalesce(func.sum(Balance.amount), 0)))
        return result.scalar()

    async def holders(self) -> List[Balance]:
        result = await self.db.execute(
            select(Balance).where(Balance.amount > 0).order_by(Balance.amount.desc())
        )
        return list(result.scalars().all())

    async def is_minter(self, account: str) -> bool:
        if self.ctx.admin.is_admin(account):
            return True
        result = await self.db.execute(select(Minter.id).where(Minter.account == account))
        return result.scalar_one_or_none() is not None

    # Internal row helpers

    async def _balance_row(self, account: str) -> Balance:
        result = await self.db.execute(select(Balance).where(Balance.account == account))
        row = result.scalar_one_or_none()
        if row is None:
            row = Balance(account=account, amount=0)
            self.db.add(row)
        return row

    async def _allowance_row(self, owner: str, spender: str) -> Allowance:
        result = await self.db.execute(
            select(Allowance).where(Allowance.owner == owner, Allowance.spender == spender)
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = Allowance(owner=owner, spender=spender, amount=0)
            self.db.add(row)
        return row

    # Supply changes

    async def issue(self, caller: str, to: str, amount: int, record: bool = True) -> int:
        """Mint ``amount`` to ``to``; fails if the cap would be exceeded."""
        _require_amount(amount, allow_zero=False)
        if not await self.is_minter(caller):
            raise AuthorizationError("Caller is not allowed to issue tokens", caller=caller)
        supply = await self.supply()
        if supply.total_supply + amount > supply.cap:
            raise InsufficientResourceError(
                "Issuing would exceed the supply cap",
                requested=amount,
                headroom=supply.headroom,
            )

        balance = await self._balance_row(to)
        balance.amount += amount
        supply.total_supply += amount
        supply.total_issued += amount

        if record:
            await self.events.record(EventType.ISSUE, account=caller, counterparty=to, amount=amount)
        logger.info("Tokens issued", to=to, amount=amount, total_supply=supply.total_supply)
        return balance.amount

    async def destroy(self, holder: str, amount: int) -> int:
        """Burn ``amount`` from the holder's own balance."""
        _require_amount(amount, allow_zero=False)
        supply = await self.supply()
        balance = await self._balance_row(holder)
        if balance.amount < amount:
            raise InsufficientResourceError(
                "Burn amount exceeds balance", balance=balance.amount, requested=amount
            )

        balance.amount -= amount
        supply.total_supply -= amount
        supply.total_destroyed += amount

        await self.events.record(EventType.DESTROY, account=holder, amount=amount)
        logger.info("Tokens destroyed", holder=holder, amount=amount, total_supply=supply.total_supply)
        return balance.amount

    async def destroy_from(self, spender: str, holder: str, amount: int) -> int:
        """Burn from ``holder`` using the allowance granted to ``spender``."""
        _require_amount(amount, allow_zero=False)
        allowance = await self._allowance_row(holder, spender)
        if allowance.amount < amount:
            raise InsufficientResourceError(
                "Burn amount exceeds allowance", allowance=allowance.amount, requested=amount
            )
        allowance.amount -= amount
        return await self.destroy(holder, amount)

    # Movement

    async def transfer(self, sender: str, to: str, amount: int) -> None:
        """Debit ``sender`` and credit ``to``; blocked while paused."""
        _require_amount(amount)
        supply = await self.supply()
        if supply.is_paused:
            raise ValidationError("Token transfers are paused")

        source = await self._balance_row(sender)
        if source.amount < amount:
            raise InsufficientResourceError(
                "Transfer amount exceeds balance",
                account=sender,
                balance=source.amount,
                requested=amount,
            )
        destination = await self._balance_row(to)
        source.amount -= amount
        destination.amount += amount

        await self.events.record(EventType.TRANSFER, account=sender, counterparty=to, amount=amount)

    async def approve(self, owner: str, spender: str, amount: int) -> None:
        """Overwrite the allowance ``spender`` holds over ``owner``'s balance."""
        _require_amount(amount)
        allowance = await self._allowance_row(owner, spender)
        allowance.amount = amount
        await self.events.record(EventType.APPROVAL, account=owner, counterparty=spender, amount=amount)

    async def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        """Spend allowance, then move the funds exactly as ``transfer`` does."""
        _require_amount(amount)
        allowance = await self._allowance_row(owner, spender)
        if allowance.amount < amount:
            raise InsufficientResourceError(
                "Transfer amount exceeds allowance",
                owner=owner,
                spender=spender,
                allowance=allowance.amount,
                requested=amount,
            )
        allowance.amount -= amount
        await self.transfer(owner, to, amount)

    # Administration

    async def pause(self, caller: str) -> None:
        self.ctx.admin.check(caller, "pause transfers")
        supply = await self.supply()
        if supply.is_paused:
            return
        supply.is_paused = True
        await self.events.record(EventType.PAUSE, account=caller)
        logger.warning("Token transfers paused", by=caller)

    async def unpause(self, caller: str) -> None:
        self.ctx.admin.check(caller, "unpause transfers")
        supply = await self.supply()
        if not supply.is_paused:
            return
        supply.is_paused = False
        await self.events.record(EventType.UNPAUSE, account=caller)
        logger.info("Token transfers resumed", by=caller)

    async def add_minter(self, caller: str, account: str) -> None:
        self.ctx.admin.check(caller, "add minters")
        result = await self.db.execute(select(Minter).where(Minter.account == account))
        if result.scalar_one_or_none() is not None:
            return
        self.db.add(Minter(account=account, added_at=self.ctx.now()))
        await self.events.record(EventType.MINTER_ADDED, account=caller, counterparty=account)

    async def remove_minter(self, caller: str, account: str) -> None:
        self.ctx.admin.check(caller, "remove minters")
        result = await self.db.execute(select(Minter).where(Minter.account == account))
        minter = result.scalar_one_or_none()
        if minter is None:
            raise NotFoundError("Account is not a minter", account=account)
        await self.db.delete(minter)
        await self.events.record(EventType.MINTER_REMOVED, account=caller, counterparty=account)
