"""Wrapped utility token: lock tokens in the vault, receive wrapped units 1:1."""
import structlog
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.exceptions import InsufficientResourceError, ValidationError
from estate_ledger.models.token import WrappedBalance
from estate_ledger.models.ledger_event import EventType
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.event_log import EventRecorder
from estate_ledger.services.token_ledger import TokenLedger

logger = structlog.get_logger()

# Wrapped units minted per locked utility unit
EXCHANGE_RATE = 1


class WrappedToken:
    """
    Wrapped balances live in their own table; the backing tokens sit in the
    vault account as an ordinary utility balance, so utility supply is never
    touched. Wrapping and unwrapping move tokens with ``transfer`` and are
    therefore blocked while transfers are paused.

    Invariant: total_locked() >= total_wrapped(), with equality unless tokens
    were sent to the vault directly.
    """

    def __init__(self, db: AsyncSession, ctx: LedgerContext):
        self.db = db
        self.ctx = ctx
        self.tokens = TokenLedger(db, ctx)
        self.events = EventRecorder(db, ctx)

    @property
    def vault(self) -> str:
        return self.ctx.wrap_vault_account

    # Reads

    def exchange_rate(self) -> int:
        return EXCHANGE_RATE

    async def wrapped_balance_of(self, account: str) -> int:
        result = await self.db.execute(select(WrappedBalance.amount).where(WrappedBalance.account == account))
        return result.scalar() or 0

    async def total_wrapped(self) -> int:
        result = await self.db.execute(select(func.coalesce(func.sum(WrappedBalance.amount), 0)))
        return result.scalar()

    async def total_locked(self) -> int:
        return await self.tokens.balance_of(self.vault)

    async def can_wrap(self, account: str, amount: int) -> bool:
        if amount <= 0 or (await self.tokens.supply()).is_paused:
            return False
        return await self.tokens.balance_of(account) >= amount

    async def can_unwrap(self, account: str, amount: int) -> bool:
        if amount <= 0 or (await self.tokens.supply()).is_paused:
            return False
        return await self.wrapped_balance_of(account) >= amount * EXCHANGE_RATE

    async def _row(self, account: str) -> WrappedBalance:
        result = await self.db.execute(select(WrappedBalance).where(WrappedBalance.account == account))
        row = result.scalar_one_or_none()
        if row is None:
            row = WrappedBalance(account=account, amount=0)
            self.db.add(row)
        return row

    # Mutations

    async def wrap(self, account: str, amount: int) -> int:
        """Lock ``amount`` utility tokens and credit the wrapped equivalent; returns the wrapped balance."""
        if amount <= 0:
            raise ValidationError("Amount must be positive", amount=amount)
        await self.tokens.transfer(account, self.vault, amount)
        row = await self._row(account)
        row.amount += amount * EXCHANGE_RATE

        await self.events.record(EventType.WRAP, account=account, counterparty=self.vault, amount=amount)
        logger.info("Tokens wrapped", account=account, amount=amount)
        return row.amount

    async def unwrap(self, account: str, amount: int) -> int:
        """Burn ``amount`` wrapped units and release the locked tokens; returns the wrapped balance."""
        if amount <= 0:
            raise ValidationError("Amount must be positive", amount=amount)
        row = await self._row(account)
        if row.amount < amount:
            raise InsufficientResourceError(
                "Unwrap amount exceeds wrapped balance",
                account=account,
                balance=row.amount,
                requested=amount,
            )
        row.amount -= amount
        await self.tokens.transfer(self.vault, account, amount // EXCHANGE_RATE)

        await self.events.record(EventType.UNWRAP, account=account, counterparty=self.vault, amount=amount)
        logger.info("Tokens unwrapped", account=account, amount=amount)
        return row.amount

    async def transfer(self, sender: str, to: str, amount: int) -> None:
        if amount <= 0:
            raise ValidationError("Amount must be positive", amount=amount)
        source = await self._row(sender)
        if source.amount < amount:
            raise InsufficientResourceError(
                "Transfer amount exceeds wrapped balance",
                account=sender,
                balance=source.amount,
                requested=amount,
            )
        destination = await self._row(to)
        source.amount -= amount
        destination.amount += amount
        await self.events.record(EventType.WRAPPED_TRANSFER, account=sender, counterparty=to, amount=amount)
