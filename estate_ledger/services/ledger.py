"""Unit of work: one serialized, all-or-nothing transaction per operation."""
import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, Awaitable, Callable, Optional, TypeVar

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from estate_ledger.config import Settings
from estate_ledger.exceptions import LedgerError
from estate_ledger.models.database import build_engine, build_session_factory, init_db, close_db
from estate_ledger.services.context import LedgerContext, ProposalExecutor
from estate_ledger.services.parameters import ParameterService
from estate_ledger.services.token_ledger import TokenLedger

logger = structlog.get_logger()

T = TypeVar("T")


class Ledger:
    """
    Executes ledger operations one at a time.

    Every operation gets its own session and database transaction. The
    transaction commits only when the operation returns; any exception rolls
    back every write the operation made (events included) and is re-raised
    unchanged. Nothing is retried.
    """

    def __init__(self, engine: AsyncEngine, ctx: LedgerContext):
        self.engine = engine
        self.ctx = ctx
        self.session_factory = build_session_factory(engine)
        self._writer = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        clock: Optional[Callable[[], datetime]] = None,
        proposal_executor: Optional[ProposalExecutor] = None,
    ) -> "Ledger":
        ctx = LedgerContext.from_settings(settings, clock=clock, proposal_executor=proposal_executor)
        return cls(build_engine(settings), ctx)

    async def init_schema(self) -> None:
        """Create tables and seed the token supply and parameters rows."""
        await init_db(self.engine)
        async with self.transaction() as db:
            await TokenLedger(db, self.ctx).seed()
            await ParameterService(db, self.ctx).seed()
        logger.info("Ledger schema initialized")

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        async with self._writer:
            async with self.session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except LedgerError as e:
                    await session.rollback()
                    logger.info("Operation rejected", error=type(e).__name__, reason=e.message, **e.context)
                    raise
                except Exception:
                    await session.rollback()
                    logger.exception("Operation failed, rolled back")
                    raise

    async def run(self, operation: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run ``operation(session)`` as a single transaction and return its result."""
        async with self.transaction() as db:
            return await operation(db)

    async def close(self) -> None:
        await close_db(self.engine)
