"""Shared FastAPI dependencies"""
from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.services.context import LedgerContext
from estate_ledger.services.ledger import Ledger


def get_ledger(request: Request) -> Ledger:
    return request.app.state.ledger


async def get_db(ledger: Ledger = Depends(get_ledger)) -> AsyncGenerator[AsyncSession, None]:
    """One serialized transaction per request; committed only if the endpoint returns"""
    async with ledger.transaction() as session:
        yield session


def get_ctx(ledger: Ledger = Depends(get_ledger)) -> LedgerContext:
    return ledger.ctx
