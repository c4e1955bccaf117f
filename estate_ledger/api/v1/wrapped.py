"""Wrapped utility token API endpoints"""
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.api.deps import get_db, get_ctx
from estate_ledger.schemas.token import (
    WrappedInfoResponse,
    WrapRequest,
    WrappedTransferRequest,
    WrappedBalanceResponse,
    WrapCheckResponse,
)
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.wrapped_token import WrappedToken

router = APIRouter()


async def _balances(wrapped: WrappedToken, account: str) -> WrappedBalanceResponse:
    return WrappedBalanceResponse(
        account=account,
        balance=await wrapped.tokens.balance_of(account),
        wrapped_balance=await wrapped.wrapped_balance_of(account),
    )


@router.get("", response_model=WrappedInfoResponse)
async def get_wrapped_info(db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    """Vault totals and the fixed exchange rate"""
    wrapped = WrappedToken(db, ctx)
    return WrappedInfoResponse(
        vault=wrapped.vault,
        exchange_rate=wrapped.exchange_rate(),
        total_locked=await wrapped.total_locked(),
        total_wrapped=await wrapped.total_wrapped(),
    )


@router.get("/balances/{account}", response_model=WrappedBalanceResponse)
async def get_wrapped_balance(
    account: str = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    return await _balances(WrappedToken(db, ctx), account)


@router.get("/check/{account}", response_model=WrapCheckResponse)
async def check_wrap(
    account: str = Path(...),
    amount: int = Query(..., gt=0),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    wrapped = WrappedToken(db, ctx)
    return WrapCheckResponse(
        account=account,
        amount=amount,
        can_wrap=await wrapped.can_wrap(account, amount),
        can_unwrap=await wrapped.can_unwrap(account, amount),
    )


@router.post("/wrap", response_model=WrappedBalanceResponse)
async def wrap_tokens(request: WrapRequest, db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    """Lock utility tokens in the vault for wrapped tokens"""
    wrapped = WrappedToken(db, ctx)
    await wrapped.wrap(request.caller, request.amount)
    return await _balances(wrapped, request.caller)


@router.post("/unwrap", response_model=WrappedBalanceResponse)
async def unwrap_tokens(request: WrapRequest, db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    wrapped = WrappedToken(db, ctx)
    await wrapped.unwrap(request.caller, request.amount)
    return await _balances(wrapped, request.caller)


@router.post("/transfer", response_model=WrappedBalanceResponse)
async def transfer_wrapped(
    request: WrappedTransferRequest,
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    wrapped = WrappedToken(db, ctx)
    await wrapped.transfer(request.caller, request.to, request.amount)
    return await _balances(wrapped, request.caller)
