"""Utility token API endpoints"""
from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.api.deps import get_db, get_ctx
from estate_ledger.schemas.token import (
    TokenInfoResponse,
    BalanceResponse,
    AllowanceResponse,
    IssueRequest,
    DestroyRequest,
    TransferRequest,
    ApproveRequest,
    TransferFromRequest,
    AdminRequest,
    MinterRequest,
    FaucetRequest,
    FaucetResponse,
)
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.faucet import Faucet
from estate_ledger.services.token_ledger import TokenLedger

router = APIRouter()


async def _info(tokens: TokenLedger) -> TokenInfoResponse:
    supply = await tokens.supply()
    return TokenInfoResponse(
        name=supply.name,
        symbol=supply.symbol,
        decimals=supply.decimals,
        cap=supply.cap,
        total_supply=supply.total_supply,
        total_issued=supply.total_issued,
        total_destroyed=supply.total_destroyed,
        is_paused=supply.is_paused,
    )


@router.get("", response_model=TokenInfoResponse)
async def get_token_info(db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    """Supply, cap and pause state of the utility token"""
    return await _info(TokenLedger(db, ctx))


@router.get("/balances/{account}", response_model=BalanceResponse)
async def get_balance(
    account: str = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    balance = await TokenLedger(db, ctx).balance_of(account)
    return BalanceResponse(account=account, balance=balance)


@router.get("/allowances/{owner}/{spender}", response_model=AllowanceResponse)
async def get_allowance(
    owner: str = Path(...),
    spender: str = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    allowance = await TokenLedger(db, ctx).allowance(owner, spender)
    return AllowanceResponse(owner=owner, spender=spender, allowance=allowance)


@router.post("/issue", response_model=BalanceResponse)
async def issue_tokens(request: IssueRequest, db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    """Mint new tokens (admin or registered minter)"""
    balance = await TokenLedger(db, ctx).issue(request.caller, request.to, request.amount)
    return BalanceResponse(account=request.to, balance=balance)


@router.post("/destroy", response_model=BalanceResponse)
async def destroy_tokens(request: DestroyRequest, db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    """Burn tokens from the caller's own balance"""
    balance = await TokenLedger(db, ctx).destroy(request.caller, request.amount)
    return BalanceResponse(account=request.caller, balance=balance)


@router.post("/transfer", response_model=BalanceResponse)
async def transfer_tokens(request: TransferRequest, db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    tokens = TokenLedger(db, ctx)
    await tokens.transfer(request.caller, request.to, request.amount)
    return BalanceResponse(account=request.caller, balance=await tokens.balance_of(request.caller))


@router.post("/approve", response_model=AllowanceResponse)
async def approve_spender(request: ApproveRequest, db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    await TokenLedger(db, ctx).approve(request.caller, request.spender, request.amount)
    return AllowanceResponse(owner=request.caller, spender=request.spender, allowance=request.amount)


@router.post("/transfer-from", response_model=BalanceResponse)
async def transfer_tokens_from(
    request: TransferFromRequest,
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    tokens = TokenLedger(db, ctx)
    await tokens.transfer_from(request.caller, request.owner, request.to, request.amount)
    return BalanceResponse(account=request.owner, balance=await tokens.balance_of(request.owner))


@router.post("/pause", response_model=TokenInfoResponse)
async def pause_transfers(request: AdminRequest, db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    tokens = TokenLedger(db, ctx)
    await tokens.pause(request.caller)
    return await _info(tokens)


@router.post("/unpause", response_model=TokenInfoResponse)
async def unpause_transfers(request: AdminRequest, db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    tokens = TokenLedger(db, ctx)
    await tokens.unpause(request.caller)
    return await _info(tokens)


@router.post("/minters")
async def add_minter(request: MinterRequest, db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    await TokenLedger(db, ctx).add_minter(request.caller, request.account)
    return {"success": True, "account": request.account}


@router.post("/minters/remove")
async def remove_minter(request: MinterRequest, db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    await TokenLedger(db, ctx).remove_minter(request.caller, request.account)
    return {"success": True, "account": request.account}


@router.post("/faucet", response_model=FaucetResponse)
async def claim_faucet(request: FaucetRequest, db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    """Demo faucet; disabled unless configured"""
    amount = await Faucet(db, ctx).claim(request.account)
    balance = await TokenLedger(db, ctx).balance_of(request.account)
    return FaucetResponse(account=request.account, amount=amount, balance=balance)
