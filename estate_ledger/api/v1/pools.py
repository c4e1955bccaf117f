"""Investment pool API endpoints"""
from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from estate_ledger.api.deps import get_db, get_ctx
from estate_ledger.exceptions import NotFoundError
from estate_ledger.models.pool import InvestmentPool
from estate_ledger.schemas.pool import (
    PoolResponse,
    CreatePoolRequest,
    AddPoolPropertyRequest,
    PoolInvestRequest,
    DepositReturnsRequest,
    DistributeReturnsRequest,
    PoolPositionResponse,
)
from estate_ledger.schemas.property import DistributionResponse
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.pools import PoolService

router = APIRouter()


async def _pool_to_response(service: PoolService, pool: InvestmentPool) -> PoolResponse:
    return PoolResponse(
        id=pool.id,
        name=pool.name,
        description=pool.description,
        min_investment=pool.min_investment,
        max_investment=pool.max_investment,
        risk_level=pool.risk_level,
        total_invested=pool.total_invested,
        total_shares=pool.total_shares,
        returns_balance=pool.returns_balance,
        is_active=pool.is_active,
        created_at=pool.created_at,
        property_ids=await service.pool_property_ids(pool.id),
    )


@router.get("", response_model=List[PoolResponse])
async def list_pools(db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    service = PoolService(db, ctx)
    return [await _pool_to_response(service, p) for p in await service.list_pools()]


@router.post("", response_model=PoolResponse)
async def create_pool(request: CreatePoolRequest, db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    service = PoolService(db, ctx)
    pool = await service.create_pool(
        caller=request.caller,
        name=request.name,
        description=request.description,
        min_investment=request.min_investment,
        max_investment=request.max_investment,
        risk_level=request.risk_level,
    )
    return await _pool_to_response(service, pool)


@router.get("/{pool_id}", response_model=PoolResponse)
async def get_pool(
    pool_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    service = PoolService(db, ctx)
    return await _pool_to_response(service, await service.get_pool(pool_id))


@router.post("/{pool_id}/properties", response_model=PoolResponse)
async def add_pool_property(
    request: AddPoolPropertyRequest,
    pool_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    """Attach a verified property to a pool"""
    service = PoolService(db, ctx)
    await service.add_property(request.caller, pool_id, request.property_id)
    return await _pool_to_response(service, await service.get_pool(pool_id))


@router.post("/{pool_id}/invest", response_model=PoolPositionResponse)
async def invest_in_pool(
    request: PoolInvestRequest,
    pool_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    """Invest tokens; the caller must have approved the pool treasury account"""
    position = await PoolService(db, ctx).invest(request.caller, pool_id, request.amount)
    return PoolPositionResponse.model_validate(position)


@router.get("/{pool_id}/positions/{investor}", response_model=PoolPositionResponse)
async def get_pool_position(
    pool_id: int = Path(...),
    investor: str = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    position = await PoolService(db, ctx).pool_position(pool_id, investor)
    if position is None:
        raise NotFoundError("No position in pool", pool_id=pool_id, investor=investor)
    return PoolPositionResponse.model_validate(position)


@router.post("/{pool_id}/returns", response_model=DistributionResponse)
async def distribute_pool_returns(
    request: DistributeReturnsRequest,
    pool_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    distribution = await PoolService(db, ctx).distribute_returns(request.caller, pool_id, request.total_returns)
    return DistributionResponse(**distribution.to_dict())


@router.post("/{pool_id}/returns/deposit", response_model=PoolResponse)
async def deposit_pool_returns(
    request: DepositReturnsRequest,
    pool_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    """Move tokens from the caller into the pool treasury, earmarked as this pool's returns"""
    service = PoolService(db, ctx)
    pool = await service.deposit_returns(request.caller, pool_id, request.amount)
    return await _pool_to_response(service, pool)
