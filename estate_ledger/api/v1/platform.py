"""Platform parameters, statistics, accounts and event history"""
from datetime import datetime
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from estate_ledger.api.deps import get_db, get_ctx
from estate_ledger.models.ledger_event import EventType
from estate_ledger.schemas.platform import (
    ParametersResponse,
    UpdateParametersRequest,
    PlatformStatsResponse,
    LedgerEventResponse,
)
from estate_ledger.schemas.property import HoldingResponse, InvestorPortfolioResponse, SellOrderResponse
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.event_log import EventRecorder
from estate_ledger.services.order_book import OrderBook
from estate_ledger.services.parameters import ParameterService
from estate_ledger.services.portfolio import investor_portfolio, platform_stats
from estate_ledger.services.property_registry import PropertyRegistry

router = APIRouter()


@router.get("/parameters", response_model=ParametersResponse)
async def get_parameters(db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    params = await ParameterService(db, ctx).get()
    return ParametersResponse.model_validate(params)


@router.put("/parameters", response_model=ParametersResponse)
async def update_parameters(
    request: UpdateParametersRequest,
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    """Admin-only update; omitted fields are left unchanged"""
    params = await ParameterService(db, ctx).update(
        request.caller,
        **request.model_dump(exclude={"caller"}, exclude_none=True),
    )
    return ParametersResponse.model_validate(params)


@router.get("/stats", response_model=PlatformStatsResponse)
async def get_platform_stats(db: AsyncSession = Depends(get_db)):
    stats = await platform_stats(db)
    return PlatformStatsResponse(**stats.__dict__)


@router.get("/accounts/{account}/portfolio", response_model=InvestorPortfolioResponse)
async def get_portfolio(account: str = Path(...), db: AsyncSession = Depends(get_db)):
    portfolio = await investor_portfolio(db, account)
    return InvestorPortfolioResponse(**portfolio.__dict__)


@router.get("/accounts/{account}/holdings", response_model=List[HoldingResponse])
async def get_account_holdings(
    account: str = Path(...),
    include_divested: bool = Query(True),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    holdings = await PropertyRegistry(db, ctx).properties_of(account, include_divested=include_divested)
    return [HoldingResponse.model_validate(h) for h in holdings]


@router.get("/accounts/{account}/orders", response_model=List[SellOrderResponse])
async def get_account_orders(
    account: str = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    orders = await OrderBook(db, ctx).orders_of(account)
    return [SellOrderResponse.model_validate(o) for o in orders]


@router.get("/events", response_model=List[LedgerEventResponse])
async def list_events(
    event_type: Optional[EventType] = Query(None),
    reference_type: Optional[str] = Query(None),
    reference_id: Optional[int] = Query(None),
    since: Optional[datetime] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    """Ledger event history, oldest first"""
    events = await EventRecorder(db, ctx).list(
        event_type=event_type,
        reference_type=reference_type,
        reference_id=reference_id,
        since=since,
        limit=limit,
    )
    return [LedgerEventResponse.model_validate(e) for e in events]
