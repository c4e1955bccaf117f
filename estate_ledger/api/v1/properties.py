"""Property registry API endpoints"""
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from estate_ledger.api.deps import get_db, get_ctx
from estate_ledger.schemas.property import (
    PropertyResponse,
    ListPropertyRequest,
    VerifyPropertyRequest,
    PurchaseSharesRequest,
    DistributeIncomeRequest,
    DistributionResponse,
    HoldingResponse,
    SellOrderResponse,
)
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.income import Distribution
from estate_ledger.services.order_book import OrderBook
from estate_ledger.services.property_registry import PropertyRegistry

router = APIRouter()


def _distribution_to_response(d: Distribution) -> DistributionResponse:
    return DistributionResponse(**d.to_dict())


@router.get("", response_model=List[PropertyResponse])
async def list_properties(
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    """List all properties, optionally only active (verified) ones"""
    properties = await PropertyRegistry(db, ctx).list_properties(active_only=active_only)
    return [PropertyResponse.model_validate(p) for p in properties]


@router.post("", response_model=PropertyResponse)
async def list_property(
    request: ListPropertyRequest,
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    """List a new property; it stays inactive until verified"""
    prop = await PropertyRegistry(db, ctx).list_property(
        owner=request.caller,
        metadata_uri=request.metadata_uri,
        total_valuation=request.total_valuation,
        total_shares=request.total_shares,
        property_type=request.property_type,
        risk_level=request.risk_level,
    )
    return PropertyResponse.model_validate(prop)


@router.get("/{property_id}", response_model=PropertyResponse)
async def get_property(
    property_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    prop = await PropertyRegistry(db, ctx).get_property(property_id)
    return PropertyResponse.model_validate(prop)


@router.post("/{property_id}/verify", response_model=PropertyResponse)
async def verify_property(
    request: VerifyPropertyRequest,
    property_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    prop = await PropertyRegistry(db, ctx).verify(request.caller, property_id)
    return PropertyResponse.model_validate(prop)


@router.post("/{property_id}/purchase", response_model=HoldingResponse)
async def purchase_shares(
    request: PurchaseSharesRequest,
    property_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    """Buy unsold shares; the caller must have approved the registry account"""
    holding = await PropertyRegistry(db, ctx).purchase_shares(request.caller, property_id, request.share_count)
    return HoldingResponse.model_validate(holding)


@router.post("/{property_id}/income", response_model=DistributionResponse)
async def distribute_income(
    request: DistributeIncomeRequest,
    property_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    distribution = await PropertyRegistry(db, ctx).distribute_income(
        request.caller, property_id, request.total_income
    )
    return _distribution_to_response(distribution)


@router.get("/{property_id}/investors", response_model=List[HoldingResponse])
async def list_investors(
    property_id: int = Path(...),
    include_divested: bool = Query(True),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    registry = PropertyRegistry(db, ctx)
    await registry.get_property(property_id)
    holdings = await registry.investors_of(property_id, include_divested=include_divested)
    return [HoldingResponse.model_validate(h) for h in holdings]


@router.get("/{property_id}/orders", response_model=List[SellOrderResponse])
async def list_active_orders(
    property_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    """Open, unexpired sell orders for a property, cheapest first"""
    orders = await OrderBook(db, ctx).active_orders(property_id)
    return [SellOrderResponse.model_validate(o) for o in orders]
