"""Sell order API endpoints"""
from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.api.deps import get_db, get_ctx
from estate_ledger.schemas.property import (
    SellOrderResponse,
    CreateSellOrderRequest,
    FulfilOrderRequest,
    CancelOrderRequest,
)
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.order_book import OrderBook

router = APIRouter()


@router.post("", response_model=SellOrderResponse)
async def create_sell_order(
    request: CreateSellOrderRequest,
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    order = await OrderBook(db, ctx).create_sell_order(
        seller=request.caller,
        property_id=request.property_id,
        share_count=request.share_count,
        price_per_share=request.price_per_share,
        duration_days=request.duration_days,
    )
    return SellOrderResponse.model_validate(order)


@router.get("/{order_id}", response_model=SellOrderResponse)
async def get_sell_order(
    order_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    order = await OrderBook(db, ctx).get_order(order_id)
    return SellOrderResponse.model_validate(order)


@router.post("/{order_id}/fulfil", response_model=SellOrderResponse)
async def fulfil_sell_order(
    request: FulfilOrderRequest,
    order_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    """Buy from an order; the caller must have approved the registry account"""
    order = await OrderBook(db, ctx).fulfil(request.caller, order_id, request.share_count)
    return SellOrderResponse.model_validate(order)


@router.post("/{order_id}/cancel", response_model=SellOrderResponse)
async def cancel_sell_order(
    request: CancelOrderRequest,
    order_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    order = await OrderBook(db, ctx).cancel(request.caller, order_id)
    return SellOrderResponse.model_validate(order)
