"""API v1 router aggregation"""
from fastapi import APIRouter

from estate_ledger.api.v1 import token, wrapped, properties, orders, governance, disasters, pools, platform

api_router = APIRouter()

api_router.include_router(token.router, prefix="/token", tags=["Token"])
api_router.include_router(wrapped.router, prefix="/wrapped", tags=["Wrapped Token"])
api_router.include_router(properties.router, prefix="/properties", tags=["Properties"])
api_router.include_router(orders.router, prefix="/orders", tags=["Orders"])
api_router.include_router(governance.router, prefix="/governance", tags=["Governance"])
api_router.include_router(disasters.router, prefix="/disasters", tags=["Disasters"])
api_router.include_router(pools.router, prefix="/pools", tags=["Pools"])
api_router.include_router(platform.router, prefix="/platform", tags=["Platform"])
