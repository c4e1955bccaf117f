"""Property, holding and order schemas"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, List, Dict

from estate_ledger.models.property import PropertyType, RiskLevel


class PropertyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    metadata_uri: str
    total_valuation: int
    total_shares: int
    available_shares: int
    share_price: int
    owner: str
    is_active: bool
    is_verified: bool
    property_type: PropertyType
    risk_level: RiskLevel
    created_at: datetime
    verified_at: Optional[datetime] = None


class ListPropertyRequest(BaseModel):
    caller: str
    metadata_uri: str
    total_valuation: int = Field(gt=0)
    total_shares: int = Field(gt=0)
    property_type: PropertyType = PropertyType.RESIDENTIAL
    risk_level: RiskLevel = RiskLevel.MEDIUM


class VerifyPropertyRequest(BaseModel):
    caller: str


class PurchaseSharesRequest(BaseModel):
    caller: str
    share_count: int = Field(gt=0)


class DistributeIncomeRequest(BaseModel):
    caller: str
    total_income: int = Field(gt=0)


class DistributionResponse(BaseModel):
    reference_type: str
    reference_id: int
    total_amount: int
    total_weight: int
    total_paid: int
    remainder: int
    payouts: Dict[str, int]


class HoldingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    property_id: int
    account: str
    shares: int
    amount_paid: int
    first_acquired_at: datetime
    last_acquired_at: datetime


class SellOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    property_id: int
    seller: str
    shares_offered: int
    shares_filled: int
    price_per_share: int
    total_price: int
    is_active: bool
    created_at: datetime
    expires_at: datetime
    cancelled_at: Optional[datetime] = None


class CreateSellOrderRequest(BaseModel):
    caller: str
    property_id: int
    share_count: int = Field(gt=0)
    price_per_share: int = Field(gt=0)
    duration_days: int


class FulfilOrderRequest(BaseModel):
    caller: str
    share_count: int = Field(gt=0)


class CancelOrderRequest(BaseModel):
    caller: str


class InvestorPortfolioResponse(BaseModel):
    account: str
    property_ids: List[int]
    total_invested: int
    total_shares: int
