"""Investment pool schemas"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import List, Optional

from estate_ledger.models.property import RiskLevel


class PoolResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    min_investment: int
    max_investment: int
    risk_level: RiskLevel
    total_invested: int
    total_shares: int
    returns_balance: int
    is_active: bool
    created_at: datetime
    property_ids: List[int] = []


class CreatePoolRequest(BaseModel):
    caller: str
    name: str
    description: str = ""
    min_investment: int = Field(gt=0)
    max_investment: int = Field(gt=0)
    risk_level: RiskLevel = RiskLevel.MEDIUM


class AddPoolPropertyRequest(BaseModel):
    caller: str
    property_id: int


class PoolInvestRequest(BaseModel):
    caller: str
    amount: int = Field(gt=0)


class DepositReturnsRequest(BaseModel):
    caller: str
    amount: int = Field(gt=0)


class DistributeReturnsRequest(BaseModel):
    caller: str
    total_returns: int = Field(gt=0)


class PoolPositionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pool_id: int
    investor: str
    amount: int
    shares: int
    last_invested_at: datetime
