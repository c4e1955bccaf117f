"""Platform parameter, statistics and event schemas"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, Dict, Any

from estate_ledger.models.ledger_event import EventType


class ParametersResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    fee_bps: int
    fee_recipient: str
    min_investment: int
    proposal_threshold: int
    vote_threshold: int
    quorum_bps: int
    updated_at: Optional[datetime] = None


class UpdateParametersRequest(BaseModel):
    caller: str
    fee_bps: Optional[int] = Field(default=None, ge=0)
    fee_recipient: Optional[str] = None
    min_investment: Optional[int] = Field(default=None, ge=0)
    proposal_threshold: Optional[int] = Field(default=None, ge=0)
    vote_threshold: Optional[int] = Field(default=None, ge=0)
    quorum_bps: Optional[int] = Field(default=None, ge=0, le=10000)


class PlatformStatsResponse(BaseModel):
    total_properties: int
    verified_properties: int
    total_investors: int
    total_value_locked: int
    total_shares_sold: int


class LedgerEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    occurred_at: datetime
    event_type: EventType
    account: Optional[str] = None
    counterparty: Optional[str] = None
    amount: Optional[int] = None
    reference_id: Optional[int] = None
    reference_type: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
