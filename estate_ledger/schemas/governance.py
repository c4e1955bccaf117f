"""Governance schemas"""
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional, Dict, Any

from estate_ledger.models.governance import ProposalState, ProposalType


class ProposalResponse(BaseModel):
    id: int
    title: str
    description: str
    proposer: str
    proposal_type: ProposalType
    execution_data: Dict[str, Any]
    votes_for: int
    votes_against: int
    start_time: datetime
    end_time: datetime
    executed: bool
    passed: bool
    cancelled: bool
    quorum: Optional[int] = None
    executed_at: Optional[datetime] = None
    state: ProposalState


class CreateProposalRequest(BaseModel):
    caller: str
    title: str
    description: str
    proposal_type: ProposalType = ProposalType.GENERAL
    execution_data: Dict[str, Any] = {}


class VoteRequest(BaseModel):
    caller: str
    support: bool
    reason: Optional[str] = None


class VoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    proposal_id: int
    voter: str
    support: bool
    weight: int
    reason: Optional[str] = None
    voted_at: datetime


class ProposalActionRequest(BaseModel):
    caller: str


class VotingPowerResponse(BaseModel):
    address: str
    voting_power: int
