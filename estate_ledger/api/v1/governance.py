"""Governance API endpoints"""
from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from estate_ledger.api.deps import get_db, get_ctx
from estate_ledger.models.governance import Proposal
from estate_ledger.schemas.governance import (
    ProposalResponse,
    CreateProposalRequest,
    VoteRequest,
    VoteResponse,
    ProposalActionRequest,
    VotingPowerResponse,
)
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.governance import GovernanceService

router = APIRouter()


async def _proposal_to_response(service: GovernanceService, p: Proposal) -> ProposalResponse:
    """Convert Proposal model to response schema with its effective state"""
    return ProposalResponse(
        id=p.id,
        title=p.title,
        description=p.description,
        proposer=p.proposer,
        proposal_type=p.proposal_type,
        execution_data=p.execution_data or {},
        votes_for=p.votes_for,
        votes_against=p.votes_against,
        start_time=p.start_time,
        end_time=p.end_time,
        executed=p.executed,
        passed=p.passed,
        cancelled=p.cancelled,
        quorum=p.quorum,
        executed_at=p.executed_at,
        state=await service.proposal_state(p),
    )


@router.get("/proposals", response_model=List[ProposalResponse])
async def list_proposals(db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    """List all proposals, newest first"""
    service = GovernanceService(db, ctx)
    return [await _proposal_to_response(service, p) for p in await service.list_proposals()]


@router.get("/proposals/{proposal_id}", response_model=ProposalResponse)
async def get_proposal(
    proposal_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    service = GovernanceService(db, ctx)
    return await _proposal_to_response(service, await service.get_proposal(proposal_id))


@router.post("/proposals", response_model=ProposalResponse)
async def create_proposal(
    request: CreateProposalRequest,
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    service = GovernanceService(db, ctx)
    proposal = await service.create_proposal(
        proposer=request.caller,
        title=request.title,
        description=request.description,
        proposal_type=request.proposal_type,
        execution_data=request.execution_data,
    )
    return await _proposal_to_response(service, proposal)


@router.post("/proposals/{proposal_id}/vote", response_model=VoteResponse)
async def vote_on_proposal(
    request: VoteRequest,
    proposal_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    """Vote weighted by the caller's current token balance"""
    vote = await GovernanceService(db, ctx).cast_vote(
        request.caller, proposal_id, request.support, request.reason
    )
    return VoteResponse.model_validate(vote)


@router.post("/proposals/{proposal_id}/execute", response_model=ProposalResponse)
async def execute_proposal(
    request: ProposalActionRequest,
    proposal_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    service = GovernanceService(db, ctx)
    proposal = await service.execute(request.caller, proposal_id)
    return await _proposal_to_response(service, proposal)


@router.post("/proposals/{proposal_id}/cancel", response_model=ProposalResponse)
async def cancel_proposal(
    request: ProposalActionRequest,
    proposal_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    service = GovernanceService(db, ctx)
    proposal = await service.cancel_proposal(request.caller, proposal_id)
    return await _proposal_to_response(service, proposal)


@router.get("/voting-power/{address}", response_model=VotingPowerResponse)
async def get_voting_power(
    address: str = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    # Voting power equals the live token balance (1:1)
    power = await GovernanceService(db, ctx).voting_power(address)
    return VotingPowerResponse(address=address, voting_power=power)
