"""Token-weighted governance: proposals, votes and outcome tallying."""
from datetime import timedelta
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.exceptions import (
    AuthorizationError,
    InsufficientResourceError,
    NotFoundError,
    ValidationError,
)
from estate_ledger.models.governance import Proposal, VoteRecord, ProposalState, ProposalType
from estate_ledger.models.ledger_event import EventType
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.event_log import EventRecorder
from estate_ledger.services.ids import next_id
from estate_ledger.services.parameters import BPS_DENOMINATOR, ParameterService
from estate_ledger.services.token_ledger import TokenLedger

logger = structlog.get_logger()


def tally(votes_for: int, votes_against: int, total_supply: int, quorum_bps: int) -> tuple[int, bool]:
    """Return (quorum, passed) for a closed proposal."""
    quorum = total_supply * quorum_bps // BPS_DENOMINATOR
    passed = (votes_for + votes_against) >= quorum and votes_for > votes_against
    return quorum, passed


class GovernanceService:
    """
    Proposal lifecycle and voting.

    Voting power is the voter's live token balance when the vote is cast, not a
    snapshot taken at proposal creation.
    """

    def __init__(self, db: AsyncSession, ctx: LedgerContext):
        self.db = db
        self.ctx = ctx
        self.tokens = TokenLedger(db, ctx)
        self.events = EventRecorder(db, ctx)

    async def get_proposal(self, proposal_id: int) -> Proposal:
        proposal = await self.db.get(Proposal, proposal_id)
        if proposal is None:
            raise NotFoundError("Proposal not found", proposal_id=proposal_id)
        return proposal

    async def list_proposals(self) -> List[Proposal]:
        result = await self.db.execute(select(Proposal).order_by(Proposal.id.desc()))
        return list(result.scalars().all())

    async def get_vote(self, proposal_id: int, voter: str) -> Optional[VoteRecord]:
        result = await self.db.execute(
            select(VoteRecord).where(VoteRecord.proposal_id == proposal_id, VoteRecord.voter == voter)
        )
        return result.scalar_one_or_none()

    async def voting_power(self, account: str) -> int:
        return await self.tokens.balance_of(account)

    async def proposal_state(self, proposal: Proposal) -> ProposalState:
        if proposal.cancelled:
            return ProposalState.CANCELLED
        if proposal.executed:
            return ProposalState.EXECUTED
        if self.ctx.now() < proposal.end_time:
            return ProposalState.ACTIVE
        params = await ParameterService(self.db, self.ctx).get()
        _, passed = tally(
            proposal.votes_for,
            proposal.votes_against,
            await self.tokens.total_supply(),
            params.quorum_bps,
        )
        return ProposalState.SUCCEEDED if passed else ProposalState.DEFEATED

    async def create_proposal(
        self,
        proposer: str,
        title: str,
        description: str,
        proposal_type: ProposalType = ProposalType.GENERAL,
        execution_data: Optional[Dict[str, Any]] = None,
    ) -> Proposal:
        if not title:
            raise ValidationError("Title is required")
        try:
            proposal_type = ProposalType(proposal_type)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        params = await ParameterService(self.db, self.ctx).get()
        balance = await self.tokens.balance_of(proposer)
        if balance < params.proposal_threshold:
            raise InsufficientResourceError(
                "Balance is below the proposal threshold",
                balance=balance,
                threshold=params.proposal_threshold,
            )

        now = self.ctx.now()
        proposal = Proposal(
            id=await next_id(self.db, Proposal),
            title=title,
            description=description,
            proposer=proposer,
            proposal_type=proposal_type.value,
            execution_data=execution_data or {},
            votes_for=0,
            votes_against=0,
            start_time=now,
            end_time=now + timedelta(seconds=self.ctx.settings.voting_period_seconds),
            executed=False,
            passed=False,
            cancelled=False,
        )
        self.db.add(proposal)
        await self.db.flush()

        await self.events.record(
            EventType.PROPOSAL_CREATED,
            account=proposer,
            reference_id=proposal.id,
            reference_type="proposal",
            data={"title": title, "proposal_type": proposal_type.value, "end_time": proposal.end_time.isoformat()},
        )
        logger.info("Proposal created", proposal_id=proposal.id, proposer=proposer, title=title)
        return proposal

    async def cast_vote(self, voter: str, proposal_id: int, support: bool, reason: Optional[str] = None) -> VoteRecord:
        proposal = await self.get_proposal(proposal_id)
        now = self.ctx.now()
        if proposal.cancelled:
            raise ValidationError("Proposal was cancelled", proposal_id=proposal_id)
        if not proposal.is_open(now):
            raise ValidationError("Voting window is closed", proposal_id=proposal_id)
        if await self.get_vote(proposal_id, voter) is not None:
            raise ValidationError("Account has already voted on this proposal", voter=voter)

        params = await ParameterService(self.db, self.ctx).get()
        weight = await self.tokens.balance_of(voter)
        if weight < params.vote_threshold:
            raise InsufficientResourceError(
                "Balance is below the voting threshold",
                balance=weight,
                threshold=params.vote_threshold,
            )

        vote = VoteRecord(
            proposal_id=proposal_id,
            voter=voter,
            support=support,
            weight=weight,
            reason=reason,
            voted_at=now,
        )
        self.db.add(vote)
        if support:
            proposal.votes_for += weight
        else:
            proposal.votes_against += weight

        await self.events.record(
            EventType.VOTE_CAST,
            account=voter,
            amount=weight,
            reference_id=proposal_id,
            reference_type="proposal",
            data={"support": support, "reason": reason},
        )
        logger.info("Vote cast", proposal_id=proposal_id, voter=voter, support=support, weight=weight)
        return vote

    async def execute(self, caller: str, proposal_id: int) -> Proposal:
        """Record the outcome of a closed proposal and hand passed ones to the executor hook."""
        self.ctx.admin.check(caller, "execute proposals")
        proposal = await self.get_proposal(proposal_id)
        if proposal.cancelled:
            raise ValidationError("Proposal was cancelled", proposal_id=proposal_id)
        if proposal.executed:
            raise ValidationError("Proposal already executed", proposal_id=proposal_id)
        now = self.ctx.now()
        if now < proposal.end_time:
            raise ValidationError("Voting has not ended yet", proposal_id=proposal_id)

        params = await ParameterService(self.db, self.ctx).get()
        quorum, passed = tally(
            proposal.votes_for,
            proposal.votes_against,
            await self.tokens.total_supply(),
            params.quorum_bps,
        )
        proposal.quorum = quorum
        proposal.passed = passed
        proposal.executed = True
        proposal.executed_at = now

        if passed:
            self.ctx.proposal_executor(proposal)

        await self.events.record(
            EventType.PROPOSAL_EXECUTED,
            account=caller,
            reference_id=proposal_id,
            reference_type="proposal",
            data={
                "passed": passed,
                "quorum": quorum,
                "votes_for": proposal.votes_for,
                "votes_against": proposal.votes_against,
            },
        )
        logger.info(
            "Proposal executed",
            proposal_id=proposal_id,
            passed=passed,
            quorum=quorum,
            votes_for=proposal.votes_for,
            votes_against=proposal.votes_against,
        )
        return proposal

    async def cancel_proposal(self, caller: str, proposal_id: int) -> Proposal:
        proposal = await self.get_proposal(proposal_id)
        if caller != proposal.proposer and not self.ctx.admin.is_admin(caller):
            raise AuthorizationError("Only the proposer or the admin may cancel", proposal_id=proposal_id)
        if proposal.executed:
            raise ValidationError("Proposal already executed", proposal_id=proposal_id)
        if proposal.cancelled:
            raise ValidationError("Proposal already cancelled", proposal_id=proposal_id)

        proposal.cancelled = True
        await self.events.record(
            EventType.PROPOSAL_CANCELLED,
            account=caller,
            reference_id=proposal_id,
            reference_type="proposal",
        )
        logger.info("Proposal cancelled", proposal_id=proposal_id, by=caller)
        return proposal
