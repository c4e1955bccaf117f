"""Governance models"""
from enum import Enum
from sqlalchemy import Column, Integer, String, BigInteger, Boolean, DateTime, ForeignKey, Text, JSON, UniqueConstraint

from estate_ledger.models.database import Base


class ProposalType(str, Enum):
    GENERAL = "general"
    PARAMETER_CHANGE = "parameter_change"
    PROPERTY_ACTION = "property_action"
    TREASURY = "treasury"


class ProposalState(str, Enum):
    ACTIVE = "active"
    DEFEATED = "defeated"
    SUCCEEDED = "succeeded"
    EXECUTED = "executed"
    CANCELLED = "cancelled"


class Proposal(Base):
    """Governance proposal"""
    __tablename__ = "proposals"

    id = Column(Integer, primary_key=True, autoincrement=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    proposer = Column(String(64), nullable=False, index=True)
    proposal_type = Column(String(30), nullable=False, default=ProposalType.GENERAL.value)
    execution_data = Column(JSON, nullable=False, default=dict)
    votes_for = Column(BigInteger, nullable=False, default=0)
    votes_against = Column(BigInteger, nullable=False, default=0)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    executed = Column(Boolean, nullable=False, default=False)
    passed = Column(Boolean, nullable=False, default=False)
    cancelled = Column(Boolean, nullable=False, default=False)
    quorum = Column(BigInteger, nullable=True)  # recorded at execution
    executed_at = Column(DateTime, nullable=True)

    @property
    def total_votes(self) -> int:
        return self.votes_for + self.votes_against

    def is_open(self, now) -> bool:
        return self.start_time <= now < self.end_time

    def __repr__(self):
        return f"<Proposal {self.id} (for={self.votes_for} against={self.votes_against})>"


class VoteRecord(Base):
    """One account's vote on one proposal"""
    __tablename__ = "votes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    proposal_id = Column(Integer, ForeignKey("proposals.id"), nullable=False, index=True)
    voter = Column(String(64), nullable=False, index=True)
    support = Column(Boolean, nullable=False)
    weight = Column(BigInteger, nullable=False)  # live balance when the vote was cast
    reason = Column(Text, nullable=True)
    voted_at = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("proposal_id", "voter", name="uq_vote_proposal_voter"),
    )

    def __repr__(self):
        return f"<VoteRecord {self.voter[:8]}... ({'for' if self.support else 'against'})>"
