"""Append-only event log for external indexers."""
import enum
from sqlalchemy import (
    Column, Integer, String, BigInteger, DateTime, Text, JSON,
    Index, Enum as SQLEnum
)

from estate_ledger.models.database import Base


class EventType(str, enum.Enum):
    """Every observable mutation in the ledger."""
    # Utility token
    ISSUE = "issue"
    DESTROY = "destroy"
    TRANSFER = "transfer"
    APPROVAL = "approval"
    PAUSE = "pause"
    UNPAUSE = "unpause"
    MINTER_ADDED = "minter_added"
    MINTER_REMOVED = "minter_removed"
    FAUCET_CLAIM = "faucet_claim"
    WRAP = "wrap"
    UNWRAP = "unwrap"
    WRAPPED_TRANSFER = "wrapped_transfer"

    # Platform parameters
    PARAMETERS_UPDATED = "parameters_updated"

    # Property registry
    PROPERTY_LISTED = "property_listed"
    PROPERTY_VERIFIED = "property_verified"
    SHARES_PURCHASED = "shares_purchased"
    INCOME_DISTRIBUTED = "income_distributed"

    # Order book
    SELL_ORDER_CREATED = "sell_order_created"
    SELL_ORDER_FULFILLED = "sell_order_fulfilled"
    SELL_ORDER_CANCELLED = "sell_order_cancelled"

    # Governance
    PROPOSAL_CREATED = "proposal_created"
    VOTE_CAST = "vote_cast"
    PROPOSAL_EXECUTED = "proposal_executed"
    PROPOSAL_CANCELLED = "proposal_cancelled"

    # Disasters and insurance
    REPORTER_ADDED = "reporter_added"
    REPORTER_REMOVED = "reporter_removed"
    DISASTER_REPORTED = "disaster_reported"
    DISASTER_VERIFIED = "disaster_verified"
    DISASTER_STATUS_UPDATED = "disaster_status_updated"
    INSURANCE_POLICY_ADDED = "insurance_policy_added"
    INSURANCE_DEPOSIT = "insurance_deposit"
    CLAIM_SUBMITTED = "claim_submitted"
    CLAIM_PROCESSED = "claim_processed"

    # Pools
    POOL_CREATED = "pool_created"
    POOL_PROPERTY_ADDED = "pool_property_added"
    POOL_INVESTMENT = "pool_investment"
    POOL_RETURNS_DEPOSITED = "pool_returns_deposited"
    POOL_RETURNS_DISTRIBUTED = "pool_returns_distributed"


class LedgerEvent(Base):
    """
    Read-only record written after a successful mutation.

    Events are persisted in the same transaction as the mutation they describe,
    so an aborted operation never leaves an event behind.
    """
    __tablename__ = "ledger_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    occurred_at = Column(DateTime, nullable=False, index=True)
    event_type = Column(SQLEnum(EventType), nullable=False, index=True)

    account = Column(String(64), nullable=True, index=True)  # Primary actor
    counterparty = Column(String(64), nullable=True, index=True)

    amount = Column(BigInteger, nullable=True)

    reference_id = Column(Integer, nullable=True)
    reference_type = Column(String(50), nullable=True)  # property, sell_order, proposal, ...

    data = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        Index('ix_ledger_event_reference', 'reference_type', 'reference_id'),
        Index('ix_ledger_event_type_time', 'event_type', 'occurred_at'),
    )

    def __repr__(self):
        return f"<LedgerEvent(id={self.id}, type={self.event_type}, account={self.account})>"
