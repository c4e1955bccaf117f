"""Database models"""
from estate_ledger.models.database import Base
from estate_ledger.models.token import TokenSupply, Balance, Allowance, Minter, FaucetClaim, WrappedBalance
from estate_ledger.models.parameters import PlatformParameters
from estate_ledger.models.property import Property, Holding, PropertyType, RiskLevel
from estate_ledger.models.order import SellOrder
from estate_ledger.models.governance import Proposal, VoteRecord, ProposalType, ProposalState
from estate_ledger.models.disaster import (
    DisasterReport,
    InsuranceClaim,
    DisasterReporter,
    DisasterStatus,
    DisasterType,
    InsurancePolicy,
    Severity,
    ClaimStatus,
)
from estate_ledger.models.pool import InvestmentPool, PoolProperty, PoolPosition
from estate_ledger.models.ledger_event import LedgerEvent, EventType

__all__ = [
    "Base",
    # Utility token
    "TokenSupply",
    "Balance",
    "Allowance",
    "Minter",
    "FaucetClaim",
    "WrappedBalance",
    "PlatformParameters",
    # Properties and market
    "Property",
    "Holding",
    "PropertyType",
    "RiskLevel",
    "SellOrder",
    # Governance
    "Proposal",
    "VoteRecord",
    "ProposalType",
    "ProposalState",
    # Disasters
    "DisasterReport",
    "InsuranceClaim",
    "DisasterReporter",
    "DisasterStatus",
    "InsurancePolicy",
    "DisasterType",
    "Severity",
    "ClaimStatus",
    # Pools
    "InvestmentPool",
    "PoolProperty",
    "PoolPosition",
    # Events
    "LedgerEvent",
    "EventType",
]
