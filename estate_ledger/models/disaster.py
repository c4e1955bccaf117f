"""Disaster report and insurance claim models"""
from enum import Enum
from sqlalchemy import Column, Integer, String, BigInteger, Boolean, DateTime, ForeignKey, Text, JSON

from estate_ledger.models.database import Base


class DisasterType(str, Enum):
    FLOOD = "flood"
    FIRE = "fire"
    EARTHQUAKE = "earthquake"
    HURRICANE = "hurricane"
    TORNADO = "tornado"
    OTHER = "other"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DisasterStatus(str, Enum):
    REPORTED = "reported"
    INVESTIGATING = "investigating"
    VERIFIED = "verified"
    RESOLVED = "resolved"
    REJECTED = "rejected"


# Allowed moves; resolved and rejected are final
STATUS_TRANSITIONS = {
    DisasterStatus.REPORTED: {DisasterStatus.INVESTIGATING, DisasterStatus.VERIFIED, DisasterStatus.REJECTED},
    DisasterStatus.INVESTIGATING: {DisasterStatus.VERIFIED, DisasterStatus.REJECTED},
    DisasterStatus.VERIFIED: {DisasterStatus.RESOLVED},
    DisasterStatus.RESOLVED: set(),
    DisasterStatus.REJECTED: set(),
}


class ClaimStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"  # approved without payout
    REJECTED = "rejected"
    PAID = "paid"


class DisasterReport(Base):
    """Incident reported against a property"""
    __tablename__ = "disaster_reports"

    id = Column(Integer, primary_key=True, autoincrement=False)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    disaster_type = Column(String(20), nullable=False)
    severity = Column(String(10), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(200), nullable=True)
    estimated_damage = Column(BigInteger, nullable=False, default=0)
    reporter = Column(String(64), nullable=False, index=True)
    reported_at = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default=DisasterStatus.REPORTED.value, index=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    verified_at = Column(DateTime, nullable=True)
    investigator = Column(String(64), nullable=True)  # admin who last moved the status
    actual_damage = Column(BigInteger, nullable=True)
    resolution_notes = Column(Text, nullable=True)
    resolved_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<DisasterReport {self.id} property={self.property_id} ({self.disaster_type})>"


class InsuranceClaim(Base):
    """Claim against the shared insurance fund.

    approved_amount and paid_at are only set once the claim leaves PENDING
    through an approval.
    """
    __tablename__ = "insurance_claims"

    id = Column(Integer, primary_key=True, autoincrement=False)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    report_id = Column(Integer, ForeignKey("disaster_reports.id"), nullable=False, index=True)
    claimant = Column(String(64), nullable=False, index=True)
    claim_amount = Column(BigInteger, nullable=False)
    evidence = Column(Text, nullable=True)
    status = Column(String(10), nullable=False, default=ClaimStatus.PENDING.value)
    approved_amount = Column(BigInteger, nullable=True)
    submitted_at = Column(DateTime, nullable=False)
    processed_at = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<InsuranceClaim {self.id} ({self.status})>"


class DisasterReporter(Base):
    """Account allowed to file disaster reports besides the admin"""
    __tablename__ = "disaster_reporters"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account = Column(String(64), nullable=False, unique=True)
    added_at = Column(DateTime, nullable=False)


class InsurancePolicy(Base):
    """External insurance cover registered for a property (at most one per property)"""
    __tablename__ = "insurance_policies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, unique=True)
    provider = Column(String(100), nullable=False)
    policy_number = Column(String(100), nullable=False)
    coverage_amount = Column(BigInteger, nullable=False)
    deductible = Column(BigInteger, nullable=False, default=0)
    premium_paid = Column(BigInteger, nullable=False, default=0)
    expires_at = Column(DateTime, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    covered_types = Column(JSON, nullable=False)  # list of DisasterType values
    created_at = Column(DateTime, nullable=False)

    def is_in_force(self, at) -> bool:
        return self.is_active and at < self.expires_at

    def covers(self, disaster_type: str, at) -> bool:
        return self.is_in_force(at) and disaster_type in self.covered_types

    def __repr__(self):
        return f"<InsurancePolicy property={self.property_id} {self.provider} {self.policy_number}>"
