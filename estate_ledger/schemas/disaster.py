"""Disaster and insurance schemas"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import List, Optional

from estate_ledger.models.disaster import ClaimStatus, DisasterStatus, DisasterType, Severity


class DisasterReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    property_id: int
    disaster_type: DisasterType
    severity: Severity
    description: str
    location: Optional[str] = None
    estimated_damage: int
    reporter: str
    reported_at: datetime
    status: DisasterStatus
    is_verified: bool
    verified_at: Optional[datetime] = None
    investigator: Optional[str] = None
    actual_damage: Optional[int] = None
    resolution_notes: Optional[str] = None
    resolved_at: Optional[datetime] = None


class ReportDisasterRequest(BaseModel):
    caller: str
    property_id: int
    disaster_type: DisasterType
    severity: Severity = Severity.MEDIUM
    description: str
    location: Optional[str] = None
    estimated_damage: int = Field(default=0, ge=0)


class UpdateDisasterStatusRequest(BaseModel):
    caller: str
    status: DisasterStatus
    notes: Optional[str] = None
    actual_damage: Optional[int] = Field(default=None, ge=0)


class InsurancePolicyRequest(BaseModel):
    caller: str
    property_id: int
    provider: str = Field(min_length=1)
    policy_number: str = Field(min_length=1)
    coverage_amount: int = Field(gt=0)
    deductible: int = Field(default=0, ge=0)
    premium_paid: int = Field(default=0, ge=0)
    expires_at: datetime
    covered_types: List[DisasterType] = Field(min_length=1)


class InsurancePolicyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    property_id: int
    provider: str
    policy_number: str
    coverage_amount: int
    deductible: int
    premium_paid: int
    expires_at: datetime
    is_active: bool
    covered_types: List[DisasterType]
    in_force: bool = False


class PolicyCoverageResponse(BaseModel):
    property_id: int
    disaster_type: DisasterType
    covered: bool


class ReporterRequest(BaseModel):
    caller: str
    account: str


class CallerRequest(BaseModel):
    caller: str


class DepositRequest(BaseModel):
    caller: str
    amount: int = Field(gt=0)


class FundResponse(BaseModel):
    account: str
    balance: int


class InsuranceClaimResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    property_id: int
    report_id: int
    claimant: str
    claim_amount: int
    evidence: Optional[str] = None
    status: ClaimStatus
    approved_amount: Optional[int] = None
    submitted_at: datetime
    processed_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None


class SubmitClaimRequest(BaseModel):
    caller: str
    property_id: int
    report_id: int
    claim_amount: int = Field(gt=0)
    evidence: Optional[str] = None


class ProcessClaimRequest(BaseModel):
    caller: str
    status: ClaimStatus
    approved_amount: int = Field(default=0, ge=0)


class DisasterStatisticsResponse(BaseModel):
    total_reports: int
    verified_reports: int
    resolved_reports: int
    total_estimated_damage: int
    total_payouts: int
    pending_claims: int
    fund_balance: int
