"""Disaster reporting and insurance API endpoints"""
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from estate_ledger.api.deps import get_db, get_ctx
from estate_ledger.schemas.disaster import (
    DisasterReportResponse,
    ReportDisasterRequest,
    UpdateDisasterStatusRequest,
    InsurancePolicyRequest,
    InsurancePolicyResponse,
    PolicyCoverageResponse,
    ReporterRequest,
    CallerRequest,
    DepositRequest,
    FundResponse,
    InsuranceClaimResponse,
    SubmitClaimRequest,
    ProcessClaimRequest,
    DisasterStatisticsResponse,
)
from estate_ledger.models.disaster import DisasterStatus, DisasterType, InsurancePolicy
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.disaster_registry import DisasterRegistry

router = APIRouter()


# Reporters

@router.post("/reporters")
async def add_reporter(request: ReporterRequest, db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    await DisasterRegistry(db, ctx).add_reporter(request.caller, request.account)
    return {"success": True, "account": request.account}


@router.post("/reporters/remove")
async def remove_reporter(request: ReporterRequest, db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    await DisasterRegistry(db, ctx).remove_reporter(request.caller, request.account)
    return {"success": True, "account": request.account}


# Reports

@router.post("/reports", response_model=DisasterReportResponse)
async def report_disaster(
    request: ReportDisasterRequest,
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    """File an incident against a property (authorized reporters only)"""
    report = await DisasterRegistry(db, ctx).report_disaster(
        reporter=request.caller,
        property_id=request.property_id,
        disaster_type=request.disaster_type,
        severity=request.severity,
        description=request.description,
        location=request.location,
        estimated_damage=request.estimated_damage,
    )
    return DisasterReportResponse.model_validate(report)


@router.get("/reports", response_model=List[DisasterReportResponse])
async def list_reports(
    status: Optional[DisasterStatus] = Query(None),
    disaster_type: Optional[DisasterType] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    """All reports, optionally filtered by lifecycle status and disaster type"""
    reports = await DisasterRegistry(db, ctx).list_reports(status=status, disaster_type=disaster_type)
    return [DisasterReportResponse.model_validate(r) for r in reports]


@router.get("/reports/{report_id}", response_model=DisasterReportResponse)
async def get_report(
    report_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    report = await DisasterRegistry(db, ctx).get_report(report_id)
    return DisasterReportResponse.model_validate(report)


@router.post("/reports/{report_id}/verify", response_model=DisasterReportResponse)
async def verify_report(
    request: CallerRequest,
    report_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    report = await DisasterRegistry(db, ctx).verify_disaster(request.caller, report_id)
    return DisasterReportResponse.model_validate(report)


@router.post("/reports/{report_id}/status", response_model=DisasterReportResponse)
async def update_report_status(
    request: UpdateDisasterStatusRequest,
    report_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    report = await DisasterRegistry(db, ctx).update_disaster_status(
        request.caller,
        report_id,
        request.status,
        notes=request.notes,
        actual_damage=request.actual_damage,
    )
    return DisasterReportResponse.model_validate(report)


@router.get("/properties/{property_id}/reports", response_model=List[DisasterReportResponse])
async def list_reports_for_property(
    property_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    reports = await DisasterRegistry(db, ctx).reports_for(property_id)
    return [DisasterReportResponse.model_validate(r) for r in reports]


# Insurance policies

def _policy_to_response(policy: InsurancePolicy, ctx: LedgerContext) -> InsurancePolicyResponse:
    response = InsurancePolicyResponse.model_validate(policy)
    response.in_force = policy.is_in_force(ctx.now())
    return response


@router.post("/policies", response_model=InsurancePolicyResponse)
async def add_policy(
    request: InsurancePolicyRequest,
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    """Register external cover for a property; replaces any existing policy"""
    policy = await DisasterRegistry(db, ctx).add_insurance_policy(
        caller=request.caller,
        property_id=request.property_id,
        provider=request.provider,
        policy_number=request.policy_number,
        coverage_amount=request.coverage_amount,
        deductible=request.deductible,
        premium_paid=request.premium_paid,
        expires_at=request.expires_at,
        covered_types=request.covered_types,
    )
    return _policy_to_response(policy, ctx)


@router.get("/properties/{property_id}/policy", response_model=InsurancePolicyResponse)
async def get_policy(
    property_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    policy = await DisasterRegistry(db, ctx).get_insurance_policy(property_id)
    return _policy_to_response(policy, ctx)


@router.get("/properties/{property_id}/policy/covers", response_model=PolicyCoverageResponse)
async def get_policy_coverage(
    property_id: int = Path(...),
    disaster_type: DisasterType = Query(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    covered = await DisasterRegistry(db, ctx).policy_covers(property_id, disaster_type)
    return PolicyCoverageResponse(property_id=property_id, disaster_type=disaster_type, covered=covered)


# Insurance fund

@router.get("/fund", response_model=FundResponse)
async def get_fund(db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    balance = await DisasterRegistry(db, ctx).fund_balance()
    return FundResponse(account=ctx.insurance_fund_account, balance=balance)


@router.post("/fund/deposit", response_model=FundResponse)
async def deposit_funds(request: DepositRequest, db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    """Move tokens from the caller into the insurance fund"""
    balance = await DisasterRegistry(db, ctx).deposit_insurance_funds(request.caller, request.amount)
    return FundResponse(account=ctx.insurance_fund_account, balance=balance)


# Claims

@router.post("/claims", response_model=InsuranceClaimResponse)
async def submit_claim(
    request: SubmitClaimRequest,
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    claim = await DisasterRegistry(db, ctx).submit_claim(
        claimant=request.caller,
        property_id=request.property_id,
        report_id=request.report_id,
        claim_amount=request.claim_amount,
        evidence=request.evidence,
    )
    return InsuranceClaimResponse.model_validate(claim)


@router.get("/claims/{claim_id}", response_model=InsuranceClaimResponse)
async def get_claim(
    claim_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    claim = await DisasterRegistry(db, ctx).get_claim(claim_id)
    return InsuranceClaimResponse.model_validate(claim)


@router.post("/claims/{claim_id}/process", response_model=InsuranceClaimResponse)
async def process_claim(
    request: ProcessClaimRequest,
    claim_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    """Approve or reject a pending claim; a positive approval pays out at once"""
    claim = await DisasterRegistry(db, ctx).process_claim(
        request.caller, claim_id, request.status, request.approved_amount
    )
    return InsuranceClaimResponse.model_validate(claim)


@router.get("/properties/{property_id}/claims", response_model=List[InsuranceClaimResponse])
async def list_claims_for_property(
    property_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    ctx: LedgerContext = Depends(get_ctx),
):
    claims = await DisasterRegistry(db, ctx).claims_for(property_id)
    return [InsuranceClaimResponse.model_validate(c) for c in claims]


@router.get("/statistics", response_model=DisasterStatisticsResponse)
async def get_statistics(db: AsyncSession = Depends(get_db), ctx: LedgerContext = Depends(get_ctx)):
    stats = await DisasterRegistry(db, ctx).statistics()
    return DisasterStatisticsResponse(**stats.__dict__)
