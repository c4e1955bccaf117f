"""Disaster reports and insurance claims paid from a shared fund."""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional

import structlog
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.exceptions import (
    AuthorizationError,
    InsufficientResourceError,
    NotFoundError,
    ValidationError,
)
from estate_ledger.models.disaster import (
    DisasterReport,
    DisasterReporter,
    DisasterStatus,
    DisasterType,
    InsuranceClaim,
    InsurancePolicy,
    ClaimStatus,
    Severity,
    STATUS_TRANSITIONS,
)
from estate_ledger.models.property import Property
from estate_ledger.models.ledger_event import EventType
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.event_log import EventRecorder
from estate_ledger.services.ids import next_id
from estate_ledger.services.token_ledger import TokenLedger

logger = structlog.get_logger()


@dataclass
class DisasterStatistics:
    total_reports: int
    verified_reports: int
    resolved_reports: int
    total_estimated_damage: int
    total_payouts: int
    pending_claims: int
    fund_balance: int


class DisasterRegistry:
    """
    Incident and claim bookkeeping.

    Payouts are a flat transfer to the single claimant, never pro-rata. An
    approval with a positive amount pays immediately and the claim ends up
    PAID rather than APPROVED.
    """

    def __init__(self, db: AsyncSession, ctx: LedgerContext):
        self.db = db
        self.ctx = ctx
        self.tokens = TokenLedger(db, ctx)
        self.events = EventRecorder(db, ctx)

    # Reporters

    async def is_reporter(self, account: str) -> bool:
        if self.ctx.admin.is_admin(account):
            return True
        result = await self.db.execute(select(DisasterReporter.id).where(DisasterReporter.account == account))
        return result.scalar_one_or_none() is not None

    async def add_reporter(self, caller: str, account: str) -> None:
        self.ctx.admin.check(caller, "add disaster reporters")
        result = await self.db.execute(select(DisasterReporter).where(DisasterReporter.account == account))
        if result.scalar_one_or_none() is not None:
            return
        self.db.add(DisasterReporter(account=account, added_at=self.ctx.now()))
        await self.events.record(EventType.REPORTER_ADDED, account=caller, counterparty=account)

    async def remove_reporter(self, caller: str, account: str) -> None:
        self.ctx.admin.check(caller, "remove disaster reporters")
        result = await self.db.execute(select(DisasterReporter).where(DisasterReporter.account == account))
        reporter = result.scalar_one_or_none()
        if reporter is None:
            raise NotFoundError("Account is not a reporter", account=account)
        await self.db.delete(reporter)
        await self.events.record(EventType.REPORTER_REMOVED, account=caller, counterparty=account)

    # Reports

    async def get_report(self, report_id: int) -> DisasterReport:
        report = await self.db.get(DisasterReport, report_id)
        if report is None:
            raise NotFoundError("Disaster report not found", report_id=report_id)
        return report

    async def reports_for(self, property_id: int) -> List[DisasterReport]:
        result = await self.db.execute(
            select(DisasterReport).where(DisasterReport.property_id == property_id).order_by(DisasterReport.id)
        )
        return list(result.scalars().all())

    async def list_reports(
        self,
        status: Optional[DisasterStatus] = None,
        disaster_type: Optional[DisasterType] = None,
    ) -> List[DisasterReport]:
        query = select(DisasterReport).order_by(DisasterReport.id)
        try:
            if status is not None:
                query = query.where(DisasterReport.status == DisasterStatus(status).value)
            if disaster_type is not None:
                query = query.where(DisasterReport.disaster_type == DisasterType(disaster_type).value)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def reports_by_status(self, status: DisasterStatus) -> List[DisasterReport]:
        return await self.list_reports(status=status)

    async def reports_by_type(self, disaster_type: DisasterType) -> List[DisasterReport]:
        return await self.list_reports(disaster_type=disaster_type)

    async def report_disaster(
        self,
        reporter: str,
        property_id: int,
        disaster_type: DisasterType,
        severity: Severity,
        description: str,
        location: Optional[str] = None,
        estimated_damage: int = 0,
    ) -> DisasterReport:
        if not await self.is_reporter(reporter):
            raise AuthorizationError("Caller is not an authorized reporter", caller=reporter)
        if await self.db.get(Property, property_id) is None:
            raise NotFoundError("Property not found", property_id=property_id)
        if estimated_damage < 0:
            raise ValidationError("Estimated damage cannot be negative")
        try:
            disaster_type = DisasterType(disaster_type)
            severity = Severity(severity)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        report = DisasterReport(
            id=await next_id(self.db, DisasterReport),
            property_id=property_id,
            disaster_type=disaster_type.value,
            severity=severity.value,
            description=description,
            location=location,
            estimated_damage=estimated_damage,
            reporter=reporter,
            reported_at=self.ctx.now(),
            status=DisasterStatus.REPORTED.value,
            is_verified=False,
        )
        self.db.add(report)
        await self.db.flush()

        await self.events.record(
            EventType.DISASTER_REPORTED,
            account=reporter,
            amount=estimated_damage,
            reference_id=report.id,
            reference_type="disaster_report",
            data={"property_id": property_id, "type": disaster_type.value, "severity": severity.value},
        )
        logger.info(
            "Disaster reported",
            report_id=report.id,
            property_id=property_id,
            disaster_type=disaster_type.value,
            severity=severity.value,
        )
        return report

    async def verify_disaster(self, caller: str, report_id: int) -> DisasterReport:
        """Mark a report verified so claims can be filed against it; repeat calls are no-ops."""
        self.ctx.admin.check(caller, "verify disaster reports")
        report = await self.get_report(report_id)
        if report.is_verified:
            return report
        if report.status == DisasterStatus.REJECTED.value:
            raise ValidationError("Rejected reports cannot be verified", report_id=report_id)
        report.is_verified = True
        report.verified_at = self.ctx.now()
        report.status = DisasterStatus.VERIFIED.value
        await self.events.record(
            EventType.DISASTER_VERIFIED,
            account=caller,
            reference_id=report_id,
            reference_type="disaster_report",
        )
        logger.info("Disaster verified", report_id=report_id)
        return report

    async def update_disaster_status(
        self,
        caller: str,
        report_id: int,
        new_status: DisasterStatus,
        notes: Optional[str] = None,
        actual_damage: Optional[int] = None,
    ) -> DisasterReport:
        """
        Move a report along reported -> investigating -> verified -> resolved.

        A report may skip straight to verified, and may be rejected until it is
        verified. Moving to verified has the same effect as ``verify_disaster``.
        Resolved and rejected are final and stamp ``resolved_at``.
        """
        self.ctx.admin.check(caller, "update disaster status")
        report = await self.get_report(report_id)
        try:
            new_status = DisasterStatus(new_status)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        old_status = DisasterStatus(report.status)
        if new_status not in STATUS_TRANSITIONS[old_status]:
            raise ValidationError(
                "Status change is not allowed",
                report_id=report_id,
                status=old_status.value,
                requested_status=new_status.value,
            )
        if actual_damage is not None and actual_damage < 0:
            raise ValidationError("Actual damage cannot be negative", actual_damage=actual_damage)

        now = self.ctx.now()
        report.status = new_status.value
        report.investigator = caller
        if actual_damage is not None:
            report.actual_damage = actual_damage
        if notes is not None:
            report.resolution_notes = notes
        if new_status == DisasterStatus.VERIFIED:
            report.is_verified = True
            report.verified_at = now
        elif new_status in (DisasterStatus.RESOLVED, DisasterStatus.REJECTED):
            report.resolved_at = now

        await self.events.record(
            EventType.DISASTER_STATUS_UPDATED,
            account=caller,
            amount=actual_damage,
            reference_id=report_id,
            reference_type="disaster_report",
            data={"old_status": old_status.value, "new_status": new_status.value},
            notes=notes,
        )
        logger.info(
            "Disaster status updated",
            report_id=report_id,
            old_status=old_status.value,
            new_status=new_status.value,
        )
        return report

    # Policies

    async def get_insurance_policy(self, property_id: int) -> InsurancePolicy:
        result = await self.db.execute(select(InsurancePolicy).where(InsurancePolicy.property_id == property_id))
        policy = result.scalar_one_or_none()
        if policy is None:
            raise NotFoundError("No insurance policy for property", property_id=property_id)
        return policy

    async def add_insurance_policy(
        self,
        caller: str,
        property_id: int,
        provider: str,
        policy_number: str,
        coverage_amount: int,
        deductible: int,
        premium_paid: int,
        expires_at: datetime,
        covered_types: Iterable[DisasterType],
    ) -> InsurancePolicy:
        """Register external cover for a property, replacing any earlier policy."""
        self.ctx.admin.check(caller, "add insurance policies")
        if await self.db.get(Property, property_id) is None:
            raise NotFoundError("Property not found", property_id=property_id)
        if not provider or not policy_number:
            raise ValidationError("Provider and policy number are required")
        if coverage_amount <= 0:
            raise ValidationError("Coverage must be positive", coverage_amount=coverage_amount)
        if deductible < 0 or deductible > coverage_amount:
            raise ValidationError(
                "Deductible must be between zero and the coverage amount",
                deductible=deductible,
                coverage_amount=coverage_amount,
            )
        if premium_paid < 0:
            raise ValidationError("Premium cannot be negative", premium_paid=premium_paid)
        if expires_at.tzinfo is not None:
            expires_at = expires_at.astimezone(timezone.utc).replace(tzinfo=None)
        now = self.ctx.now()
        if expires_at <= now:
            raise ValidationError("Policy expiry must be in the future", expires_at=expires_at.isoformat())
        try:
            types = []
            for disaster_type in covered_types:
                value = DisasterType(disaster_type).value
                if value not in types:
                    types.append(value)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if not types:
            raise ValidationError("A policy must cover at least one disaster type")

        result = await self.db.execute(select(InsurancePolicy).where(InsurancePolicy.property_id == property_id))
        policy = result.scalar_one_or_none()
        if policy is None:
            policy = InsurancePolicy(property_id=property_id, created_at=now)
            self.db.add(policy)
        policy.provider = provider
        policy.policy_number = policy_number
        policy.coverage_amount = coverage_amount
        policy.deductible = deductible
        policy.premium_paid = premium_paid
        policy.expires_at = expires_at
        policy.covered_types = types
        policy.is_active = True

        await self.events.record(
            EventType.INSURANCE_POLICY_ADDED,
            account=caller,
            amount=coverage_amount,
            reference_id=property_id,
            reference_type="property",
            data={"provider": provider, "policy_number": policy_number, "covered_types": types},
        )
        logger.info("Insurance policy added", property_id=property_id, provider=provider, coverage=coverage_amount)
        return policy

    async def policy_covers(self, property_id: int, disaster_type: DisasterType) -> bool:
        result = await self.db.execute(select(InsurancePolicy).where(InsurancePolicy.property_id == property_id))
        policy = result.scalar_one_or_none()
        if policy is None:
            return False
        try:
            disaster_type = DisasterType(disaster_type)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        return policy.covers(disaster_type.value, self.ctx.now())

    # Fund

    async def fund_balance(self) -> int:
        return await self.tokens.balance_of(self.ctx.insurance_fund_account)

    async def deposit_insurance_funds(self, depositor: str, amount: int) -> int:
        if amount <= 0:
            raise ValidationError("Deposit must be positive", amount=amount)
        fund = self.ctx.insurance_fund_account
        await self.tokens.transfer(depositor, fund, amount)
        await self.events.record(
            EventType.INSURANCE_DEPOSIT,
            account=depositor,
            counterparty=fund,
            amount=amount,
        )
        balance = await self.fund_balance()
        logger.info("Insurance fund deposit", depositor=depositor, amount=amount, fund_balance=balance)
        return balance

    # Claims

    async def get_claim(self, claim_id: int) -> InsuranceClaim:
        claim = await self.db.get(InsuranceClaim, claim_id)
        if claim is None:
            raise NotFoundError("Insurance claim not found", claim_id=claim_id)
        return claim

    async def claims_for(self, property_id: int) -> List[InsuranceClaim]:
        result = await self.db.execute(
            select(InsuranceClaim).where(InsuranceClaim.property_id == property_id).order_by(InsuranceClaim.id)
        )
        return list(result.scalars().all())

    async def submit_claim(
        self,
        claimant: str,
        property_id: int,
        report_id: int,
        claim_amount: int,
        evidence: Optional[str] = None,
    ) -> InsuranceClaim:
        if claim_amount <= 0:
            raise ValidationError("Claim amount must be positive", claim_amount=claim_amount)
        report = await self.get_report(report_id)
        if not report.is_verified:
            raise ValidationError("Disaster report is not verified", report_id=report_id)
        if report.property_id != property_id:
            raise ValidationError(
                "Disaster report belongs to a different property",
                report_id=report_id,
                property_id=property_id,
            )

        claim = InsuranceClaim(
            id=await next_id(self.db, InsuranceClaim),
            property_id=property_id,
            report_id=report_id,
            claimant=claimant,
            claim_amount=claim_amount,
            evidence=evidence,
            status=ClaimStatus.PENDING.value,
            submitted_at=self.ctx.now(),
        )
        self.db.add(claim)
        await self.db.flush()

        await self.events.record(
            EventType.CLAIM_SUBMITTED,
            account=claimant,
            amount=claim_amount,
            reference_id=claim.id,
            reference_type="insurance_claim",
            data={"property_id": property_id, "report_id": report_id},
        )
        logger.info("Insurance claim submitted", claim_id=claim.id, claimant=claimant, amount=claim_amount)
        return claim

    async def process_claim(
        self,
        caller: str,
        claim_id: int,
        new_status: ClaimStatus,
        approved_amount: int = 0,
    ) -> InsuranceClaim:
        self.ctx.admin.check(caller, "process insurance claims")
        claim = await self.get_claim(claim_id)
        if claim.status != ClaimStatus.PENDING.value:
            raise ValidationError("Claim is not pending", claim_id=claim_id, status=claim.status)
        try:
            new_status = ClaimStatus(new_status)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if new_status not in (ClaimStatus.APPROVED, ClaimStatus.REJECTED):
            raise ValidationError("Claims can only be approved or rejected", status=new_status.value)
        if approved_amount < 0:
            raise ValidationError("Approved amount cannot be negative")
        if approved_amount > claim.claim_amount:
            raise ValidationError(
                "Approved amount exceeds the amount claimed",
                claim_amount=claim.claim_amount,
                approved_amount=approved_amount,
            )

        now = self.ctx.now()
        claim.processed_at = now

        if new_status == ClaimStatus.REJECTED:
            claim.status = ClaimStatus.REJECTED.value
        elif approved_amount > 0:
            fund = self.ctx.insurance_fund_account
            balance = await self.fund_balance()
            if balance < approved_amount:
                raise InsufficientResourceError(
                    "Insurance fund is below the approved amount",
                    fund_balance=balance,
                    approved_amount=approved_amount,
                )
            await self.tokens.transfer(fund, claim.claimant, approved_amount)
            claim.approved_amount = approved_amount
            claim.paid_at = now
            # Approval with a payout settles immediately
            claim.status = ClaimStatus.PAID.value
        else:
            claim.approved_amount = 0
            claim.status = ClaimStatus.APPROVED.value

        await self.events.record(
            EventType.CLAIM_PROCESSED,
            account=caller,
            counterparty=claim.claimant,
            amount=claim.approved_amount,
            reference_id=claim.id,
            reference_type="insurance_claim",
            data={"requested_status": new_status.value, "status": claim.status},
        )
        logger.info(
            "Insurance claim processed",
            claim_id=claim.id,
            status=claim.status,
            approved_amount=claim.approved_amount,
        )
        return claim

    async def statistics(self) -> DisasterStatistics:
        reports = await self.db.execute(
            select(
                func.count(DisasterReport.id),
                func.coalesce(func.sum(DisasterReport.estimated_damage), 0),
            )
        )
        total_reports, total_damage = reports.one()
        verified = await self.db.execute(
            select(func.count(DisasterReport.id)).where(DisasterReport.is_verified.is_(True))
        )
        resolved = await self.db.execute(
            select(func.count(DisasterReport.id)).where(DisasterReport.status == DisasterStatus.RESOLVED.value)
        )
        payouts = await self.db.execute(
            select(func.coalesce(func.sum(InsuranceClaim.approved_amount), 0)).where(
                InsuranceClaim.status == ClaimStatus.PAID.value
            )
        )
        pending = await self.db.execute(
            select(func.count(InsuranceClaim.id)).where(InsuranceClaim.status == ClaimStatus.PENDING.value)
        )
        return DisasterStatistics(
            total_reports=total_reports,
            verified_reports=verified.scalar() or 0,
            resolved_reports=resolved.scalar() or 0,
            total_estimated_damage=total_damage,
            total_payouts=payouts.scalar() or 0,
            pending_claims=pending.scalar() or 0,
            fund_balance=await self.fund_balance(),
        )
