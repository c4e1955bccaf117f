"""Unit tests for disaster reporting and insurance claims"""
import pytest
from datetime import timedelta

from estate_ledger.exceptions import (
    AuthorizationError,
    InsufficientResourceError,
    NotFoundError,
    ValidationError,
)
from estate_ledger.models.disaster import ClaimStatus, DisasterStatus, DisasterType, Severity
from estate_ledger.services.disaster_registry import DisasterRegistry

from tests.conftest import ADMIN, ALICE, BOB, CAROL, INSURANCE_FUND


@pytest.fixture
def report(ledger):
    async def _report(property_id, reporter=ADMIN, verify=True, estimated_damage=50_000):
        async with ledger.transaction() as db:
            registry = DisasterRegistry(db, ledger.ctx)
            report = await registry.report_disaster(
                reporter,
                property_id,
                DisasterType.FLOOD,
                Severity.HIGH,
                "Basement flooded",
                location="Riverside",
                estimated_damage=estimated_damage,
            )
            if verify:
                await registry.verify_disaster(ADMIN, report.id)
            return report.id

    return _report


@pytest.fixture
def deposit(ledger, fund):
    async def _deposit(amount, depositor=CAROL):
        await fund(depositor, amount)
        async with ledger.transaction() as db:
            return await DisasterRegistry(db, ledger.ctx).deposit_insurance_funds(depositor, amount)

    return _deposit


@pytest.fixture
def submit(ledger):
    async def _submit(property_id, report_id, claim_amount, claimant=ALICE):
        async with ledger.transaction() as db:
            claim = await DisasterRegistry(db, ledger.ctx).submit_claim(
                claimant, property_id, report_id, claim_amount, evidence="ipfs://photos"
            )
            return claim.id

    return _submit


@pytest.fixture
def process(ledger):
    async def _process(claim_id, status, approved_amount=0, caller=ADMIN):
        async with ledger.transaction() as db:
            claim = await DisasterRegistry(db, ledger.ctx).process_claim(caller, claim_id, status, approved_amount)
            return claim.status, claim.approved_amount

    return _process


class TestReports:
    @pytest.mark.asyncio
    async def test_only_reporters_can_report(self, ledger, verified_property, report):
        property_id = await verified_property()
        with pytest.raises(AuthorizationError):
            await report(property_id, reporter=BOB)

        async with ledger.transaction() as db:
            await DisasterRegistry(db, ledger.ctx).add_reporter(ADMIN, BOB)
        assert await report(property_id, reporter=BOB, verify=False) == 1

        async with ledger.transaction() as db:
            await DisasterRegistry(db, ledger.ctx).remove_reporter(ADMIN, BOB)
        with pytest.raises(AuthorizationError):
            await report(property_id, reporter=BOB)

    @pytest.mark.asyncio
    async def test_report_unknown_property(self, ledger, report):
        with pytest.raises(NotFoundError):
            await report(7)

    @pytest.mark.asyncio
    async def test_verify_is_idempotent(self, ledger, verified_property, report):
        property_id = await verified_property()
        report_id = await report(property_id)
        async with ledger.transaction() as db:
            registry = DisasterRegistry(db, ledger.ctx)
            first = await registry.get_report(report_id)
            verified_at = first.verified_at
            again = await registry.verify_disaster(ADMIN, report_id)
            assert again.is_verified
            assert again.verified_at == verified_at


class TestClaims:
    @pytest.mark.asyncio
    async def test_approved_claim_is_paid_from_fund(self, ledger, verified_property, report, deposit, submit, process, balance_of):
        property_id = await verified_property()
        report_id = await report(property_id)
        assert await deposit(2_000) == 2_000
        claim_id = await submit(property_id, report_id, 800)

        assert await process(claim_id, ClaimStatus.APPROVED, 500) == (ClaimStatus.PAID.value, 500)
        assert await balance_of(INSURANCE_FUND) == 1_500
        assert await balance_of(ALICE) == 500

        async with ledger.transaction() as db:
            claim = await DisasterRegistry(db, ledger.ctx).get_claim(claim_id)
            assert claim.paid_at is not None
            assert claim.processed_at is not None

    @pytest.mark.asyncio
    async def test_approved_without_amount_stays_approved(self, ledger, verified_property, report, deposit, submit, process, balance_of):
        property_id = await verified_property()
        report_id = await report(property_id)
        await deposit(1_000)
        claim_id = await submit(property_id, report_id, 800)
        assert await process(claim_id, ClaimStatus.APPROVED, 0) == (ClaimStatus.APPROVED.value, 0)
        assert await balance_of(INSURANCE_FUND) == 1_000

    @pytest.mark.asyncio
    async def test_rejected_claim(self, ledger, verified_property, report, submit, process):
        property_id = await verified_property()
        report_id = await report(property_id)
        claim_id = await submit(property_id, report_id, 800)
        status, _ = await process(claim_id, ClaimStatus.REJECTED)
        assert status == ClaimStatus.REJECTED.value

        with pytest.raises(ValidationError):
            await process(claim_id, ClaimStatus.APPROVED, 100)

    @pytest.mark.asyncio
    async def test_payout_exceeding_fund(self, ledger, verified_property, report, deposit, submit, process, balance_of):
        property_id = await verified_property()
        report_id = await report(property_id)
        await deposit(300)
        claim_id = await submit(property_id, report_id, 800)
        with pytest.raises(InsufficientResourceError):
            await process(claim_id, ClaimStatus.APPROVED, 500)
        assert await balance_of(INSURANCE_FUND) == 300
        async with ledger.transaction() as db:
            claim = await DisasterRegistry(db, ledger.ctx).get_claim(claim_id)
            assert claim.status == ClaimStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_claim_requires_verified_report(self, ledger, verified_property, report, submit):
        property_id = await verified_property()
        report_id = await report(property_id, verify=False)
        with pytest.raises(ValidationError):
            await submit(property_id, report_id, 100)

    @pytest.mark.asyncio
    async def test_claim_must_match_report_property(self, ledger, verified_property, report, submit):
        first = await verified_property()
        second = await verified_property()
        report_id = await report(first)
        with pytest.raises(ValidationError):
            await submit(second, report_id, 100)

    @pytest.mark.asyncio
    async def test_processing_requires_admin(self, ledger, verified_property, report, submit, process):
        property_id = await verified_property()
        report_id = await report(property_id)
        claim_id = await submit(property_id, report_id, 100)
        with pytest.raises(AuthorizationError):
            await process(claim_id, ClaimStatus.APPROVED, 100, caller=BOB)

    @pytest.mark.asyncio
    async def test_approval_capped_at_claim_amount(self, ledger, verified_property, report, deposit, submit, process, balance_of):
        property_id = await verified_property()
        report_id = await report(property_id)
        await deposit(5_000)
        claim_id = await submit(property_id, report_id, 800)
        with pytest.raises(ValidationError):
            await process(claim_id, ClaimStatus.APPROVED, 801)
        assert await balance_of(INSURANCE_FUND) == 5_000
        assert await process(claim_id, ClaimStatus.APPROVED, 800) == (ClaimStatus.PAID.value, 800)

    @pytest.mark.asyncio
    async def test_cannot_process_as_paid(self, ledger, verified_property, report, submit, process):
        property_id = await verified_property()
        report_id = await report(property_id)
        claim_id = await submit(property_id, report_id, 100)
        with pytest.raises(ValidationError):
            await process(claim_id, ClaimStatus.PAID, 100)


@pytest.fixture
def update_status(ledger):
    async def _update_status(report_id, status, notes=None, actual_damage=None, caller=ADMIN):
        async with ledger.transaction() as db:
            report = await DisasterRegistry(db, ledger.ctx).update_disaster_status(
                caller, report_id, status, notes=notes, actual_damage=actual_damage
            )
            return report.status

    return _update_status


class TestStatusLifecycle:
    @pytest.mark.asyncio
    async def test_full_lifecycle(self, ledger, clock, verified_property, report, update_status):
        property_id = await verified_property()
        report_id = await report(property_id, verify=False)

        assert await update_status(report_id, DisasterStatus.INVESTIGATING) == "investigating"
        async with ledger.transaction() as db:
            assert not (await DisasterRegistry(db, ledger.ctx).get_report(report_id)).is_verified

        assert await update_status(report_id, DisasterStatus.VERIFIED, actual_damage=42_000) == "verified"
        clock.advance(days=30)
        assert await update_status(report_id, DisasterStatus.RESOLVED, notes="Basement rebuilt") == "resolved"

        async with ledger.transaction() as db:
            resolved = await DisasterRegistry(db, ledger.ctx).get_report(report_id)
            assert resolved.is_verified
            assert resolved.investigator == ADMIN
            assert resolved.actual_damage == 42_000
            assert resolved.resolution_notes == "Basement rebuilt"
            assert (resolved.resolved_at - resolved.verified_at).days == 30

        with pytest.raises(ValidationError):
            await update_status(report_id, DisasterStatus.INVESTIGATING)

    @pytest.mark.asyncio
    async def test_verify_moves_status(self, ledger, verified_property, report):
        property_id = await verified_property()
        report_id = await report(property_id)
        async with ledger.transaction() as db:
            assert (await DisasterRegistry(db, ledger.ctx).get_report(report_id)).status == "verified"

    @pytest.mark.asyncio
    async def test_rejected_report_is_final(self, ledger, verified_property, report, update_status, submit):
        property_id = await verified_property()
        report_id = await report(property_id, verify=False)
        assert await update_status(report_id, DisasterStatus.REJECTED, notes="Duplicate") == "rejected"

        with pytest.raises(ValidationError):
            async with ledger.transaction() as db:
                await DisasterRegistry(db, ledger.ctx).verify_disaster(ADMIN, report_id)
        with pytest.raises(ValidationError):
            await update_status(report_id, DisasterStatus.VERIFIED)
        with pytest.raises(ValidationError):
            await submit(property_id, report_id, 100)

    @pytest.mark.asyncio
    async def test_cannot_resolve_unverified(self, ledger, verified_property, report, update_status):
        property_id = await verified_property()
        report_id = await report(property_id, verify=False)
        with pytest.raises(ValidationError):
            await update_status(report_id, DisasterStatus.RESOLVED)
        with pytest.raises(ValidationError):
            await update_status(report_id, DisasterStatus.VERIFIED, actual_damage=-1)
        with pytest.raises(AuthorizationError):
            await update_status(report_id, DisasterStatus.INVESTIGATING, caller=BOB)

    @pytest.mark.asyncio
    async def test_filter_by_status_and_type(self, ledger, verified_property, report, update_status):
        property_id = await verified_property()
        flood = await report(property_id)
        pending = await report(property_id, verify=False)
        async with ledger.transaction() as db:
            fire = await DisasterRegistry(db, ledger.ctx).report_disaster(
                ADMIN, property_id, DisasterType.FIRE, Severity.LOW, "Kitchen fire"
            )
            fire_id = fire.id
        await update_status(flood, DisasterStatus.RESOLVED)

        async with ledger.transaction() as db:
            registry = DisasterRegistry(db, ledger.ctx)
            assert [r.id for r in await registry.reports_by_status(DisasterStatus.REPORTED)] == [pending, fire_id]
            assert [r.id for r in await registry.reports_by_status(DisasterStatus.RESOLVED)] == [flood]
            assert [r.id for r in await registry.reports_by_type(DisasterType.FIRE)] == [fire_id]
            assert [r.id for r in await registry.reports_by_type(DisasterType.FLOOD)] == [flood, pending]
            assert await registry.list_reports(DisasterStatus.RESOLVED, DisasterType.FIRE) == []
            with pytest.raises(ValidationError):
                await registry.reports_by_status("closed")


@pytest.fixture
def add_policy(ledger, clock):
    async def _add_policy(property_id, coverage_amount=100_000, deductible=5_000, days=365,
                          covered_types=(DisasterType.FLOOD, DisasterType.FIRE), caller=ADMIN):
        async with ledger.transaction() as db:
            policy = await DisasterRegistry(db, ledger.ctx).add_insurance_policy(
                caller,
                property_id,
                provider="Harbour Mutual",
                policy_number="HM-001",
                coverage_amount=coverage_amount,
                deductible=deductible,
                premium_paid=1_200,
                expires_at=clock() + timedelta(days=days),
                covered_types=covered_types,
            )
            return policy.covered_types

    return _add_policy


class TestPolicies:
    @pytest.mark.asyncio
    async def test_add_and_get_policy(self, ledger, verified_property, add_policy):
        property_id = await verified_property()
        assert await add_policy(property_id, covered_types=[DisasterType.FLOOD, DisasterType.FLOOD]) == ["flood"]

        async with ledger.transaction() as db:
            registry = DisasterRegistry(db, ledger.ctx)
            policy = await registry.get_insurance_policy(property_id)
            assert policy.coverage_amount == 100_000
            assert policy.deductible == 5_000
            assert policy.is_active
            assert await registry.policy_covers(property_id, DisasterType.FLOOD)
            assert not await registry.policy_covers(property_id, DisasterType.EARTHQUAKE)

    @pytest.mark.asyncio
    async def test_policy_replaced_per_property(self, ledger, verified_property, add_policy):
        property_id = await verified_property()
        await add_policy(property_id)
        await add_policy(property_id, coverage_amount=250_000, covered_types=[DisasterType.EARTHQUAKE])
        async with ledger.transaction() as db:
            policy = await DisasterRegistry(db, ledger.ctx).get_insurance_policy(property_id)
            assert policy.coverage_amount == 250_000
            assert policy.covered_types == ["earthquake"]

    @pytest.mark.asyncio
    async def test_policy_expires(self, ledger, clock, verified_property, add_policy):
        property_id = await verified_property()
        await add_policy(property_id, days=10)
        clock.advance(days=10)
        async with ledger.transaction() as db:
            assert not await DisasterRegistry(db, ledger.ctx).policy_covers(property_id, DisasterType.FLOOD)

    @pytest.mark.asyncio
    async def test_invalid_policies(self, ledger, verified_property, add_policy):
        property_id = await verified_property()
        with pytest.raises(AuthorizationError):
            await add_policy(property_id, caller=BOB)
        with pytest.raises(NotFoundError):
            await add_policy(99)
        with pytest.raises(ValidationError):
            await add_policy(property_id, deductible=100_001)
        with pytest.raises(ValidationError):
            await add_policy(property_id, days=0)
        with pytest.raises(ValidationError):
            await add_policy(property_id, covered_types=[])

        async with ledger.transaction() as db:
            registry = DisasterRegistry(db, ledger.ctx)
            with pytest.raises(NotFoundError):
                await registry.get_insurance_policy(property_id)
            assert not await registry.policy_covers(property_id, DisasterType.FLOOD)


class TestStatistics:
    @pytest.mark.asyncio
    async def test_statistics(self, ledger, verified_property, report, deposit, submit, process):
        property_id = await verified_property()
        first = await report(property_id, estimated_damage=10_000)
        await report(property_id, verify=False, estimated_damage=5_000)
        await deposit(1_000)
        paid = await submit(property_id, first, 400)
        await submit(property_id, first, 900)
        await process(paid, ClaimStatus.APPROVED, 400)

        async with ledger.transaction() as db:
            stats = await DisasterRegistry(db, ledger.ctx).statistics()
        assert stats.total_reports == 2
        assert stats.verified_reports == 1
        assert stats.resolved_reports == 0
        assert stats.total_estimated_damage == 15_000
        assert stats.total_payouts == 400
        assert stats.pending_claims == 1
        assert stats.fund_balance == 600
