"""Platform parameter store (fees, thresholds, quorum)."""
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.exceptions import ValidationError
from estate_ledger.models.parameters import PlatformParameters
from estate_ledger.models.ledger_event import EventType
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.event_log import EventRecorder

logger = structlog.get_logger()

BPS_DENOMINATOR = 10_000
PARAMETERS_ROW_ID = 1


def split_fee(cost: int, fee_bps: int) -> tuple[int, int]:
    """Split a payment into (fee, net); the fee is floored so fee + net == cost."""
    fee = cost * fee_bps // BPS_DENOMINATOR
    return fee, cost - fee


class ParameterService:
    def __init__(self, db: AsyncSession, ctx: LedgerContext):
        self.db = db
        self.ctx = ctx

    async def get(self) -> PlatformParameters:
        params = await self.db.get(PlatformParameters, PARAMETERS_ROW_ID)
        if params is None:
            params = await self.seed()
        return params

    async def seed(self) -> PlatformParameters:
        """Create the parameters row from settings if it does not exist yet."""
        params = await self.db.get(PlatformParameters, PARAMETERS_ROW_ID)
        if params is not None:
            return params
        settings = self.ctx.settings
        params = PlatformParameters(
            id=PARAMETERS_ROW_ID,
            fee_bps=settings.fee_bps,
            fee_recipient=settings.fee_recipient,
            min_investment=settings.min_investment,
            proposal_threshold=settings.proposal_threshold,
            vote_threshold=settings.vote_threshold,
            quorum_bps=settings.quorum_bps,
        )
        self.db.add(params)
        await self.db.flush()
        return params

    async def update(
        self,
        caller: str,
        fee_bps: Optional[int] = None,
        fee_recipient: Optional[str] = None,
        min_investment: Optional[int] = None,
        proposal_threshold: Optional[int] = None,
        vote_threshold: Optional[int] = None,
        quorum_bps: Optional[int] = None,
    ) -> PlatformParameters:
        """Admin-only update of any subset of the parameters."""
        self.ctx.admin.check(caller, "change platform parameters")
        params = await self.get()
        changes = {}

        if fee_bps is not None:
            if fee_bps < 0 or fee_bps > self.ctx.settings.max_fee_bps:
                raise ValidationError(
                    f"Fee must be between 0 and {self.ctx.settings.max_fee_bps} bps",
                    fee_bps=fee_bps,
                )
            params.fee_bps = fee_bps
            changes["fee_bps"] = fee_bps
        if fee_recipient is not None:
            if not fee_recipient:
                raise ValidationError("Fee recipient is required")
            params.fee_recipient = fee_recipient
            changes["fee_recipient"] = fee_recipient
        if min_investment is not None:
            if min_investment < 0:
                raise ValidationError("Minimum investment cannot be negative")
            params.min_investment = min_investment
            changes["min_investment"] = min_investment
        if proposal_threshold is not None:
            if proposal_threshold < 0:
                raise ValidationError("Proposal threshold cannot be negative")
            params.proposal_threshold = proposal_threshold
            changes["proposal_threshold"] = proposal_threshold
        if vote_threshold is not None:
            if vote_threshold < 0:
                raise ValidationError("Vote threshold cannot be negative")
            params.vote_threshold = vote_threshold
            changes["vote_threshold"] = vote_threshold
        if quorum_bps is not None:
            if quorum_bps < 0 or quorum_bps > BPS_DENOMINATOR:
                raise ValidationError("Quorum must be between 0 and 10000 bps", quorum_bps=quorum_bps)
            params.quorum_bps = quorum_bps
            changes["quorum_bps"] = quorum_bps

        params.updated_at = self.ctx.now()
        await EventRecorder(self.db, self.ctx).record(
            EventType.PARAMETERS_UPDATED,
            account=caller,
            data=changes,
        )
        logger.info("Platform parameters updated", **changes)
        return params
