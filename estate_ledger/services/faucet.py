"""Self-service token faucet for demo deployments."""
from datetime import timedelta

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.exceptions import ValidationError
from estate_ledger.models.token import FaucetClaim
from estate_ledger.models.ledger_event import EventType
from estate_ledger.services.context import LedgerContext
from estate_ledger.services.event_log import EventRecorder
from estate_ledger.services.token_ledger import TokenLedger

logger = structlog.get_logger()


class Faucet:
    """Mints a fixed amount per account, at most once per cooldown window.

    Disabled unless ``faucet_enabled`` is set; the supply cap still applies.
    """

    def __init__(self, db: AsyncSession, ctx: LedgerContext):
        self.db = db
        self.ctx = ctx
        self.tokens = TokenLedger(db, ctx)

    async def claim(self, account: str) -> int:
        settings = self.ctx.settings
        if not settings.faucet_enabled:
            raise ValidationError("Faucet is disabled")

        now = self.ctx.now()
        result = await self.db.execute(select(FaucetClaim).where(FaucetClaim.account == account))
        claim = result.scalar_one_or_none()
        if claim is not None:
            available_at = claim.last_claimed_at + timedelta(seconds=settings.faucet_cooldown_seconds)
            if now < available_at:
                raise ValidationError(
                    "Faucet cooldown has not elapsed",
                    account=account,
                    available_at=available_at.isoformat(),
                )
        else:
            claim = FaucetClaim(account=account, last_claimed_at=now, total_claimed=0)
            self.db.add(claim)

        amount = settings.faucet_amount
        await self.tokens.issue(self.ctx.admin.address, account, amount, record=False)
        claim.last_claimed_at = now
        claim.total_claimed += amount

        await EventRecorder(self.db, self.ctx).record(
            EventType.FAUCET_CLAIM,
            account=account,
            amount=amount,
        )
        logger.info("Faucet claim", account=account, amount=amount)
        return amount
