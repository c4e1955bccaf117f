"""Event recorder for observability records."""
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from estate_ledger.models.ledger_event import LedgerEvent, EventType
from estate_ledger.services.context import LedgerContext

logger = structlog.get_logger()


class EventRecorder:
    """Writes ledger events inside the caller's transaction."""

    def __init__(self, db: AsyncSession, ctx: LedgerContext):
        self.db = db
        self.ctx = ctx

    async def record(
        self,
        event_type: EventType,
        account: Optional[str] = None,
        counterparty: Optional[str] = None,
        amount: Optional[int] = None,
        reference_id: Optional[int] = None,
        reference_type: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        notes: Optional[str] = None,
    ) -> LedgerEvent:
        """
        Record an event describing a mutation that has just been applied.

        Args:
            event_type: The kind of mutation
            account: Primary actor
            counterparty: Receiving or affected account, if any
            amount: Primary amount (tokens or shares)
            reference_id: ID of the related record
            reference_type: Type of the related record
            data: Additional type-specific fields
            notes: Human-readable notes

        Returns:
            The created LedgerEvent record
        """
        event = LedgerEvent(
            occurred_at=self.ctx.now(),
            event_type=event_type,
            account=account,
            counterparty=counterparty,
            amount=amount,
            reference_id=reference_id,
            reference_type=reference_type,
            data=data,
            notes=notes,
        )
        self.db.add(event)
        await self.db.flush()

        logger.info(
            "Recorded event",
            event_id=event.id,
            event_type=event_type.value,
            account=account,
            reference_type=reference_type,
            reference_id=reference_id,
        )
        return event

    async def list(
        self,
        event_type: Optional[EventType] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
        since: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[LedgerEvent]:
        query = select(LedgerEvent)
        if event_type is not None:
            query = query.where(LedgerEvent.event_type == event_type)
        if reference_type is not None:
            query = query.where(LedgerEvent.reference_type == reference_type)
        if reference_id is not None:
            query = query.where(LedgerEvent.reference_id == reference_id)
        if since is not None:
            query = query.where(LedgerEvent.occurred_at >= since)
        result = await self.db.execute(query.order_by(LedgerEvent.id).limit(limit))
        return list(result.scalars().all())
