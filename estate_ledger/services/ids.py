"""Sequential id allocation for ledger records."""
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession


async def next_id(db: AsyncSession, model, first: int = 1) -> int:
    """Next dense id for ``model``; safe because writers are serialized."""
    result = await db.execute(select(func.max(model.id)))
    current = result.scalar()
    if current is None:
        return first
    return current + 1
