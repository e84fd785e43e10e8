"""Disposition history service - read side of the audit trail."""

from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.history import DispositionHistory


async def list_history(
    db: AsyncSession,
    opportunity_id: uuid.UUID,
    *,
    limit: int = 50,
) -> list[DispositionHistory]:
    stmt = (
        select(DispositionHistory)
        .where(DispositionHistory.opportunity_id == opportunity_id)
        .order_by(DispositionHistory.timestamp.desc())
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def count_history(db: AsyncSession, opportunity_id: uuid.UUID) -> int:
    stmt = select(func.count(DispositionHistory.id)).where(
        DispositionHistory.opportunity_id == opportunity_id
    )
    return (await db.execute(stmt)).scalar_one()
