"""Opportunity service - creation with a default disposition, lookups."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.action_item import ActionItem
from ..models.disposition import Disposition
from ..models.opportunity import Opportunity
from ..dates import coerce_date


async def list_opportunities(
    db: AsyncSession,
    *,
    disposition_status: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Opportunity]:
    stmt = select(Opportunity).options(selectinload(Opportunity.disposition))
    if disposition_status:
        stmt = stmt.join(Disposition).where(Disposition.status == disposition_status)
    stmt = stmt.order_by(Opportunity.close_date.asc().nullslast(), Opportunity.name)
    stmt = stmt.offset(offset).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_opportunity(db: AsyncSession, opp_id: uuid.UUID) -> Opportunity | None:
    stmt = (
        select(Opportunity)
        .where(Opportunity.id == opp_id)
        .options(selectinload(Opportunity.disposition))
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def create_opportunity(db: AsyncSession, **kwargs) -> Opportunity:
    """Create an opportunity together with its ``Not Reviewed`` v1 disposition."""
    for key in ("subscription_start_date", "close_date"):
        if key in kwargs:
            kwargs[key] = coerce_date(kwargs[key])
    opp = Opportunity(id=uuid.uuid4(), **kwargs)
    opp.disposition = Disposition(opportunity_id=opp.id)
    db.add(opp)
    await db.commit()
    return await get_opportunity(db, opp.id)


async def add_action_item(
    db: AsyncSession,
    opp_id: uuid.UUID,
    *,
    name: str,
    created_by_user_id: str,
    assigned_to_user_id: str | None = None,
    **kwargs,
) -> ActionItem:
    """Insert an item directly (seeding and imports; live edits go through the engine)."""
    if "due_date" in kwargs:
        kwargs["due_date"] = coerce_date(kwargs["due_date"])
    item = ActionItem(
        opportunity_id=opp_id,
        name=name,
        created_by_user_id=created_by_user_id,
        assigned_to_user_id=assigned_to_user_id or created_by_user_id,
        **kwargs,
    )
    db.add(item)
    await db.commit()
    await db.refresh(item)
    return item


async def delete_opportunity(db: AsyncSession, opp_id: uuid.UUID) -> bool:
    stmt = select(Opportunity).where(Opportunity.id == opp_id)
    result = await db.execute(stmt)
    opp = result.scalar_one_or_none()
    if not opp:
        return False
    await db.delete(opp)
    await db.commit()
    return True
