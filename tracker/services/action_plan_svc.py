"""Action-plan reconciliation engine.

Applies a client-submitted disposition and action-item list to one
opportunity inside a single transaction:

1. lock the opportunity row and load its disposition and items
2. reject stale writers by comparing the submitted ``version``
3. merge the disposition, bump ``version`` and append a history row
4. diff items by id: update known ids, insert id-less items, delete the rest
5. re-read and return what is actually durable

Nothing is committed unless every step succeeds.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import (
    ActionPlanConflictError,
    ActionPlanNotFoundError,
    ActionPlanValidationError,
)
from ..models.action_item import ActionItem
from ..models.disposition import Disposition
from ..models.history import DispositionHistory
from ..models.opportunity import Opportunity
from ..schemas.action_plan import ActionItemInput, DispositionInput, parse_action_plan_payload

logger = logging.getLogger(__name__)


@dataclass
class ActionPlanSnapshot:
    disposition: Disposition
    action_items: list[ActionItem] = field(default_factory=list)


@dataclass
class ActionItemDiff:
    inserted: list[uuid.UUID] = field(default_factory=list)
    updated: list[uuid.UUID] = field(default_factory=list)
    deleted: list[uuid.UUID] = field(default_factory=list)


async def load_action_plan(
    db: AsyncSession,
    opportunity_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> ActionPlanSnapshot | None:
    """Load an opportunity's disposition and items, optionally row-locked."""
    opp_stmt = select(Opportunity.id).where(Opportunity.id == opportunity_id)
    if for_update:
        opp_stmt = opp_stmt.with_for_update()
    if (await db.execute(opp_stmt)).scalar_one_or_none() is None:
        return None

    disp_stmt = (
        select(Disposition)
        .where(Disposition.opportunity_id == opportunity_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        disp_stmt = disp_stmt.with_for_update()
    disposition = (await db.execute(disp_stmt)).scalar_one_or_none()
    if disposition is None:
        # Opportunities created outside the service layer start un-reviewed.
        disposition = Disposition(opportunity_id=opportunity_id)
        db.add(disposition)
        await db.flush()

    items_stmt = (
        select(ActionItem)
        .where(ActionItem.opportunity_id == opportunity_id)
        .order_by(ActionItem.due_date.asc().nullslast(), ActionItem.name, ActionItem.id)
        .execution_options(populate_existing=True)
    )
    items = list((await db.execute(items_stmt)).scalars().all())
    return ActionPlanSnapshot(disposition=disposition, action_items=items)


def _apply_disposition(
    current: Disposition,
    update: DispositionInput,
    user_id: str,
) -> Disposition:
    if current.version != update.version:
        raise ActionPlanConflictError(
            "Conflict: This opportunity has been updated by another user."
        )

    for key, value in update.changes().items():
        setattr(current, key, value)
    if current.notes is None:
        current.notes = ""
    current.version = update.version + 1
    current.last_updated_by_user_id = user_id
    current.last_updated_at = datetime.now(timezone.utc)
    return current


async def _apply_action_items(
    db: AsyncSession,
    opportunity_id: uuid.UUID,
    existing: list[ActionItem],
    submitted: list[ActionItemInput],
    user_id: str,
) -> ActionItemDiff:
    existing_by_id = {item.id: item for item in existing}
    retained: set[uuid.UUID] = set()
    diff = ActionItemDiff()

    for entry in submitted:
        if entry.action_item_id is not None:
            row = existing_by_id.get(entry.action_item_id)
            if row is None:
                raise ActionPlanValidationError(f"Unknown action item: {entry.action_item_id}")
            retained.add(row.id)
            row.name = entry.name
            row.status = entry.status.value
            row.due_date = entry.due_date
            row.documents = entry.document_dicts()
            row.assigned_to_user_id = entry.assigned_to_user_id
            diff.updated.append(row.id)
        else:
            row = ActionItem(
                id=uuid.uuid4(),
                opportunity_id=opportunity_id,
                name=entry.name,
                status=entry.status.value,
                due_date=entry.due_date,
                documents=entry.document_dicts(),
                created_by_user_id=entry.created_by_user_id or user_id,
                assigned_to_user_id=entry.assigned_to_user_id,
            )
            db.add(row)
            diff.inserted.append(row.id)

    for item in existing:
        if item.id not in retained:
            await db.delete(item)
            diff.deleted.append(item.id)

    return diff


def _change_details(disposition: Disposition, diff: ActionItemDiff) -> dict[str, Any]:
    return {
        "status": disposition.status,
        "notes": disposition.notes,
        "reason": disposition.reason,
        "services_amount_override": disposition.services_amount_override,
        "forecast_category_override": disposition.forecast_category_override,
        "version": disposition.version,
        "action_items": {
            "inserted": [str(i) for i in diff.inserted],
            "updated": [str(i) for i in diff.updated],
            "deleted": [str(i) for i in diff.deleted],
        },
    }


async def persist_action_plan(
    db: AsyncSession,
    opportunity_id: uuid.UUID,
    user_id: str,
    payload: Any,
) -> ActionPlanSnapshot:
    """Validate, lock, diff and persist an action plan; return the canonical snapshot.

    Raises ActionPlanValidationError, ActionPlanConflictError or
    ActionPlanNotFoundError. The session is rolled back on any failure.
    """
    try:
        plan = parse_action_plan_payload(payload)

        snapshot = await load_action_plan(db, opportunity_id, for_update=True)
        if snapshot is None:
            raise ActionPlanNotFoundError("Opportunity not found.")

        disposition = _apply_disposition(snapshot.disposition, plan.disposition, user_id)
        diff = await _apply_action_items(
            db, opportunity_id, snapshot.action_items, plan.action_items, user_id
        )
        db.add(DispositionHistory(
            opportunity_id=opportunity_id,
            updated_by_user_id=user_id,
            change_details=_change_details(disposition, diff),
        ))
        await db.flush()

        refreshed = await load_action_plan(db, opportunity_id)
        if refreshed is None:
            raise ActionPlanNotFoundError("Opportunity not found.")
        await db.commit()
    except (ActionPlanValidationError, ActionPlanConflictError) as exc:
        await db.rollback()
        logger.warning("Rejected action plan for opportunity %s: %s", opportunity_id, exc)
        raise
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Action plan saved for opportunity %s by %s: v%s, +%d ~%d -%d items",
        opportunity_id, user_id, refreshed.disposition.version,
        len(diff.inserted), len(diff.updated), len(diff.deleted),
    )
    return refreshed
