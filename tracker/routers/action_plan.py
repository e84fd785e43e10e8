"""Action-plan JSON API - atomic disposition + action-item save."""

from __future__ import annotations

import json
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..errors import ActionPlanError
from ..schemas.action_plan import ActionItemOut, ActionPlanOut, DispositionOut
from ..services import action_plan_svc
from ..services.action_plan_svc import ActionPlanSnapshot
from .deps import get_acting_user_id, parse_opportunity_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["action-plan"])


def snapshot_to_dict(snapshot: ActionPlanSnapshot) -> dict:
    out = ActionPlanOut(
        disposition=DispositionOut.model_validate(snapshot.disposition),
        action_items=[ActionItemOut.model_validate(item) for item in snapshot.action_items],
    )
    return out.model_dump(mode="json", by_alias=True)


@router.get("/opportunities/{opportunity_id}/action-plan")
async def get_action_plan(
    opp_id: uuid.UUID = Depends(parse_opportunity_id),
    db: AsyncSession = Depends(get_db),
):
    snapshot = await action_plan_svc.load_action_plan(db, opp_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Opportunity not found.")
    return snapshot_to_dict(snapshot)


@router.post("/opportunities/{opportunity_id}/action-plan")
async def save_action_plan(
    request: Request,
    opp_id: uuid.UUID = Depends(parse_opportunity_id),
    user_id: str = Depends(get_acting_user_id),
    db: AsyncSession = Depends(get_db),
):
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Request body must be JSON.") from None

    try:
        snapshot = await action_plan_svc.persist_action_plan(db, opp_id, user_id, payload)
    except ActionPlanError as exc:
        raise HTTPException(status_code=exc.status_code or 500, detail=exc.message) from exc
    except Exception:
        logger.exception("Error saving action plan for opportunity %s", opp_id)
        raise HTTPException(status_code=500, detail="Internal Server Error") from None
    return snapshot_to_dict(snapshot)
