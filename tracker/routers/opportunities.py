"""Opportunity JSON API - listing, detail, creation and disposition history."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.action_plan import HistoryEntryOut
from ..schemas.opportunity import OpportunityCreate, OpportunityOut
from ..services import action_plan_svc, history_svc, opportunity_svc
from .action_plan import snapshot_to_dict
from .deps import parse_opportunity_id

router = APIRouter(prefix="/api", tags=["opportunities"])


@router.get("/opportunities")
async def list_opportunities(
    db: AsyncSession = Depends(get_db),
    disposition: str | None = None,
    limit: int = 100,
    offset: int = 0,
):
    opps = await opportunity_svc.list_opportunities(
        db, disposition_status=disposition, limit=max(1, min(limit, 500)), offset=max(0, offset)
    )
    return [OpportunityOut.model_validate(o).model_dump(mode="json") for o in opps]


@router.post("/opportunities", status_code=201)
async def create_opportunity(
    data: OpportunityCreate,
    db: AsyncSession = Depends(get_db),
):
    opp = await opportunity_svc.create_opportunity(db, **data.model_dump())
    return OpportunityOut.model_validate(opp).model_dump(mode="json")


@router.get("/opportunities/{opportunity_id}")
async def get_opportunity(
    opp_id: uuid.UUID = Depends(parse_opportunity_id),
    db: AsyncSession = Depends(get_db),
):
    opp = await opportunity_svc.get_opportunity(db, opp_id)
    if not opp:
        raise HTTPException(status_code=404, detail="Opportunity not found.")
    snapshot = await action_plan_svc.load_action_plan(db, opp_id)
    data = OpportunityOut.model_validate(opp).model_dump(mode="json", exclude={"disposition"})
    data.update(snapshot_to_dict(snapshot))
    return data


@router.get("/opportunities/{opportunity_id}/history")
async def disposition_history(
    opp_id: uuid.UUID = Depends(parse_opportunity_id),
    db: AsyncSession = Depends(get_db),
    limit: int = 50,
):
    opp = await opportunity_svc.get_opportunity(db, opp_id)
    if not opp:
        raise HTTPException(status_code=404, detail="Opportunity not found.")
    entries = await history_svc.list_history(db, opp_id, limit=max(1, min(limit, 500)))
    return [HistoryEntryOut.model_validate(e).model_dump(mode="json") for e in entries]
