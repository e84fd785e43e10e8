"""Test opportunity and history services."""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.models import ActionItem, Disposition, Opportunity
from tracker.services import history_svc, opportunity_svc
from tracker.dates import coerce_date


@pytest.mark.asyncio
async def test_create_and_get_opportunity(db: AsyncSession):
    opp = await opportunity_svc.create_opportunity(
        db, name="Initech", subscription_start_date="2024-09-15", has_services_flag=True
    )
    assert opp.subscription_start_date == date(2024, 9, 15)
    assert opp.disposition.status == "Not Reviewed"
    assert opp.disposition.version == 1

    fetched = await opportunity_svc.get_opportunity(db, opp.id)
    assert fetched is not None
    assert fetched.name == "Initech"


@pytest.mark.asyncio
async def test_list_opportunities_by_disposition(db: AsyncSession, opportunity: Opportunity):
    await opportunity_svc.create_opportunity(db, name="Second Deal")

    all_opps = await opportunity_svc.list_opportunities(db)
    assert len(all_opps) == 2

    reviewed = await opportunity_svc.list_opportunities(db, disposition_status="Services Fit")
    assert reviewed == []

    unreviewed = await opportunity_svc.list_opportunities(db, disposition_status="Not Reviewed")
    assert len(unreviewed) == 2


@pytest.mark.asyncio
async def test_list_opportunities_pagination(db: AsyncSession):
    for i in range(5):
        await opportunity_svc.create_opportunity(db, name=f"Deal {i}")

    page = await opportunity_svc.list_opportunities(db, limit=2, offset=1)
    assert [o.name for o in page] == ["Deal 1", "Deal 2"]


@pytest.mark.asyncio
async def test_add_action_item_defaults_assignee(db: AsyncSession, opportunity: Opportunity):
    item = await opportunity_svc.add_action_item(
        db, opportunity.id, name="Kickoff", created_by_user_id="user-a", due_date="2024-07-03"
    )
    assert item.assigned_to_user_id == "user-a"
    assert item.due_date == date(2024, 7, 3)


@pytest.mark.asyncio
async def test_delete_opportunity_cascades(db: AsyncSession, opportunity: Opportunity):
    opp_id = opportunity.id
    await opportunity_svc.add_action_item(db, opp_id, name="Kickoff", created_by_user_id="user-a")

    assert await opportunity_svc.delete_opportunity(db, opp_id) is True
    assert await opportunity_svc.get_opportunity(db, opp_id) is None

    dispositions = (await db.execute(select(func.count(Disposition.id)))).scalar_one()
    items = (await db.execute(select(func.count(ActionItem.id)))).scalar_one()
    assert dispositions == 0
    assert items == 0


@pytest.mark.asyncio
async def test_delete_missing_opportunity(db: AsyncSession, opportunity: Opportunity):
    await opportunity_svc.delete_opportunity(db, opportunity.id)
    assert await opportunity_svc.delete_opportunity(db, opportunity.id) is False


@pytest.mark.asyncio
async def test_history_empty_for_new_opportunity(db: AsyncSession, opportunity: Opportunity):
    assert await history_svc.list_history(db, opportunity.id) == []
    assert await history_svc.count_history(db, opportunity.id) == 0


@pytest.mark.parametrize("value, expected", [
    ("2024-07-01", date(2024, 7, 1)),
    ("2024-07-01T23:30:00Z", date(2024, 7, 1)),
    (date(2024, 7, 1), date(2024, 7, 1)),
    ("", None),
    ("soon", None),
    (None, None),
])
def test_coerce_date(value, expected):
    assert coerce_date(value) == expected
