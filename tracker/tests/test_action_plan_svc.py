"""Test the action-plan reconciliation engine."""

from __future__ import annotations

import uuid
from datetime import date

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.errors import (
    ActionPlanConflictError,
    ActionPlanNotFoundError,
    ActionPlanValidationError,
)
from tracker.models.action_item import ActionItem
from tracker.models.opportunity import Opportunity
from tracker.services import action_plan_svc, history_svc, opportunity_svc


def _item(name: str, due: str | None = None, **fields) -> dict:
    return {
        "name": name,
        "status": "Not Started",
        "due_date": due,
        "documents": [],
        "assigned_to_user_id": "user-a",
        **fields,
    }


def _plan(version: int, items: list[dict], status: str = "Services Fit", **disposition) -> dict:
    return {
        "disposition": {"status": status, "version": version, **disposition},
        "actionItems": items,
    }


async def _item_count(db: AsyncSession) -> int:
    return (await db.execute(select(func.count(ActionItem.id)))).scalar_one()


@pytest.mark.asyncio
async def test_load_action_plan_for_new_opportunity(db: AsyncSession, opportunity: Opportunity):
    snapshot = await action_plan_svc.load_action_plan(db, opportunity.id)
    assert snapshot is not None
    assert snapshot.disposition.status == "Not Reviewed"
    assert snapshot.disposition.version == 1
    assert snapshot.disposition.notes == ""
    assert snapshot.action_items == []


@pytest.mark.asyncio
async def test_load_action_plan_missing_opportunity(db: AsyncSession):
    assert await action_plan_svc.load_action_plan(db, uuid.uuid4()) is None


@pytest.mark.asyncio
async def test_persist_inserts_items_and_bumps_version(db: AsyncSession, opportunity: Opportunity):
    items = [
        _item("Contact Opp Owner", "2024-07-01"),
        _item("Scope and develop proposal", "2024-07-08"),
        _item("Share proposal", "2024-07-15"),
        _item("Finalize proposal", "2024-07-22"),
        _item("Ironclad approval", "2024-07-29"),
    ]
    snapshot = await action_plan_svc.persist_action_plan(
        db, opportunity.id, "user-a", _plan(1, items, notes="kickoff")
    )

    assert snapshot.disposition.version == 2
    assert snapshot.disposition.status == "Services Fit"
    assert snapshot.disposition.notes == "kickoff"
    assert snapshot.disposition.last_updated_by_user_id == "user-a"
    assert snapshot.disposition.last_updated_at is not None
    assert [i.name for i in snapshot.action_items] == [i["name"] for i in items]
    assert snapshot.action_items[0].due_date == date(2024, 7, 1)
    assert all(i.created_by_user_id == "user-a" for i in snapshot.action_items)
    assert all(i.opportunity_id == opportunity.id for i in snapshot.action_items)


@pytest.mark.asyncio
async def test_persist_diffs_items_by_id(db: AsyncSession, opportunity: Opportunity):
    opp_id = opportunity.id
    first = await action_plan_svc.persist_action_plan(
        db, opp_id, "user-a",
        _plan(1, [_item("A", "2024-07-01"), _item("B", "2024-07-02"), _item("C", "2024-07-03")]),
    )
    ids = {i.name: i.id for i in first.action_items}

    second = await action_plan_svc.persist_action_plan(
        db, opp_id, "user-b",
        _plan(2, [
            _item("A renamed", "2024-07-05", action_item_id=str(ids["A"]), status="In Progress"),
            _item("D"),
        ]),
    )

    assert second.disposition.version == 3
    by_name = {i.name: i for i in second.action_items}
    assert set(by_name) == {"A renamed", "D"}
    assert by_name["A renamed"].id == ids["A"]
    assert by_name["A renamed"].status == "In Progress"
    assert by_name["A renamed"].due_date == date(2024, 7, 5)
    # created_by is set once; updates never rewrite it
    assert by_name["A renamed"].created_by_user_id == "user-a"
    assert by_name["D"].created_by_user_id == "user-b"
    assert await _item_count(db) == 2


@pytest.mark.asyncio
async def test_items_without_due_date_sort_last(db: AsyncSession, opportunity: Opportunity):
    snapshot = await action_plan_svc.persist_action_plan(
        db, opportunity.id, "user-a",
        _plan(1, [_item("Undated"), _item("Later", "2024-08-01"), _item("Sooner", "2024-07-01")]),
    )
    assert [i.name for i in snapshot.action_items] == ["Sooner", "Later", "Undated"]


@pytest.mark.asyncio
async def test_version_mismatch_leaves_storage_untouched(db: AsyncSession, opportunity: Opportunity):
    opp_id = opportunity.id
    await action_plan_svc.persist_action_plan(
        db, opp_id, "user-a", _plan(1, [_item("Keep me", "2024-07-01")], notes="first")
    )

    with pytest.raises(ActionPlanConflictError) as excinfo:
        await action_plan_svc.persist_action_plan(
            db, opp_id, "user-b", _plan(1, [_item("Stale")], status="Watchlist", notes="stale")
        )
    assert excinfo.value.status_code == 409
    assert excinfo.value.message == "Conflict: This opportunity has been updated by another user."

    snapshot = await action_plan_svc.load_action_plan(db, opp_id)
    assert snapshot.disposition.version == 2
    assert snapshot.disposition.status == "Services Fit"
    assert snapshot.disposition.notes == "first"
    assert [i.name for i in snapshot.action_items] == ["Keep me"]
    assert await history_svc.count_history(db, opp_id) == 1


@pytest.mark.asyncio
async def test_invalid_document_url_rejects_whole_payload(db: AsyncSession, opportunity: Opportunity):
    opp_id = opportunity.id
    seeded = await action_plan_svc.persist_action_plan(
        db, opp_id, "user-a", _plan(1, [_item("Existing", "2024-07-01")])
    )
    existing_id = str(seeded.action_items[0].id)
    items = [
        _item("Existing (renamed)", "2024-07-08", action_item_id=existing_id),
        _item("Broken", documents=[{"text": "SOW", "url": "not a url"}]),
    ]

    with pytest.raises(ActionPlanValidationError) as excinfo:
        await action_plan_svc.persist_action_plan(
            db, opp_id, "user-a", _plan(2, items, status="Watchlist", notes="edited")
        )
    assert "Invalid document URL" in excinfo.value.message

    snapshot = await action_plan_svc.load_action_plan(db, opp_id)
    assert snapshot.disposition.version == 2
    assert snapshot.disposition.status == "Services Fit"
    assert snapshot.disposition.notes == ""
    assert [(str(i.id), i.name, i.due_date) for i in snapshot.action_items] == [
        (existing_id, "Existing", date(2024, 7, 1)),
    ]
    assert await _item_count(db) == 1
    assert await history_svc.count_history(db, opp_id) == 1


@pytest.mark.asyncio
async def test_missing_action_items_is_rejected(db: AsyncSession, opportunity: Opportunity):
    opp_id = opportunity.id
    payload = {"disposition": {"status": "Services Fit", "version": 1}}

    with pytest.raises(ActionPlanValidationError) as excinfo:
        await action_plan_svc.persist_action_plan(db, opp_id, "user-a", payload)
    assert excinfo.value.status_code == 400
    assert excinfo.value.message == "Action items payload is required."

    snapshot = await action_plan_svc.load_action_plan(db, opp_id)
    assert snapshot.disposition.version == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("payload, message", [
    ([], "Action plan payload must be an object."),
    ({"actionItems": []}, "Disposition payload is required."),
    ({"disposition": {"status": "Services Fit", "version": 1}, "actionItems": {}},
     "Action items must be an array."),
])
async def test_malformed_payload_shapes(db: AsyncSession, opportunity: Opportunity, payload, message):
    with pytest.raises(ActionPlanValidationError) as excinfo:
        await action_plan_svc.persist_action_plan(db, opportunity.id, "user-a", payload)
    assert excinfo.value.message == message


@pytest.mark.asyncio
async def test_non_integer_version_is_rejected(db: AsyncSession, opportunity: Opportunity):
    payload = {"disposition": {"status": "Services Fit", "version": "1"}, "actionItems": []}
    with pytest.raises(ActionPlanValidationError):
        await action_plan_svc.persist_action_plan(db, opportunity.id, "user-a", payload)


@pytest.mark.asyncio
async def test_unknown_status_is_rejected(db: AsyncSession, opportunity: Opportunity):
    with pytest.raises(ActionPlanValidationError):
        await action_plan_svc.persist_action_plan(
            db, opportunity.id, "user-a", _plan(1, [], status="Maybe Later")
        )


@pytest.mark.asyncio
async def test_blank_assignee_is_rejected(db: AsyncSession, opportunity: Opportunity):
    with pytest.raises(ActionPlanValidationError):
        await action_plan_svc.persist_action_plan(
            db, opportunity.id, "user-a", _plan(1, [_item("Task", assigned_to_user_id="  ")])
        )


@pytest.mark.asyncio
async def test_item_from_another_opportunity_is_rejected(db: AsyncSession, opportunity: Opportunity):
    opp_id = opportunity.id
    other = await opportunity_svc.create_opportunity(db, name="Other Deal")
    other_id = other.id
    foreign = await opportunity_svc.add_action_item(
        db, other_id, name="Not yours", created_by_user_id="user-b"
    )
    foreign_id = foreign.id

    with pytest.raises(ActionPlanValidationError) as excinfo:
        await action_plan_svc.persist_action_plan(
            db, opp_id, "user-a", _plan(1, [_item("Steal", action_item_id=str(foreign_id))])
        )
    assert excinfo.value.message == f"Unknown action item: {foreign_id}"

    other_snapshot = await action_plan_svc.load_action_plan(db, other_id)
    assert [i.name for i in other_snapshot.action_items] == ["Not yours"]
    assert (await action_plan_svc.load_action_plan(db, opp_id)).action_items == []


@pytest.mark.asyncio
async def test_duplicate_item_ids_are_rejected(db: AsyncSession, opportunity: Opportunity):
    opp_id = opportunity.id
    first = await action_plan_svc.persist_action_plan(db, opp_id, "user-a", _plan(1, [_item("A")]))
    item_id = str(first.action_items[0].id)

    with pytest.raises(ActionPlanValidationError):
        await action_plan_svc.persist_action_plan(
            db, opp_id, "user-a",
            _plan(2, [_item("A", action_item_id=item_id), _item("A again", action_item_id=item_id)]),
        )


@pytest.mark.asyncio
async def test_missing_opportunity_raises_not_found(db: AsyncSession):
    with pytest.raises(ActionPlanNotFoundError):
        await action_plan_svc.persist_action_plan(db, uuid.uuid4(), "user-a", _plan(1, []))


@pytest.mark.asyncio
async def test_omitted_notes_keep_stored_notes(db: AsyncSession, opportunity: Opportunity):
    opp_id = opportunity.id
    await action_plan_svc.persist_action_plan(
        db, opp_id, "user-a", _plan(1, [], status="Watchlist", notes="check back in Q3")
    )
    payload = {"disposition": {"status": "Watchlist", "version": 2}, "actionItems": []}
    snapshot = await action_plan_svc.persist_action_plan(db, opp_id, "user-a", payload)
    assert snapshot.disposition.notes == "check back in Q3"
    assert snapshot.disposition.version == 3


@pytest.mark.asyncio
async def test_null_notes_is_rejected(db: AsyncSession, opportunity: Opportunity):
    opp_id = opportunity.id
    await action_plan_svc.persist_action_plan(
        db, opp_id, "user-a", _plan(1, [], status="Watchlist", notes="check back in Q3")
    )

    with pytest.raises(ActionPlanValidationError) as excinfo:
        await action_plan_svc.persist_action_plan(
            db, opp_id, "user-a", _plan(2, [], status="Watchlist", notes=None)
        )
    assert excinfo.value.status_code == 400

    snapshot = await action_plan_svc.load_action_plan(db, opp_id)
    assert snapshot.disposition.notes == "check back in Q3"
    assert snapshot.disposition.version == 2
    assert await history_svc.count_history(db, opp_id) == 1


@pytest.mark.asyncio
async def test_documents_are_normalized(db: AsyncSession, opportunity: Opportunity):
    snapshot = await action_plan_svc.persist_action_plan(
        db, opportunity.id, "user-a",
        _plan(1, [_item("Scope", documents=[
            {"id": "", "text": "  SOW draft ", "url": " https://docs.example.com/sow "},
            {"id": "doc-2", "text": "Notes", "url": None},
        ])]),
    )
    docs = snapshot.action_items[0].documents
    assert docs[0]["text"] == "SOW draft"
    assert docs[0]["url"] == "https://docs.example.com/sow"
    assert docs[0]["id"]
    assert docs[1] == {"id": "doc-2", "text": "Notes", "url": ""}


@pytest.mark.asyncio
async def test_history_row_per_commit(db: AsyncSession, opportunity: Opportunity):
    opp_id = opportunity.id
    first = await action_plan_svc.persist_action_plan(
        db, opp_id, "user-a", _plan(1, [_item("A"), _item("B")])
    )
    await action_plan_svc.persist_action_plan(
        db, opp_id, "user-b",
        _plan(2, [_item("A", action_item_id=str(first.action_items[0].id))],
              status="No Action Needed", reason="Customer declined"),
    )

    entries = await history_svc.list_history(db, opp_id)
    assert len(entries) == 2
    latest = entries[0]
    assert latest.updated_by_user_id == "user-b"
    assert latest.change_details["status"] == "No Action Needed"
    assert latest.change_details["reason"] == "Customer declined"
    assert latest.change_details["version"] == 3
    assert latest.change_details["action_items"]["updated"] == [str(first.action_items[0].id)]
    assert latest.change_details["action_items"]["deleted"] == [str(first.action_items[1].id)]
    assert latest.change_details["action_items"]["inserted"] == []
