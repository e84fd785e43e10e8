"""Draft/staging state machine for one opportunity's disposition and action plan.

A ``DraftSession`` keeps three buckets side by side:

- the *baseline*: last known-good server state (disposition + action items)
- the *draft*: an editable copy of the baseline
- the *staged* items: tasks created locally that have never been persisted

All edits are synchronous and local. ``commit_draft`` is the only operation
that talks to the server; it goes through a ``SaveQueue`` so at most one save
is in flight, and only a successful save replaces the baseline. A failed save
leaves every bucket exactly as the user left it.

States: clean -> dirty -> saving -> clean (saved) or dirty (failed).
"""

from __future__ import annotations

import copy
import dataclasses
import logging
from enum import Enum
from typing import Any, Callable, Iterable, Protocol

from ..constants import ActionItemStatus, DispositionStatus, status_requires_reason
from ..errors import ActionPlanConflictError, DraftLockedError
from .plan_generator import generate_default_plan
from .save_queue import SaveQueue
from .types import (
    ActionItem,
    ActionPlanSnapshot,
    Disposition,
    Document,
    OpportunityContext,
    StagedActionItem,
)

logger = logging.getLogger(__name__)

SERVICES_FIT = DispositionStatus.SERVICES_FIT.value

SAVED_MESSAGE = "Changes saved"
SAVE_FAILED_MESSAGE = "Failed to save changes"
CONFLICT_MESSAGE = "Save conflict: another user updated this opportunity. Refresh to continue."
DISCARD_STAGED_MESSAGE = (
    "You have staged action plan tasks that are not saved. "
    "Save Action Plan to keep them, or choose OK to discard."
)
DISCARD_PLAN_MESSAGE = (
    "You have unsaved action plan changes. "
    "Save Action Plan to keep them, or choose OK to discard."
)

EDITABLE_DISPOSITION_FIELDS = (
    "status",
    "notes",
    "reason",
    "services_amount_override",
    "forecast_category_override",
)
EDITABLE_ITEM_FIELDS = frozenset({"name", "status", "due_date", "documents", "assigned_to_user_id"})


class DraftState(str, Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    SAVING = "saving"


class ActionPlanSaver(Protocol):
    async def save_action_plan(self, opportunity_id: str, payload: dict) -> ActionPlanSnapshot:
        ...


def _decline(message: str) -> bool:
    return False


def _ignore(message: str, level: str) -> None:
    return None


# ── Normalization / comparison ────────────────────────────────────────────

def _status_value(status: DispositionStatus | str) -> str:
    return DispositionStatus(status).value


def _item_status_value(status: ActionItemStatus | str) -> str:
    return ActionItemStatus(status).value


def _coerce_documents(documents: Iterable[Document | dict] | None) -> list[Document]:
    result: list[Document] = []
    for doc in documents or []:
        if isinstance(doc, Document):
            result.append(dataclasses.replace(doc))
        else:
            result.append(Document.from_dict(doc))
    return result


def _normalize_item_changes(changes: dict[str, Any]) -> dict[str, Any]:
    unknown = set(changes) - EDITABLE_ITEM_FIELDS
    if unknown:
        raise ValueError(f"Action item fields are not editable: {', '.join(sorted(unknown))}")
    normalized = dict(changes)
    if "status" in normalized:
        normalized["status"] = _item_status_value(normalized["status"])
    if "documents" in normalized:
        normalized["documents"] = _coerce_documents(normalized["documents"])
    if "due_date" in normalized:
        normalized["due_date"] = normalized["due_date"] or ""
    if normalized.get("assigned_to_user_id") is None:
        normalized.pop("assigned_to_user_id", None)
    return normalized


def _disposition_signature(disposition: Disposition) -> tuple:
    return (
        disposition.status,
        disposition.notes or "",
        disposition.reason or "",
        disposition.services_amount_override,
        disposition.forecast_category_override or "",
    )


def _item_signature(item: ActionItem | StagedActionItem) -> tuple:
    return (
        item.name,
        item.status,
        item.due_date or "",
        item.assigned_to_user_id or "",
        tuple((doc.id or "", doc.text or "", doc.url or "") for doc in item.documents),
    )


def action_items_equal(left: list[ActionItem], right: list[ActionItem]) -> bool:
    """Structural equality: same ids and same content, ignoring order."""
    if len(left) != len(right):
        return False

    def by_id(item: ActionItem) -> str:
        return item.action_item_id

    return all(
        a.action_item_id == b.action_item_id and _item_signature(a) == _item_signature(b)
        for a, b in zip(sorted(left, key=by_id), sorted(right, key=by_id))
    )


# ── Session ───────────────────────────────────────────────────────────────

class DraftSession:
    """Editing session for one opportunity, owned by a single UI session."""

    def __init__(
        self,
        opportunity: OpportunityContext,
        current_user_id: str,
        client: ActionPlanSaver,
        *,
        confirm: Callable[[str], bool] | None = None,
        notify: Callable[[str, str], None] | None = None,
    ):
        self.opportunity = opportunity
        self.current_user_id = current_user_id
        self._client = client
        self._confirm = confirm or _decline
        self._notify = notify or _ignore
        self._queue = SaveQueue()
        self.is_committing_draft = False

        self.baseline_disposition: Disposition
        self.draft_disposition: Disposition
        self.baseline_action_items: list[ActionItem]
        self.draft_action_items: list[ActionItem]
        self.staged_action_items: list[StagedActionItem]
        self._adopt(opportunity.snapshot)

    # ── derived state ──

    @property
    def has_unsaved_disposition_changes(self) -> bool:
        return _disposition_signature(self.draft_disposition) != _disposition_signature(
            self.baseline_disposition
        )

    @property
    def has_action_item_changes(self) -> bool:
        return not action_items_equal(self.draft_action_items, self.baseline_action_items)

    @property
    def has_staged_action_plan_changes(self) -> bool:
        return len(self.staged_action_items) > 0

    @property
    def has_action_plan_changes(self) -> bool:
        return self.has_action_item_changes or self.has_staged_action_plan_changes

    @property
    def is_dirty(self) -> bool:
        return (
            self.has_unsaved_disposition_changes
            or self.has_action_item_changes
            or self.has_staged_action_plan_changes
        )

    @property
    def state(self) -> DraftState:
        if self.is_committing_draft:
            return DraftState.SAVING
        return DraftState.DIRTY if self.is_dirty else DraftState.CLEAN

    def _ensure_editable(self) -> None:
        if self.is_committing_draft:
            raise DraftLockedError("A save is in progress; edits are disabled until it completes.")

    # ── disposition ──

    def update_disposition(self, **changes: Any) -> None:
        """Merge edits into the draft disposition. Local only."""
        self._ensure_editable()
        unknown = set(changes) - set(EDITABLE_DISPOSITION_FIELDS)
        if unknown:
            raise ValueError(f"Disposition fields are not editable: {', '.join(sorted(unknown))}")
        if "status" in changes:
            changes["status"] = _status_value(changes["status"])
        self.draft_disposition = dataclasses.replace(self.draft_disposition, **changes)
        if changes.get("status") == SERVICES_FIT:
            self.ensure_default_plan()

    def change_disposition_status(self, status: DispositionStatus | str) -> bool:
        """Move the draft to a new status; False if the user kept their action plan."""
        self._ensure_editable()
        status = _status_value(status)
        leaving_fit = self.draft_disposition.status == SERVICES_FIT and status != SERVICES_FIT

        if leaving_fit and self.has_action_plan_changes:
            message = (
                DISCARD_STAGED_MESSAGE if not self.has_action_item_changes else DISCARD_PLAN_MESSAGE
            )
            if not self._confirm(message):
                return False

        draft = dataclasses.replace(self.draft_disposition, status=status)
        if status == SERVICES_FIT or not status_requires_reason(
            status, self.opportunity.has_services_flag
        ):
            draft.reason = ""
        self.draft_disposition = draft

        if leaving_fit:
            self.staged_action_items = []
            self.draft_action_items = copy.deepcopy(self.baseline_action_items)
        elif status == SERVICES_FIT:
            self.ensure_default_plan()
        return True

    # ── default plan ──

    def ensure_default_plan(self) -> bool:
        """Stage the template plan, or backfill missing due dates. Idempotent.

        Only applies while the draft is "Services Fit" and nothing has been
        committed yet. Returns True when staged items changed.
        """
        self._ensure_editable()
        if self.draft_disposition.status != SERVICES_FIT or self.baseline_action_items:
            return False

        plan = generate_default_plan(
            self.opportunity.subscription_start_date,
            assigned_to_user_id=self.current_user_id,
        )
        if not self.staged_action_items:
            self.staged_action_items = plan
            return True

        template_dates = {item.name: item.due_date for item in plan if item.due_date}
        changed = False
        for item in self.staged_action_items:
            if not item.due_date and item.name in template_dates:
                item.due_date = template_dates[item.name]
                changed = True
        return changed

    # ── staged bucket ──

    def add_staged_action_item(
        self,
        name: str = "",
        status: ActionItemStatus | str = ActionItemStatus.NOT_STARTED,
        due_date: str | None = "",
        documents: Iterable[Document | dict] | None = None,
        assigned_to_user_id: str | None = None,
    ) -> StagedActionItem:
        self._ensure_editable()
        item = StagedActionItem(
            name=name,
            status=_item_status_value(status),
            due_date=due_date or "",
            documents=_coerce_documents(documents),
            assigned_to_user_id=assigned_to_user_id or self.current_user_id,
        )
        self.staged_action_items.append(item)
        return item

    def _staged_index(self, index: int) -> int:
        if not 0 <= index < len(self.staged_action_items):
            raise IndexError(f"No staged action item at index {index}")
        return index

    def update_staged_action_item(self, index: int, **changes: Any) -> StagedActionItem:
        self._ensure_editable()
        index = self._staged_index(index)
        updated = dataclasses.replace(
            self.staged_action_items[index], **_normalize_item_changes(changes)
        )
        self.staged_action_items[index] = updated
        return updated

    def remove_staged_action_item(self, index: int) -> StagedActionItem:
        self._ensure_editable()
        return self.staged_action_items.pop(self._staged_index(index))

    # ── committed/draft bucket ──

    def _draft_position(self, action_item_id: str) -> int:
        for position, item in enumerate(self.draft_action_items):
            if item.action_item_id == action_item_id:
                return position
        raise KeyError(action_item_id)

    def update_action_item(self, action_item_id: str, **changes: Any) -> ActionItem:
        self._ensure_editable()
        position = self._draft_position(action_item_id)
        updated = dataclasses.replace(
            self.draft_action_items[position], **_normalize_item_changes(changes)
        )
        self.draft_action_items[position] = updated
        return updated

    def delete_action_item(self, action_item_id: str) -> ActionItem:
        self._ensure_editable()
        return self.draft_action_items.pop(self._draft_position(action_item_id))

    # ── discarding ──

    def reset_draft(self) -> None:
        """Throw away every local edit and staged item."""
        self._ensure_editable()
        self.draft_disposition = dataclasses.replace(self.baseline_disposition)
        self.draft_action_items = copy.deepcopy(self.baseline_action_items)
        self.staged_action_items = []

    def confirm_discard_changes(self) -> bool:
        if not self.is_dirty:
            return True
        self._ensure_editable()
        parts: list[str] = []
        if self.has_unsaved_disposition_changes:
            parts.append("disposition changes")
        if self.has_action_plan_changes:
            parts.append("action plan tasks")
        message = f"You have unsaved {' and '.join(parts)}. Save your work or choose OK to discard them."
        confirmed = bool(self._confirm(message))
        if confirmed:
            self.reset_draft()
        return confirmed

    def confirm_discard_staged(self) -> bool:
        if not self.staged_action_items:
            return True
        self._ensure_editable()
        confirmed = bool(self._confirm(DISCARD_STAGED_MESSAGE))
        if confirmed:
            self.staged_action_items = []
        return confirmed

    # ── saving ──

    def build_payload(self) -> dict[str, Any]:
        """Request body for the action-plan endpoint: draft items, then staged items."""
        draft = self.draft_disposition
        return {
            "disposition": {
                "status": draft.status,
                "notes": draft.notes or "",
                "reason": draft.reason or "",
                "services_amount_override": draft.services_amount_override,
                "forecast_category_override": draft.forecast_category_override,
                "version": self.baseline_disposition.version,
            },
            "actionItems": [item.to_payload() for item in self.draft_action_items]
            + [item.to_payload(self.current_user_id) for item in self.staged_action_items],
        }

    async def commit_draft(self) -> ActionPlanSnapshot | None:
        """Save the draft; None when there was nothing to save.

        Failures re-raise after notifying; the draft is left untouched.
        """
        if not self.is_dirty:
            return None

        self.is_committing_draft = True
        try:
            return await self._queue.submit(self._save_draft)
        except ActionPlanConflictError:
            logger.warning(
                "Save conflict on opportunity %s at v%s",
                self.opportunity.opportunity_id, self.baseline_disposition.version,
            )
            self._notify(CONFLICT_MESSAGE, "error")
            raise
        except Exception:
            logger.warning(
                "Failed to save action plan for opportunity %s",
                self.opportunity.opportunity_id, exc_info=True,
            )
            self._notify(SAVE_FAILED_MESSAGE, "error")
            raise
        finally:
            self.is_committing_draft = self._queue.busy

    async def _save_draft(self) -> ActionPlanSnapshot | None:
        # Built when this save reaches the head of the queue, so it carries the
        # version produced by any save that ran before it.
        if not self.is_dirty:
            return None
        payload = self.build_payload()
        snapshot = await self._client.save_action_plan(self.opportunity.opportunity_id, payload)
        self._adopt(snapshot)
        self._notify(SAVED_MESSAGE, "success")
        return snapshot

    # ── server state ──

    def _adopt(self, snapshot: ActionPlanSnapshot) -> None:
        self.baseline_disposition = dataclasses.replace(snapshot.disposition)
        self.draft_disposition = dataclasses.replace(snapshot.disposition)
        self.baseline_action_items = copy.deepcopy(snapshot.action_items)
        self.draft_action_items = copy.deepcopy(snapshot.action_items)
        self.staged_action_items = []
        self.opportunity.disposition = dataclasses.replace(snapshot.disposition)
        self.opportunity.action_items = copy.deepcopy(snapshot.action_items)

    def adopt_snapshot(self, snapshot: ActionPlanSnapshot) -> None:
        """Make a server snapshot the new baseline, discarding local work."""
        self._ensure_editable()
        self._adopt(snapshot)

    def refresh(self, snapshot: ActionPlanSnapshot, *, keep_draft: bool = True) -> None:
        """Rebase on freshly fetched server state.

        With ``keep_draft`` the local edits survive: edited disposition fields
        and edited items keep their draft values, locally deleted items stay
        deleted, staged items stay staged. Items the server no longer has are
        dropped and items it gained are added.
        """
        self._ensure_editable()
        if not keep_draft:
            self._adopt(snapshot)
            return

        old_baseline = self.baseline_disposition
        rebased = dataclasses.replace(snapshot.disposition)
        for name in EDITABLE_DISPOSITION_FIELDS:
            local = getattr(self.draft_disposition, name)
            if local != getattr(old_baseline, name):
                setattr(rebased, name, local)

        old_items = {item.action_item_id: item for item in self.baseline_action_items}
        local_items = {item.action_item_id: item for item in self.draft_action_items}
        draft_items: list[ActionItem] = []
        for server_item in snapshot.action_items:
            base = old_items.get(server_item.action_item_id)
            local = local_items.get(server_item.action_item_id)
            if base is None:
                draft_items.append(copy.deepcopy(server_item))
            elif local is None:
                continue
            elif _item_signature(local) != _item_signature(base):
                draft_items.append(copy.deepcopy(local))
            else:
                draft_items.append(copy.deepcopy(server_item))

        self.baseline_disposition = dataclasses.replace(snapshot.disposition)
        self.draft_disposition = rebased
        self.baseline_action_items = copy.deepcopy(snapshot.action_items)
        self.draft_action_items = draft_items
        self.opportunity.disposition = dataclasses.replace(snapshot.disposition)
        self.opportunity.action_items = copy.deepcopy(snapshot.action_items)
