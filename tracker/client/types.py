"""Client-side data shapes for an opportunity's disposition and action plan.

These mirror the JSON the action-plan API speaks. Dates travel as ISO
``YYYY-MM-DD`` strings and an empty string means "no due date".
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from ..constants import ActionItemStatus, DispositionStatus


@dataclass
class Document:
    id: str = ""
    text: str = ""
    url: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Document:
        return cls(
            id=str(data.get("id") or ""),
            text=str(data.get("text") or ""),
            url=str(data.get("url") or ""),
        )

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "text": self.text, "url": self.url}


@dataclass
class Disposition:
    status: str = DispositionStatus.NOT_REVIEWED.value
    notes: str = ""
    reason: str = ""
    services_amount_override: float | None = None
    forecast_category_override: str | None = None
    version: int = 1
    last_updated_by_user_id: str | None = None
    last_updated_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Disposition:
        return cls(
            status=data.get("status") or DispositionStatus.NOT_REVIEWED.value,
            notes=data.get("notes") or "",
            reason=data.get("reason") or "",
            services_amount_override=data.get("services_amount_override"),
            forecast_category_override=data.get("forecast_category_override"),
            version=int(data.get("version") or 1),
            last_updated_by_user_id=data.get("last_updated_by_user_id"),
            last_updated_at=data.get("last_updated_at"),
        )


@dataclass
class ActionItem:
    """A persisted action item as last seen from the server."""

    action_item_id: str
    name: str
    status: str = ActionItemStatus.NOT_STARTED.value
    due_date: str = ""
    documents: list[Document] = field(default_factory=list)
    assigned_to_user_id: str = ""
    created_by_user_id: str | None = None
    opportunity_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActionItem:
        return cls(
            action_item_id=str(data["action_item_id"]),
            name=data.get("name") or "",
            status=data.get("status") or ActionItemStatus.NOT_STARTED.value,
            due_date=data.get("due_date") or "",
            documents=[Document.from_dict(d) for d in data.get("documents") or []],
            assigned_to_user_id=data.get("assigned_to_user_id") or "",
            created_by_user_id=data.get("created_by_user_id"),
            opportunity_id=str(data["opportunity_id"]) if data.get("opportunity_id") else None,
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "action_item_id": self.action_item_id,
            "name": self.name,
            "status": self.status,
            "due_date": self.due_date or None,
            "documents": [d.to_dict() for d in self.documents],
            "assigned_to_user_id": self.assigned_to_user_id,
        }
        if self.created_by_user_id:
            payload["created_by_user_id"] = self.created_by_user_id
        return payload


@dataclass
class StagedActionItem:
    """An action item created locally that has never been persisted."""

    name: str = ""
    status: str = ActionItemStatus.NOT_STARTED.value
    due_date: str = ""
    documents: list[Document] = field(default_factory=list)
    assigned_to_user_id: str = ""

    def to_payload(self, default_assignee: str) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "due_date": self.due_date or None,
            "documents": [d.to_dict() for d in self.documents],
            "assigned_to_user_id": self.assigned_to_user_id or default_assignee,
        }


@dataclass
class ActionPlanSnapshot:
    """Canonical post-commit state returned by the server."""

    disposition: Disposition
    action_items: list[ActionItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActionPlanSnapshot:
        return cls(
            disposition=Disposition.from_dict(data.get("disposition") or {}),
            action_items=[ActionItem.from_dict(i) for i in data.get("actionItems") or []],
        )


@dataclass
class OpportunityContext:
    """The slice of an opportunity a draft session needs."""

    opportunity_id: str
    name: str = ""
    subscription_start_date: str | None = None
    has_services_flag: bool = False
    disposition: Disposition = field(default_factory=Disposition)
    action_items: list[ActionItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OpportunityContext:
        snapshot = ActionPlanSnapshot.from_dict(data)
        return cls(
            opportunity_id=str(data.get("id") or data.get("opportunity_id")),
            name=data.get("name") or "",
            subscription_start_date=data.get("subscription_start_date"),
            has_services_flag=bool(data.get("has_services_flag")),
            disposition=snapshot.disposition,
            action_items=snapshot.action_items,
        )

    @property
    def snapshot(self) -> ActionPlanSnapshot:
        return ActionPlanSnapshot(
            disposition=copy.deepcopy(self.disposition),
            action_items=copy.deepcopy(self.action_items),
        )
