"""Action-plan request/response schemas.

Request models normalize what the client sends (trimmed documents, backfilled
document ids, blank due dates as null) so the engine only ever sees clean
values. Response models serialize the canonical post-commit snapshot.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import (
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from ..constants import ActionItemStatus, DispositionStatus
from ..errors import ActionPlanValidationError

_URL_ADAPTER = TypeAdapter(AnyUrl)


# ── Request payload ───────────────────────────────────────────────────────

class DocumentInput(BaseModel):
    id: str = ""
    text: str = ""
    url: str = ""

    @field_validator("id", "text", "url", mode="before")
    @classmethod
    def _none_as_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("text", "url")
    @classmethod
    def _trim(cls, value: str) -> str:
        return value.strip()

    @field_validator("url")
    @classmethod
    def _absolute_url(cls, value: str) -> str:
        if not value:
            return value
        try:
            _URL_ADAPTER.validate_python(value)
        except ValidationError:
            raise ValueError(f"Invalid document URL: {value!r}") from None
        return value

    @field_validator("id")
    @classmethod
    def _backfill_id(cls, value: str) -> str:
        return value.strip() or str(uuid.uuid4())


class DispositionInput(BaseModel):
    status: DispositionStatus
    version: StrictInt
    # Omitted notes keep the stored value; an explicit null is malformed.
    notes: StrictStr | None = None
    reason: str | None = None
    services_amount_override: float | None = None
    forecast_category_override: str | None = None

    @field_validator("notes", mode="before")
    @classmethod
    def _notes_not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("notes must be a string")
        return value

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent, minus the lock token."""
        data = self.model_dump(exclude_unset=True, exclude={"version"})
        if "status" in data:
            data["status"] = self.status.value
        return data


class ActionItemInput(BaseModel):
    action_item_id: uuid.UUID | None = None
    name: str
    status: ActionItemStatus
    due_date: date | None = None
    documents: list[DocumentInput] = Field(default_factory=list)
    assigned_to_user_id: str
    created_by_user_id: str | None = None

    @field_validator("action_item_id", "due_date", mode="before")
    @classmethod
    def _blank_as_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("documents", mode="before")
    @classmethod
    def _null_documents(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("name", "assigned_to_user_id")
    @classmethod
    def _required_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    def document_dicts(self) -> list[dict[str, str]]:
        return [doc.model_dump() for doc in self.documents]


class ActionPlanInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    disposition: DispositionInput
    action_items: list[ActionItemInput] = Field(alias="actionItems")

    @model_validator(mode="after")
    def _unique_ids(self) -> "ActionPlanInput":
        seen: set[uuid.UUID] = set()
        for item in self.action_items:
            if item.action_item_id is None:
                continue
            if item.action_item_id in seen:
                raise ValueError(f"Duplicate action item: {item.action_item_id}")
            seen.add(item.action_item_id)
        return self


def _describe(exc: ValidationError) -> str:
    first = exc.errors()[0]
    where = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid value")
    return f"{where}: {message}" if where else message


def parse_action_plan_payload(payload: Any) -> ActionPlanInput:
    """Validate a raw request body, raising ActionPlanValidationError on failure."""
    if not isinstance(payload, dict):
        raise ActionPlanValidationError("Action plan payload must be an object.")
    if not payload.get("disposition"):
        raise ActionPlanValidationError("Disposition payload is required.")
    if payload.get("actionItems") is None:
        raise ActionPlanValidationError("Action items payload is required.")
    if not isinstance(payload["actionItems"], list):
        raise ActionPlanValidationError("Action items must be an array.")
    try:
        return ActionPlanInput.model_validate(payload)
    except ValidationError as exc:
        raise ActionPlanValidationError(_describe(exc)) from exc


# ── Response snapshot ─────────────────────────────────────────────────────

class DocumentOut(BaseModel):
    id: str
    text: str = ""
    url: str = ""


class DispositionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: str
    notes: str = ""
    reason: str | None = None
    services_amount_override: float | None = None
    forecast_category_override: str | None = None
    version: int
    last_updated_by_user_id: str | None = None
    last_updated_at: datetime | None = None


class ActionItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    action_item_id: uuid.UUID
    opportunity_id: uuid.UUID
    name: str
    status: str
    due_date: date | None = None
    documents: list[DocumentOut] = Field(default_factory=list)
    created_by_user_id: str
    assigned_to_user_id: str


class ActionPlanOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    disposition: DispositionOut
    action_items: list[ActionItemOut] = Field(serialization_alias="actionItems")


class HistoryEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    opportunity_id: uuid.UUID
    updated_by_user_id: str
    timestamp: datetime
    change_details: dict
