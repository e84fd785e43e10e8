"""Default action-plan template for newly dispositioned "Services Fit" opportunities."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable

from ..constants import ActionItemStatus
from .types import ActionItem, StagedActionItem


@dataclass(frozen=True)
class PlanTemplate:
    name: str
    offset_days: int
    status: str = ActionItemStatus.NOT_STARTED.value


DEFAULT_PLAN_TEMPLATES: tuple[PlanTemplate, ...] = (
    PlanTemplate("Contact Opp Owner", 0),
    PlanTemplate("Scope and develop proposal", 7),
    PlanTemplate("Share proposal", 14),
    PlanTemplate("Finalize proposal", 21),
    PlanTemplate("Ironclad approval", 28),
)

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def parse_start_date(value: str | date | None) -> date | None:
    """Parse a subscription start date; anything but a real YYYY-MM-DD is None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    match = _ISO_DATE.match(value.strip())
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def generate_default_plan(
    start_date: str | date | None,
    existing: Iterable[ActionItem] = (),
    assigned_to_user_id: str = "",
) -> list[StagedActionItem]:
    """Build the five template tasks.

    Due dates are offsets from ``start_date``. An existing item with the same
    name and a due date keeps its date.
    """
    baseline = parse_start_date(start_date)
    dated = {item.name: item.due_date for item in existing if item.due_date}

    plan: list[StagedActionItem] = []
    for template in DEFAULT_PLAN_TEMPLATES:
        if template.name in dated:
            due = dated[template.name]
        elif baseline is not None:
            due = (baseline + timedelta(days=template.offset_days)).isoformat()
        else:
            due = ""
        plan.append(StagedActionItem(
            name=template.name,
            status=template.status,
            due_date=due,
            assigned_to_user_id=assigned_to_user_id,
        ))
    return plan
