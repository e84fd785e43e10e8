"""Due-date classification and wording for action items."""

from __future__ import annotations

from datetime import date
from enum import Enum

from ..dates import coerce_date


class DueDateStatus(str, Enum):
    NO_DUE_DATE = "no-due-date"
    OVERDUE = "overdue"
    DUE_SOON = "due-soon"
    UPCOMING = "upcoming"
    DUE_LATER = "due-later"


# rich style per status, used by the CLI plan table
DUE_DATE_STYLES = {
    DueDateStatus.OVERDUE: "bold red",
    DueDateStatus.DUE_SOON: "yellow",
    DueDateStatus.UPCOMING: "cyan",
    DueDateStatus.DUE_LATER: "green",
    DueDateStatus.NO_DUE_DATE: "dim",
}


def _days_until(due: date, today: date | None) -> int:
    return (due - (today or date.today())).days


def get_due_date_status(value: str | date | None, today: date | None = None) -> DueDateStatus:
    due = coerce_date(value)
    if due is None:
        return DueDateStatus.NO_DUE_DATE
    diff = _days_until(due, today)
    if diff < 0:
        return DueDateStatus.OVERDUE
    if diff <= 3:
        return DueDateStatus.DUE_SOON
    if diff <= 7:
        return DueDateStatus.UPCOMING
    return DueDateStatus.DUE_LATER


def _pluralize(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def get_due_date_descriptor(value: str | date | None, today: date | None = None) -> str:
    """Short relative wording ("2 days overdue", "Due today"); empty when far out."""
    due = coerce_date(value)
    if due is None:
        return "No due date"
    diff = _days_until(due, today)
    if diff < 0:
        return f"{_pluralize(abs(diff), 'day', 'days')} overdue"
    if diff == 0:
        return "Due today"
    if diff == 1:
        return "Due tomorrow"
    return ""


def format_due_date(value: str | date | None) -> str:
    due = coerce_date(value)
    if due is None:
        return "No due date"
    return f"{due.strftime('%B')} {due.day}, {due.year}"
