"""Status enums and shared constants for dispositions and action items."""

from __future__ import annotations

from enum import Enum


class DispositionStatus(str, Enum):
    NOT_REVIEWED = "Not Reviewed"
    SERVICES_FIT = "Services Fit"
    NO_ACTION_NEEDED = "No Action Needed"
    WATCHLIST = "Watchlist"


class ActionItemStatus(str, Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


DEFAULT_DISPOSITION_STATUS = DispositionStatus.NOT_REVIEWED
INITIAL_DISPOSITION_VERSION = 1


def status_requires_reason(status: str, has_services_flag: bool) -> bool:
    """A "No Services Opp" call on an opportunity without services needs a reason."""
    return status == DispositionStatus.NO_ACTION_NEEDED.value and not has_services_flag
