"""Action-plan error taxonomy shared by the server engine and the client.

Each error carries the HTTP status it maps to so routers can translate
service failures into responses, and the API client can translate responses
back into the same classes.
"""

from __future__ import annotations


class ActionPlanError(Exception):
    """Base exception for action-plan failures."""

    status_code: int | None = None

    def __init__(self, message: str, status_code: int | None = None, response: str | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.response = response
        super().__init__(self.message)


class ActionPlanValidationError(ActionPlanError):
    """Malformed or incomplete payload. Fix the input before resending."""

    status_code = 400


class ActionPlanNotFoundError(ActionPlanError):
    """The opportunity does not exist."""

    status_code = 404


class ActionPlanConflictError(ActionPlanError):
    """Optimistic-lock version mismatch. Refetch before retrying."""

    status_code = 409


class DraftLockedError(RuntimeError):
    """A local draft edit was attempted while a save is in flight."""


_ERRORS_BY_STATUS: dict[int, type[ActionPlanError]] = {
    400: ActionPlanValidationError,
    404: ActionPlanNotFoundError,
    409: ActionPlanConflictError,
}


def error_for_status(status_code: int, message: str, response: str | None = None) -> ActionPlanError:
    """Build the typed error matching an HTTP status code."""
    cls = _ERRORS_BY_STATUS.get(status_code, ActionPlanError)
    return cls(message, status_code, response)
