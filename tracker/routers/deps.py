"""Request dependencies shared by the JSON routers."""

from __future__ import annotations

import uuid

from fastapi import HTTPException, Request

from ..config import settings


def get_acting_user_id(request: Request) -> str:
    """Acting user from the identity header; authentication happens upstream."""
    user_id = (request.headers.get(settings.user_header) or "").strip()
    if not user_id:
        raise HTTPException(status_code=400, detail="User ID header is required.")
    return user_id


def parse_opportunity_id(opportunity_id: str) -> uuid.UUID:
    """Path ids that are not UUIDs cannot name an opportunity."""
    try:
        return uuid.UUID(opportunity_id)
    except (TypeError, ValueError):
        raise HTTPException(status_code=404, detail="Opportunity not found.") from None
