"""Disposition history model - append-only audit trail of committed dispositions."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DispositionHistory(UUIDMixin, Base):
    __tablename__ = "disposition_history"

    opportunity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("opportunity.id", ondelete="CASCADE"), index=True
    )
    updated_by_user_id: Mapped[str] = mapped_column(String(100))
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    change_details: Mapped[dict] = mapped_column(JSON, default=dict)

    def __repr__(self) -> str:
        return f"<DispositionHistory {self.opportunity_id} by {self.updated_by_user_id}>"
