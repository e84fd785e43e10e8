"""Disposition model - the reviewer's call on an opportunity.

``version`` is the optimistic-lock token: it starts at 1 and the action-plan
engine bumps it by exactly one on every committed update.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..constants import DEFAULT_DISPOSITION_STATUS, INITIAL_DISPOSITION_VERSION
from .base import Base, UUIDMixin, TimestampMixin


class Disposition(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "disposition"

    opportunity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("opportunity.id", ondelete="CASCADE"), unique=True, index=True
    )
    status: Mapped[str] = mapped_column(String(50), default=DEFAULT_DISPOSITION_STATUS.value)
    notes: Mapped[str] = mapped_column(Text, default="")
    reason: Mapped[str | None] = mapped_column(Text, default=None)
    services_amount_override: Mapped[float | None] = mapped_column(Float, default=None)
    forecast_category_override: Mapped[str | None] = mapped_column(String(50), default=None)
    version: Mapped[int] = mapped_column(Integer, default=INITIAL_DISPOSITION_VERSION)
    last_updated_by_user_id: Mapped[str | None] = mapped_column(String(100), default=None)
    last_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    # Relationships
    opportunity: Mapped["Opportunity"] = relationship(back_populates="disposition")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Disposition {self.status!r} v{self.version}>"
