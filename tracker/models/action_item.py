"""Action item model - one task of an opportunity's action plan."""

from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import JSON, Date, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..constants import ActionItemStatus
from .base import Base, UUIDMixin, TimestampMixin


class ActionItem(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "action_item"
    __table_args__ = (
        Index("ix_action_item_opportunity_due", "opportunity_id", "due_date"),
    )

    opportunity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("opportunity.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(300))
    status: Mapped[str] = mapped_column(String(50), default=ActionItemStatus.NOT_STARTED.value)
    due_date: Mapped[date | None] = mapped_column(Date, default=None)
    documents: Mapped[list] = mapped_column(JSON, default=list)  # [{id, text, url}]
    created_by_user_id: Mapped[str] = mapped_column(String(100))
    assigned_to_user_id: Mapped[str] = mapped_column(String(100))

    # Relationships
    opportunity: Mapped["Opportunity"] = relationship(back_populates="action_items")  # noqa: F821

    @property
    def action_item_id(self) -> uuid.UUID:
        return self.id

    def __repr__(self) -> str:
        return f"<ActionItem {self.name!r}>"
