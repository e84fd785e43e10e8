"""Opportunity model - deals eligible for a services upsell."""

from __future__ import annotations

from datetime import date

from sqlalchemy import Boolean, Date, Float, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin


class Opportunity(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "opportunity"

    name: Mapped[str] = mapped_column(String(300))
    account_name: Mapped[str | None] = mapped_column(String(300), default=None)
    owner_name: Mapped[str | None] = mapped_column(String(200), default=None)
    stage_name: Mapped[str | None] = mapped_column(String(100), default=None)
    subscription_start_date: Mapped[date | None] = mapped_column(Date, default=None)
    close_date: Mapped[date | None] = mapped_column(Date, default=None)
    has_services_flag: Mapped[bool] = mapped_column(Boolean, default=False)
    amount: Mapped[float | None] = mapped_column(Float, default=None)
    services_forecast: Mapped[float | None] = mapped_column(Float, default=None)
    forecast_category: Mapped[str | None] = mapped_column(String(50), default=None)  # Commit, Best Case, ...

    # Relationships
    disposition: Mapped["Disposition"] = relationship(  # noqa: F821
        back_populates="opportunity", uselist=False, cascade="all, delete-orphan"
    )
    action_items: Mapped[list["ActionItem"]] = relationship(  # noqa: F821
        back_populates="opportunity", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Opportunity {self.name!r}>"
