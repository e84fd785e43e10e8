"""Opportunity schemas."""

from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel, ConfigDict

from .action_plan import DispositionOut


class OpportunityCreate(BaseModel):
    name: str
    account_name: str | None = None
    owner_name: str | None = None
    stage_name: str | None = None
    subscription_start_date: date | None = None
    close_date: date | None = None
    has_services_flag: bool = False
    amount: float | None = None
    services_forecast: float | None = None
    forecast_category: str | None = None


class OpportunityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    account_name: str | None = None
    owner_name: str | None = None
    stage_name: str | None = None
    subscription_start_date: date | None = None
    close_date: date | None = None
    has_services_flag: bool = False
    amount: float | None = None
    services_forecast: float | None = None
    forecast_category: str | None = None
    disposition: DispositionOut | None = None
