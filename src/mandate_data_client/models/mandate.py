from __future__ import annotations
from uuid import UUID
import datetime as dt
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field


class MandateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    group: str = "HEBERGEMENT"
    active: bool = True


class MandateInDB(MandateCreate):
    id: UUID
    organization_id: UUID
    total_revenue: float = 0.0
    last_entry: Optional[date] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class DayValueCreate(BaseModel):
    date: dt.date
    value: float = Field(..., ge=0)


class DayValueInDB(DayValueCreate):
    id: UUID
    mandate_id: UUID

    model_config = {"from_attributes": True}


class MandateStatsDrift(BaseModel):
    """Расхождение кэша мандата с пересчитанными агрегатами."""
    mandate_id: UUID
    name: str
    stored_total: float
    calculated_total: float
    stored_last_entry: Optional[date] = None
    calculated_last_entry: Optional[date] = None
