from __future__ import annotations
from uuid import UUID
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class OrganizationInDB(OrganizationCreate):
    id: UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class UserCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    name: Optional[str] = None


class UserInDB(UserCreate):
    id: UUID
    organization_id: Optional[UUID] = None
    is_active: bool = True

    model_config = {"from_attributes": True}
