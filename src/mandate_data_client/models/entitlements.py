from __future__ import annotations
from enum import Enum
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel

from .plan import PlanName


class Feature(str, Enum):
    PAYROLL = "payroll"
    ADVANCED_REPORTS = "advanced_reports"
    BULK_IMPORT = "bulk_import"
    API_ACCESS = "api_access"
    TEAM_MANAGEMENT = "team_management"


class LimitType(str, Enum):
    USERS = "users"
    MANDATES = "mandates"
    STORAGE = "storage"
    # Объявлены в каталоге, но не считаются: текущее значение всегда 0.
    OBJECTS = "objects"
    SECTORS = "sectors"
    ARTICLES = "articles"
    TASKS = "tasks"


class FeatureAccessDecision(BaseModel):
    allowed: bool
    feature: Optional[Feature] = None
    current_plan: Optional[PlanName] = None
    required_plans: List[PlanName] = []
    organization_id: Optional[UUID] = None


class LimitCheckResult(BaseModel):
    allowed: bool
    current: int
    limit: Optional[int] = None
    unlimited: bool
    percentage: Optional[int] = None
    remaining: Optional[int] = None


class ActionCheckResult(BaseModel):
    allowed: bool
    current: int
    limit: Optional[int] = None
    reason: Optional[str] = None


class LimitsSummary(BaseModel):
    plan_name: PlanName
    plan_id: UUID
    is_active: bool
    limits: dict[LimitType, LimitCheckResult]
