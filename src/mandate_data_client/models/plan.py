# Файл: mandate_data_client/models/plan.py

from __future__ import annotations
from enum import Enum
from uuid import UUID
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class PlanName(str, Enum):
    FREE = "FREE"
    PREMIUM = "PREMIUM"
    SUPER_ADMIN = "SUPER_ADMIN"
    ILLIMITE = "ILLIMITE"
    CUSTOM = "CUSTOM"


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    TRIALING = "TRIALING"
    PAST_DUE = "PAST_DUE"
    CANCELED = "CANCELED"
    INCOMPLETE = "INCOMPLETE"
    UNPAID = "UNPAID"
    EXPIRED = "EXPIRED"


# Только в этих статусах подписка дает свой тариф, иначе действует FREE.
ACTIVE_STATUSES = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING})


class PlanInDB(BaseModel):
    id: UUID
    name: str
    description: str | None = None
    price_monthly: float = 0
    price_yearly: float = 0
    max_users: int | None = None
    max_mandates: int | None = None
    max_storage: int | None = None
    max_api_calls: int | None = None
    has_advanced_reports: bool = False
    has_api_access: bool = False
    has_custom_branding: bool = False
    allow_payroll_access: bool = False
    allow_bulk_import: bool = False
    sort_order: int = 0
    support_level: str | None = None
    is_active: bool = True

    model_config = {"from_attributes": True}


class EffectivePlan(BaseModel):
    """Тариф, который реально действует для организации прямо сейчас."""
    plan_id: UUID
    plan_name: PlanName
    is_active: bool
    subscription_status: Optional[SubscriptionStatus] = None
    plan: PlanInDB


class SubscriptionInDB(BaseModel):
    id: UUID
    organization_id: UUID
    plan_id: UUID
    status: SubscriptionStatus
    current_period_start: datetime
    current_period_end: datetime
    cancel_at_period_end: bool = False

    model_config = {"from_attributes": True}
