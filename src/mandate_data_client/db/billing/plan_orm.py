# mandate_data_client/db/billing/plan_orm.py
from __future__ import annotations
from uuid import UUID, uuid4
from typing import Optional
from sqlalchemy import String, Boolean, Numeric, Text, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from ..base import Base, CreatedAt, UpdatedAt

class PlanORM(Base):
    __tablename__ = "plans"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    # FREE, PREMIUM, SUPER_ADMIN, ILLIMITE, CUSTOM (см. models.plan.PlanName)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    price_monthly: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    price_yearly: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)

    # Лимиты. NULL = без ограничений. max_storage в мегабайтах.
    max_users: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max_mandates: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max_storage: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max_api_calls: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    has_advanced_reports: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_api_access: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_custom_branding: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    allow_payroll_access: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    allow_bulk_import: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    support_level: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Архивные тарифы не удаляем: на них могут ссылаться старые подписки.
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[CreatedAt]
    updated_at: Mapped[UpdatedAt]
