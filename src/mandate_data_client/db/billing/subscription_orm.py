# mandate_data_client/db/billing/subscription_orm.py
from __future__ import annotations
from uuid import UUID, uuid4
from datetime import datetime
from typing import Optional
from sqlalchemy import String, ForeignKey, DateTime, Boolean, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..base import Base, CreatedAt, UpdatedAt
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..organizations.organization_orm import OrganizationORM
    from .plan_orm import PlanORM

class SubscriptionORM(Base):
    __tablename__ = "subscriptions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    # У организации не больше одной подписки: при смене тарифа строка переиспользуется.
    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    plan_id: Mapped[UUID] = mapped_column(ForeignKey("plans.id"), nullable=False, index=True)

    # ACTIVE, TRIALING, PAST_DUE, CANCELED, INCOMPLETE, UNPAID, EXPIRED
    status: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    current_period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    current_period_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    canceled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[CreatedAt]
    updated_at: Mapped[UpdatedAt]

    organization: Mapped["OrganizationORM"] = relationship(back_populates="subscription")
    plan: Mapped["PlanORM"] = relationship(lazy="joined")
