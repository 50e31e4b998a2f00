from __future__ import annotations
from uuid import UUID, uuid4
from datetime import date
from typing import List, Optional

from sqlalchemy import String, Boolean, Float, Date, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import Base, CreatedAt, UpdatedAt
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from ..organizations.organization_orm import OrganizationORM
    from .day_value_orm import DayValueORM


class MandateORM(Base):
    """Заведение (отель, ресторан), по которому ведется дневная выручка (CA)."""
    __tablename__ = "mandates"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    group: Mapped[str] = mapped_column(String(100), nullable=False, default="HEBERGEMENT")
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Кэш агрегатов по day_values. Пишется только через MandateRepository.recompute_stats,
    # никаких инкрементов по месту.
    total_revenue: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    last_entry: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    created_at: Mapped[CreatedAt]
    updated_at: Mapped[UpdatedAt]

    organization: Mapped["OrganizationORM"] = relationship(back_populates="mandates")
    day_values: Mapped[List["DayValueORM"]] = relationship(
        back_populates="mandate", cascade="all, delete-orphan"
    )
