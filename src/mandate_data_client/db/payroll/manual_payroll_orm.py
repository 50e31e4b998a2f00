from __future__ import annotations
from uuid import UUID, uuid4
from typing import Optional

from sqlalchemy import Integer, Float, Text, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..base import Base, CreatedAt, UpdatedAt


class ManualPayrollEntryORM(Base):
    """Масса зарплат, введенная вручную за конкретный месяц."""
    __tablename__ = "manual_payroll_entries"
    __table_args__ = (UniqueConstraint("mandate_id", "year", "month"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    mandate_id: Mapped[UUID] = mapped_column(
        ForeignKey("mandates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)

    gross_amount: Mapped[float] = mapped_column(Float, nullable=False)
    social_charges: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_cost: Mapped[float] = mapped_column(Float, nullable=False)
    employee_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[CreatedAt]
    updated_at: Mapped[UpdatedAt]
