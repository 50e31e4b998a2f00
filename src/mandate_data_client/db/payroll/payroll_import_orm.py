from __future__ import annotations
from uuid import UUID, uuid4
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Float, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..base import Base, CreatedAt


class PayrollImportHistoryORM(Base):
    """
    Пакетный импорт из внешней системы учета времени (Gastrotime).
    import_date - момент загрузки файла, а не период, который он описывает (period).
    """
    __tablename__ = "payroll_import_history"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    mandate_id: Mapped[UUID] = mapped_column(
        ForeignKey("mandates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # 'YYYY-MM'
    period: Mapped[str] = mapped_column(String(7), nullable=False)
    import_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    total_employees: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    filename: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="gastrotime")

    created_at: Mapped[CreatedAt]
