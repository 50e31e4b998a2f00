from __future__ import annotations
from uuid import UUID, uuid4
import datetime as dt

from sqlalchemy import Float, Date, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import Base, CreatedAt, UpdatedAt
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from .mandate_orm import MandateORM


class DayValueORM(Base):
    __tablename__ = "day_values"
    # Не больше одной записи на (дата, мандат): параллельные вставки отсекает сама БД.
    __table_args__ = (UniqueConstraint("date", "mandate_id"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    mandate_id: Mapped[UUID] = mapped_column(
        ForeignKey("mandates.id", ondelete="CASCADE"), nullable=False, index=True
    )

    created_at: Mapped[CreatedAt]
    updated_at: Mapped[UpdatedAt]

    mandate: Mapped["MandateORM"] = relationship(back_populates="day_values")
