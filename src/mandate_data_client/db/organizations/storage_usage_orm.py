from __future__ import annotations
from uuid import UUID
from sqlalchemy import ForeignKey, BigInteger
from sqlalchemy.orm import Mapped, mapped_column
from ..base import Base, UpdatedAt


class StorageUsageORM(Base):
    __tablename__ = "storage_usage"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True
    )
    total_used_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    updated_at: Mapped[UpdatedAt]
