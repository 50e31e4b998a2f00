from __future__ import annotations
from uuid import UUID, uuid4
from typing import List, Optional

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import Base, CreatedAt, UpdatedAt
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from ..billing.subscription_orm import SubscriptionORM
    from ..mandates.mandate_orm import MandateORM
    from .organization_user_orm import OrganizationUserORM
    from .storage_usage_orm import StorageUsageORM


class OrganizationORM(Base):
    __tablename__ = "organizations"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[CreatedAt]
    updated_at: Mapped[UpdatedAt]

    subscription: Mapped[Optional["SubscriptionORM"]] = relationship(
        back_populates="organization", uselist=False, cascade="all, delete-orphan"
    )
    members: Mapped[List["OrganizationUserORM"]] = relationship(
        back_populates="organization", cascade="all, delete-orphan"
    )
    mandates: Mapped[List["MandateORM"]] = relationship(
        back_populates="organization", cascade="all, delete-orphan"
    )
    storage_usage: Mapped[Optional["StorageUsageORM"]] = relationship(
        uselist=False, cascade="all, delete-orphan"
    )
