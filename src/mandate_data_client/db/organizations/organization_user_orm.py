from __future__ import annotations
from uuid import UUID, uuid4
from sqlalchemy import ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..base import Base, CreatedAt
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from .organization_orm import OrganizationORM
    from .users import UserORM


class OrganizationUserORM(Base):
    """Членство пользователя в организации. Именно эти строки считаются в лимите users."""
    __tablename__ = "organization_users"
    __table_args__ = (UniqueConstraint("organization_id", "user_id"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # 'owner' | 'admin' | 'member'
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="member")
    created_at: Mapped[CreatedAt]

    organization: Mapped["OrganizationORM"] = relationship(back_populates="members")
    user: Mapped["UserORM"] = relationship()
