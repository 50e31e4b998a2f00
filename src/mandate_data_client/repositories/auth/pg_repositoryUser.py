# src/mandate_data_client/repositories/auth/pg_repositoryUser.py

import logging
from uuid import UUID
from typing import Optional
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from mandate_data_client.db import UserORM
from mandate_data_client.db.base import get_session
from mandate_data_client.exceptions import DatabaseError, NotFoundError
from mandate_data_client.models.organization import UserCreate

logger = logging.getLogger(__name__)


class UserRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create_user(self, data: UserCreate, organization_id: Optional[UUID] = None) -> UserORM:
        user = UserORM(email=data.email, name=data.name, organization_id=organization_id)
        async with get_session(self._session_factory) as session:
            try:
                session.add(user)
                await session.commit()
                await session.refresh(user)
                return user
            except IntegrityError as e:
                await session.rollback()
                raise DatabaseError(f"User with email {data.email} already exists.") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to create user: {e}") from e

    async def get_by_id(self, user_id: UUID) -> Optional[UserORM]:
        """Находит пользователя по его UUID."""
        async with get_session(self._session_factory) as session:
            result = await session.execute(select(UserORM).where(UserORM.id == user_id))
            return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[UserORM]:
        """Находит пользователя по email."""
        async with get_session(self._session_factory) as session:
            result = await session.execute(select(UserORM).where(UserORM.email == email))
            return result.scalar_one_or_none()

    async def set_organization(self, user_id: UUID, organization_id: Optional[UUID]) -> UserORM:
        """Переключает рабочую организацию пользователя."""
        async with get_session(self._session_factory) as session:
            user = await session.get(UserORM, user_id)
            if not user:
                raise NotFoundError(f"User with id {user_id} not found.")
            user.organization_id = organization_id
            try:
                await session.commit()
                await session.refresh(user)
                return user
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to update organization for user {user_id}: {e}") from e
