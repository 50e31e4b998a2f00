# Файл: mandate_data_client/repositories/auth/pg_repositoryOrganization.py

import logging
from uuid import UUID
from typing import Optional, List
from sqlalchemy import select, func, text, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from mandate_data_client.db import OrganizationORM, OrganizationUserORM, StorageUsageORM, UserORM
from mandate_data_client.db.base import get_session
from mandate_data_client.exceptions import DatabaseError, NotFoundError
from mandate_data_client.models.organization import OrganizationCreate

logger = logging.getLogger(__name__)


class OrganizationRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def check_connection(self):
        """Проверяет соединение с базой данных, выполняя простой запрос."""
        logger.debug("Checking database connection...")
        async with get_session(self._session_factory) as session:
            try:
                await session.execute(text("SELECT 1"))
                logger.debug("Database connection successful.")
            except SQLAlchemyError as e:
                logger.error(f"Database connection failed: {e}")
                raise DatabaseError("Failed to connect to the database.") from e

    async def create_organization(self, data: OrganizationCreate) -> OrganizationORM:
        org = OrganizationORM(name=data.name)
        async with get_session(self._session_factory) as session:
            try:
                session.add(org)
                await session.commit()
                await session.refresh(org)
                logger.info(f"Created organization '{org.name}' with id {org.id}")
                return org
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to create organization: {e}") from e

    async def get_by_id(self, organization_id: UUID) -> Optional[OrganizationORM]:
        async with get_session(self._session_factory) as session:
            return await session.get(OrganizationORM, organization_id)

    async def list_organizations(self) -> List[OrganizationORM]:
        async with get_session(self._session_factory) as session:
            result = await session.execute(select(OrganizationORM).order_by(OrganizationORM.name))
            return list(result.scalars().all())

    # ――― участники ――― #

    async def add_member(self, organization_id: UUID, user_id: UUID, role: str = "member") -> OrganizationUserORM:
        """
        Добавляет пользователя в организацию. Если у пользователя еще нет рабочей
        организации, она становится этой.
        """
        async with get_session(self._session_factory) as session:
            org = await session.get(OrganizationORM, organization_id)
            if not org:
                raise NotFoundError(f"Organization with id {organization_id} not found.")
            user = await session.get(UserORM, user_id)
            if not user:
                raise NotFoundError(f"User with id {user_id} not found.")

            membership = OrganizationUserORM(organization_id=organization_id, user_id=user_id, role=role)
            session.add(membership)
            if user.organization_id is None:
                user.organization_id = organization_id
            try:
                await session.commit()
                await session.refresh(membership)
                logger.info(f"Added user {user_id} to organization {organization_id} as '{role}'")
                return membership
            except IntegrityError as e:
                await session.rollback()
                raise DatabaseError(f"User {user_id} is already a member of organization {organization_id}.") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to add member: {e}") from e

    async def remove_member(self, organization_id: UUID, user_id: UUID) -> bool:
        """Удаляет членство. Возвращает False, если пользователь не состоял в организации."""
        async with get_session(self._session_factory) as session:
            try:
                result = await session.execute(
                    delete(OrganizationUserORM).where(
                        OrganizationUserORM.organization_id == organization_id,
                        OrganizationUserORM.user_id == user_id,
                    )
                )
                user = await session.get(UserORM, user_id)
                if user is not None and user.organization_id == organization_id:
                    user.organization_id = None
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to remove member: {e}") from e
        if result.rowcount == 0:
            logger.warning(f"User {user_id} was not in organization {organization_id}")
            return False
        logger.info(f"Removed user {user_id} from organization {organization_id}")
        return True

    async def count_members(self, organization_id: UUID) -> int:
        async with get_session(self._session_factory) as session:
            stmt = select(func.count()).select_from(OrganizationUserORM).where(
                OrganizationUserORM.organization_id == organization_id
            )
            return (await session.execute(stmt)).scalar_one()

    # ――― хранилище ――― #

    async def get_storage_used(self, organization_id: UUID) -> int:
        async with get_session(self._session_factory) as session:
            usage = await session.get(StorageUsageORM, organization_id)
            return int(usage.total_used_bytes) if usage else 0

    async def add_storage_usage(self, organization_id: UUID, delta_bytes: int) -> int:
        """Сдвигает счетчик занятого места (delta может быть отрицательной). Не уходит ниже нуля."""
        async with get_session(self._session_factory) as session:
            try:
                usage = await session.get(StorageUsageORM, organization_id)
                if usage is None:
                    usage = StorageUsageORM(organization_id=organization_id, total_used_bytes=0)
                    session.add(usage)
                usage.total_used_bytes = max(0, int(usage.total_used_bytes or 0) + delta_bytes)
                await session.commit()
                return usage.total_used_bytes
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to update storage usage for {organization_id}: {e}") from e
