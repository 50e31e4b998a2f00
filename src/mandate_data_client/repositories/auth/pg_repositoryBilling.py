# mandate_data_client/repositories/auth/pg_repositoryBilling.py

import logging
from uuid import UUID
from typing import Any, Dict, List, Optional
from datetime import datetime, timedelta, timezone
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from mandate_data_client.db import PlanORM, SubscriptionORM, OrganizationORM
from mandate_data_client.db.base import get_session
from mandate_data_client.db.uow import AsyncUnitOfWork
from mandate_data_client.exceptions import DatabaseError, NotFoundError
from mandate_data_client.models.plan import ACTIVE_STATUSES, PlanName, SubscriptionStatus
from mandate_data_client.utils.dates import as_utc

logger = logging.getLogger(__name__)


class BillingRepository:
    """
    Репозиторий для управления тарифными планами и подписками организаций.
    """
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # ――― тарифы ――― #

    async def get_plan_by_name(self, name: PlanName | str) -> Optional[PlanORM]:
        name = name.value if isinstance(name, PlanName) else name
        async with get_session(self._session_factory) as session:
            result = await session.execute(select(PlanORM).where(PlanORM.name == name))
            return result.scalar_one_or_none()

    async def list_active_plans(self) -> List[PlanORM]:
        """Возвращает список всех активных (не архивных) тарифных планов."""
        async with get_session(self._session_factory) as session:
            stmt = select(PlanORM).where(PlanORM.is_active.is_(True)).order_by(PlanORM.sort_order)
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def upsert_plan(self, name: PlanName, values: Dict[str, Any]) -> PlanORM:
        """Создает тариф или обновляет существующий с тем же именем."""
        async with get_session(self._session_factory) as session:
            try:
                result = await session.execute(select(PlanORM).where(PlanORM.name == name.value))
                plan = result.scalar_one_or_none()
                if plan is None:
                    plan = PlanORM(name=name.value, is_active=True, **values)
                    session.add(plan)
                else:
                    for key, value in values.items():
                        setattr(plan, key, value)
                await session.commit()
                await session.refresh(plan)
                return plan
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to upsert plan {name.value}: {e}") from e

    # ――― подписки ――― #

    async def get_subscription_for_organization(self, organization_id: UUID) -> Optional[SubscriptionORM]:
        """Подписка организации вместе с тарифом (plan грузится joined)."""
        async with get_session(self._session_factory) as session:
            stmt = select(SubscriptionORM).where(SubscriptionORM.organization_id == organization_id)
            result = await session.execute(stmt)
            return result.scalars().first()

    async def find_expired_subscriptions(self, now: Optional[datetime] = None) -> List[SubscriptionORM]:
        """
        Подписки, которые все еще числятся ACTIVE/TRIALING, хотя срок уже истек.
        Фонового истечения нет: статус должен переводить внешний процесс.
        """
        now = now or datetime.now(timezone.utc)
        async with get_session(self._session_factory) as session:
            stmt = select(SubscriptionORM).where(
                SubscriptionORM.status.in_([s.value for s in ACTIVE_STATUSES])
            )
            result = await session.execute(stmt)
            return [s for s in result.scalars().all() if as_utc(s.current_period_end) < now]

    async def update_subscription_status(
        self, subscription_id: UUID, new_status: SubscriptionStatus
    ) -> Optional[SubscriptionORM]:
        """Обновляет статус подписки. None, если подписки нет."""
        async with get_session(self._session_factory) as session:
            try:
                subscription = await session.get(SubscriptionORM, subscription_id)
                if subscription is None:
                    return None
                subscription.status = new_status.value
                if new_status is SubscriptionStatus.CANCELED:
                    subscription.canceled_at = datetime.now(timezone.utc)
                await session.commit()
                await session.refresh(subscription)
                logger.info(f"Subscription {subscription_id} moved to {new_status.value}")
                return subscription
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to update status for subscription {subscription_id}: {e}")

    async def change_plan_transaction(
        self,
        organization_id: UUID,
        plan_name: PlanName,
        period_days: int = 365,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    ) -> SubscriptionORM:
        """
        Переводит организацию на тариф в одной транзакции:
        1. Находит организацию и тариф.
        2. Перенацеливает существующую подписку (новый тариф, статус, окно) или создает новую.
        """
        try:
            async with AsyncUnitOfWork(self._session_factory) as uow:
                session = uow.session
                org = await session.get(OrganizationORM, organization_id)
                if not org:
                    raise NotFoundError(f"Organization with id {organization_id} not found.")

                result = await session.execute(select(PlanORM).where(PlanORM.name == plan_name.value))
                plan = result.scalar_one_or_none()
                if not plan:
                    raise NotFoundError(f"Plan {plan_name.value} not found. Run 'seed-plans' first.")

                now = datetime.now(timezone.utc)
                result = await session.execute(
                    select(SubscriptionORM).where(SubscriptionORM.organization_id == organization_id)
                )
                subscription = result.scalars().first()
                if subscription is None:
                    subscription = SubscriptionORM(organization_id=organization_id)
                    session.add(subscription)

                subscription.plan_id = plan.id
                subscription.plan = plan
                subscription.status = status.value
                subscription.current_period_start = now
                subscription.current_period_end = now + timedelta(days=period_days)
                subscription.cancel_at_period_end = False
                subscription.canceled_at = None
        except SQLAlchemyError as e:
            logger.error(f"Transaction failed while changing plan for organization {organization_id}: {e}")
            raise DatabaseError("Plan change failed due to a database error.") from e

        logger.info(f"Organization {organization_id} switched to plan {plan_name.value}")
        return subscription

    async def update_custom_limits(
        self,
        organization_id: UUID,
        max_users: Optional[int],
        max_storage: Optional[int],
        period_days: int = 365,
    ) -> PlanORM:
        """
        Пишет персональные лимиты в тариф подписки организации.
        Если подписки нет - берет (или создает) тариф CUSTOM и активную подписку на него.
        """
        try:
            async with AsyncUnitOfWork(self._session_factory) as uow:
                session = uow.session
                org = await session.get(OrganizationORM, organization_id)
                if not org:
                    raise NotFoundError(f"Organization with id {organization_id} not found.")

                result = await session.execute(
                    select(SubscriptionORM).where(SubscriptionORM.organization_id == organization_id)
                )
                subscription = result.scalars().first()
                if subscription is None:
                    result = await session.execute(select(PlanORM).where(PlanORM.name == PlanName.CUSTOM.value))
                    plan = result.scalar_one_or_none()
                    if plan is None:
                        plan = PlanORM(name=PlanName.CUSTOM.value, description="Limites personnalisées")
                        session.add(plan)
                        await session.flush()
                    now = datetime.now(timezone.utc)
                    subscription = SubscriptionORM(
                        organization_id=organization_id,
                        plan_id=plan.id,
                        status=SubscriptionStatus.ACTIVE.value,
                        current_period_start=now,
                        current_period_end=now + timedelta(days=period_days),
                    )
                    session.add(subscription)
                else:
                    plan = subscription.plan

                # NB: лимиты пишутся в сам тариф, т.е. затрагивают всех его подписчиков
                plan.max_users = max_users
                plan.max_storage = max_storage
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to update custom limits for {organization_id}: {e}") from e
        return plan
