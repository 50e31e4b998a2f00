# Файл: mandate_data_client/entitlements/resolver.py

import logging
from typing import Optional
from uuid import UUID

from mandate_data_client.db import PlanORM, SubscriptionORM
from mandate_data_client.exceptions import ConfigurationError
from mandate_data_client.models.plan import (ACTIVE_STATUSES, EffectivePlan, PlanInDB,
                                              PlanName, SubscriptionStatus)
from mandate_data_client.repositories.auth.pg_repositoryBilling import BillingRepository

logger = logging.getLogger(__name__)


def _plan_name(plan: PlanORM) -> PlanName:
    try:
        return PlanName(plan.name)
    except ValueError:
        raise ConfigurationError(f"Plan '{plan.name}' is not part of the plan catalog.")


def is_subscription_active(subscription: Optional[SubscriptionORM]) -> bool:
    if subscription is None:
        return False
    try:
        return SubscriptionStatus(subscription.status) in ACTIVE_STATUSES
    except ValueError:
        # неизвестный статус в БД трактуем как неактивный
        return False


def effective_plan(subscription: Optional[SubscriptionORM], free_plan: Optional[PlanORM]) -> EffectivePlan:
    """
    Организация -> действующий тариф.

    Тариф подписки действует только в статусах ACTIVE/TRIALING.
    Во всех остальных случаях (подписки нет, отменена, просрочена) - FREE, is_active=False.
    Если FREE нет в каталоге, это ошибка конфигурации: других запасных вариантов нет.
    """
    if is_subscription_active(subscription):
        return EffectivePlan(
            plan_id=subscription.plan.id,
            plan_name=_plan_name(subscription.plan),
            is_active=True,
            subscription_status=SubscriptionStatus(subscription.status),
            plan=PlanInDB.model_validate(subscription.plan),
        )

    if free_plan is None:
        raise ConfigurationError("Reference plan FREE is missing from the plan catalog. Run 'seed-plans'.")

    status = None
    if subscription is not None and subscription.status in SubscriptionStatus.__members__:
        status = SubscriptionStatus(subscription.status)
    return EffectivePlan(
        plan_id=free_plan.id,
        plan_name=PlanName.FREE,
        is_active=False,
        subscription_status=status,
        plan=PlanInDB.model_validate(free_plan),
    )


class SubscriptionResolver:
    def __init__(self, billing_repo: BillingRepository):
        self._billing = billing_repo

    async def resolve_effective_plan(self, organization_id: UUID) -> EffectivePlan:
        subscription = await self._billing.get_subscription_for_organization(organization_id)
        if is_subscription_active(subscription):
            return effective_plan(subscription, None)

        free_plan = await self._billing.get_plan_by_name(PlanName.FREE)
        resolved = effective_plan(subscription, free_plan)
        logger.debug(
            f"Organization {organization_id} falls back to FREE "
            f"(subscription status: {subscription.status if subscription else 'none'})"
        )
        return resolved
