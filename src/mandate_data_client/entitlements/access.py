import logging
from typing import Union
from uuid import UUID

from mandate_data_client.entitlements.catalog import plan_allows, required_plans
from mandate_data_client.entitlements.resolver import SubscriptionResolver
from mandate_data_client.models.entitlements import Feature, FeatureAccessDecision
from mandate_data_client.repositories.auth.pg_repositoryUser import UserRepository

logger = logging.getLogger(__name__)


class FeatureAccessEvaluator:
    """
    Пользователь -> организация -> действующий тариф -> разрешена ли фича.
    Отказ - обычный результат (False), а не исключение. Ошибки БД пробрасываются.
    """
    def __init__(self, user_repo: UserRepository, resolver: SubscriptionResolver):
        self._users = user_repo
        self._resolver = resolver

    async def evaluate(self, user_id: UUID, feature: Union[Feature, str]) -> FeatureAccessDecision:
        try:
            feature = Feature(feature)
        except ValueError:
            logger.warning(f"Access check for unknown feature '{feature}' denied")
            return FeatureAccessDecision(allowed=False)

        needed = sorted(required_plans(feature), key=lambda p: p.value)
        user = await self._users.get_by_id(user_id)
        if user is None or user.organization_id is None:
            return FeatureAccessDecision(allowed=False, feature=feature, required_plans=needed)

        plan = await self._resolver.resolve_effective_plan(user.organization_id)
        allowed = plan_allows(plan.plan_name, feature)
        if not allowed:
            logger.info(f"Feature '{feature.value}' denied for user {user_id} on plan {plan.plan_name.value}")
        return FeatureAccessDecision(
            allowed=allowed,
            feature=feature,
            current_plan=plan.plan_name,
            required_plans=needed,
            organization_id=user.organization_id,
        )

    async def has_feature_access(self, user_id: UUID, feature: Union[Feature, str]) -> bool:
        decision = await self.evaluate(user_id, feature)
        return decision.allowed
