# Файл: mandate_data_client/entitlements/limits.py
"""
Проверка лимитов организации по измерениям (users, mandates, storage, ...).

Две разные операции:
- check_organization_limits - отчет о текущем состоянии (уже набранное количество);
- can_perform_action - проверка ПЕРЕД созданием: к текущему значению прибавляется
  планируемый прирост. limit == 0 запрещает любое создание.
"""
import asyncio
import logging
from typing import Optional, Union
from uuid import UUID

from mandate_data_client.entitlements.catalog import LIMIT_COLUMNS, parse_limit_type
from mandate_data_client.entitlements.resolver import SubscriptionResolver
from mandate_data_client.exceptions import NotFoundError, ValidationError
from mandate_data_client.models.entitlements import (ActionCheckResult, LimitCheckResult,
                                                      LimitsSummary, LimitType)
from mandate_data_client.models.plan import EffectivePlan
from mandate_data_client.repositories.auth.pg_repositoryOrganization import OrganizationRepository
from mandate_data_client.repositories.pg_repositoryMandate import MandateRepository

logger = logging.getLogger(__name__)

_DENIAL_MESSAGES = {
    LimitType.USERS: "User limit reached ({current}/{limit}). Upgrade to Premium to invite more users.",
    LimitType.MANDATES: "Mandate limit reached ({current}/{limit}). Upgrade to Premium to create more establishments.",
    LimitType.STORAGE: "Storage limit reached ({current}/{limit} bytes).",
}


def build_limit_result(current: int, limit: Optional[int]) -> LimitCheckResult:
    if limit is None:
        return LimitCheckResult(allowed=True, current=current, limit=None, unlimited=True)

    # Отчет о состоянии: allowed = "не вышли за лимит". Возможность создать еще одну
    # единицу проверяет can_perform_action. limit == 0 - это "ничего нельзя", а не "без ограничений".
    percentage = round(current / limit * 100) if limit > 0 else 100
    return LimitCheckResult(
        allowed=current <= limit,
        current=current,
        limit=limit,
        unlimited=False,
        percentage=percentage,
        remaining=max(0, limit - current),
    )


def plan_limit(plan: EffectivePlan, dimension: LimitType, storage_unit_bytes: int) -> Optional[int]:
    column = LIMIT_COLUMNS[dimension]
    if column is None:
        return None
    value = getattr(plan.plan, column)
    if value is None:
        return None
    if dimension is LimitType.STORAGE:
        return value * storage_unit_bytes
    return value


class LimitChecker:
    def __init__(
        self,
        org_repo: OrganizationRepository,
        mandate_repo: MandateRepository,
        resolver: SubscriptionResolver,
        storage_unit_bytes: int = 1024 * 1024,
    ):
        self._orgs = org_repo
        self._mandates = mandate_repo
        self._resolver = resolver
        self._storage_unit_bytes = storage_unit_bytes

    async def _current_count(self, organization_id: UUID, dimension: LimitType) -> int:
        if dimension is LimitType.USERS:
            return await self._orgs.count_members(organization_id)
        if dimension is LimitType.MANDATES:
            return await self._mandates.count_for_organization(organization_id)
        if dimension is LimitType.STORAGE:
            return await self._orgs.get_storage_used(organization_id)
        # objects/sectors/articles/tasks пока не считаются
        return 0

    async def _ensure_organization(self, organization_id: UUID) -> None:
        if await self._orgs.get_by_id(organization_id) is None:
            raise NotFoundError(f"Organization with id {organization_id} not found.")

    async def _check(self, organization_id: UUID, dimension: LimitType, plan: EffectivePlan) -> LimitCheckResult:
        current = await self._current_count(organization_id, dimension)
        limit = plan_limit(plan, dimension, self._storage_unit_bytes)
        return build_limit_result(current, limit)

    async def check_organization_limits(
        self, organization_id: UUID, dimension: Union[LimitType, str]
    ) -> LimitCheckResult:
        dimension = parse_limit_type(dimension)
        await self._ensure_organization(organization_id)
        plan = await self._resolver.resolve_effective_plan(organization_id)
        return await self._check(organization_id, dimension, plan)

    async def can_perform_action(
        self, organization_id: UUID, dimension: Union[LimitType, str], increment: int = 1
    ) -> ActionCheckResult:
        dimension = parse_limit_type(dimension)
        if increment < 0:
            raise ValidationError(f"increment must be >= 0, got {increment}")

        status = await self.check_organization_limits(organization_id, dimension)
        if status.unlimited:
            return ActionCheckResult(allowed=True, current=status.current, limit=None)

        if status.current + increment > status.limit:
            template = _DENIAL_MESSAGES.get(dimension, "Limit '{dimension}' reached ({current}/{limit}).")
            reason = template.format(current=status.current, limit=status.limit, dimension=dimension.value)
            logger.info(f"Organization {organization_id}: '{dimension.value}' denied, {reason}")
            return ActionCheckResult(allowed=False, current=status.current, limit=status.limit, reason=reason)

        return ActionCheckResult(allowed=True, current=status.current, limit=status.limit)

    async def get_limits_summary(self, organization_id: UUID) -> LimitsSummary:
        await self._ensure_organization(organization_id)
        plan = await self._resolver.resolve_effective_plan(organization_id)
        dimensions = (LimitType.USERS, LimitType.MANDATES, LimitType.STORAGE)
        results = await asyncio.gather(*(self._check(organization_id, d, plan) for d in dimensions))
        return LimitsSummary(
            plan_name=plan.plan_name,
            plan_id=plan.plan_id,
            is_active=plan.is_active,
            limits=dict(zip(dimensions, results)),
        )
