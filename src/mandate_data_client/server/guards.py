# src/mandate_data_client/server/guards.py
"""
Зависимости FastAPI для защиты эндпоинтов по тарифу.

Маршрутов здесь нет: приложение само решает, как получить текущего пользователя
/ организацию и DataClient, и передает эти зависимости в фабрики ниже.

    require_payroll = feature_guard(Feature.PAYROLL, get_current_user_id, get_data_client)

    @router.get("/payroll", dependencies=[Depends(require_payroll)])
    async def payroll(...): ...
"""
from typing import Annotated, Any, Callable, Union
from uuid import UUID

from fastapi import Depends, HTTPException, status

from mandate_data_client.client import DataClient
from mandate_data_client.entitlements.catalog import parse_feature, parse_limit_type
from mandate_data_client.models.entitlements import (ActionCheckResult, Feature,
                                                      FeatureAccessDecision, LimitType)

DEFAULT_UPGRADE_URL = "/pricing"


def feature_denied_detail(decision: FeatureAccessDecision, upgrade_url: str) -> dict[str, Any]:
    current = decision.current_plan.value if decision.current_plan else "FREE"
    feature = decision.feature.value if decision.feature else None
    return {
        "error": "Access denied",
        "message": f"This feature requires a Premium plan. Current plan: {current}",
        "code": "FEATURE_ACCESS_DENIED",
        "details": {
            "currentPlan": current,
            "requiredFeature": feature,
            "requiredPlans": [p.value for p in decision.required_plans],
            "upgradeUrl": upgrade_url,
        },
    }


def limit_denied_detail(check: ActionCheckResult, dimension: LimitType, upgrade_url: str) -> dict[str, Any]:
    return {
        "error": "Limit reached",
        "message": check.reason,
        "code": "LIMIT_EXCEEDED",
        "details": {
            "dimension": dimension.value,
            "current": check.current,
            "limit": check.limit,
            "upgradeUrl": upgrade_url,
        },
    }


def feature_guard(
    feature: Union[Feature, str],
    user_id_dependency: Callable[..., Any],
    client_dependency: Callable[..., Any],
) -> Callable[..., Any]:
    """Возвращает зависимость, которая отдает 403, если тариф пользователя не открывает фичу."""
    feature = parse_feature(feature)

    async def _guard(
        user_id: Annotated[UUID, Depends(user_id_dependency)],
        client: Annotated[DataClient, Depends(client_dependency)],
    ) -> FeatureAccessDecision:
        decision = await client.describe_feature_access(user_id, feature)
        if not decision.allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=feature_denied_detail(decision, client.limits_config.upgrade_url or DEFAULT_UPGRADE_URL),
            )
        return decision

    return _guard


def limit_guard(
    dimension: Union[LimitType, str],
    organization_id_dependency: Callable[..., Any],
    client_dependency: Callable[..., Any],
    increment: int = 1,
) -> Callable[..., Any]:
    """Возвращает зависимость, которая отдает 403, если создание упрется в лимит тарифа."""
    dimension = parse_limit_type(dimension)

    async def _guard(
        organization_id: Annotated[UUID, Depends(organization_id_dependency)],
        client: Annotated[DataClient, Depends(client_dependency)],
    ) -> ActionCheckResult:
        check = await client.can_perform_action(organization_id, dimension, increment)
        if not check.allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=limit_denied_detail(check, dimension, client.limits_config.upgrade_url or DEFAULT_UPGRADE_URL),
            )
        return check

    return _guard
