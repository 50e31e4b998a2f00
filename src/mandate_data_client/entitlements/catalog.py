# Файл: mandate_data_client/entitlements/catalog.py
"""
Каталог тарифов и таблица требований фич.

DEFAULT_PLANS - эталонные значения для посева таблицы plans (команда seed-plans).
FEATURE_REQUIREMENTS - какие тарифы открывают какую фичу. Таблица проверяется
на полноту при импорте модуля: новая фича без записи здесь - ошибка при старте,
а не молчаливый False в рантайме.
"""
from __future__ import annotations

from typing import Any, Dict, FrozenSet, Union

from mandate_data_client.exceptions import ValidationError
from mandate_data_client.models.entitlements import Feature, LimitType
from mandate_data_client.models.plan import PlanName, SubscriptionStatus

_ALL_FEATURES = {
    "has_advanced_reports": True,
    "has_api_access": True,
    "has_custom_branding": True,
    "allow_payroll_access": True,
    "allow_bulk_import": True,
}

DEFAULT_PLANS: Dict[PlanName, Dict[str, Any]] = {
    PlanName.FREE: {
        "description": "Plan gratuit avec fonctionnalités limitées",
        "price_monthly": 0,
        "price_yearly": 0,
        "max_users": 1,
        "max_mandates": 1,
        "max_storage": 100,  # MB
        "max_api_calls": 100,
        "has_advanced_reports": False,
        "has_api_access": False,
        "has_custom_branding": False,
        "allow_payroll_access": False,
        "allow_bulk_import": False,
        "sort_order": 1,
        "support_level": "community",
    },
    PlanName.PREMIUM: {
        "description": "Pour une utilisation professionnelle",
        "price_monthly": 29,
        "price_yearly": 290,
        "max_users": 5,
        "max_mandates": None,
        "max_storage": 10240,  # 10GB
        "max_api_calls": 10000,
        **_ALL_FEATURES,
        "sort_order": 3,
        "support_level": "priority",
    },
    PlanName.SUPER_ADMIN: {
        "description": "Accès complet au système",
        "price_monthly": 0,
        "price_yearly": 0,
        "max_users": None,
        "max_mandates": None,
        "max_storage": None,
        "max_api_calls": None,
        **_ALL_FEATURES,
        "sort_order": 0,
        "support_level": "admin",
    },
    PlanName.ILLIMITE: {
        "description": "Plan illimité réservé aux utilisateurs spéciaux",
        "price_monthly": 0,
        "price_yearly": 0,
        "max_users": None,
        "max_mandates": None,
        "max_storage": None,
        "max_api_calls": None,
        **_ALL_FEATURES,
        "sort_order": 999,
        "support_level": "premium",
    },
    PlanName.CUSTOM: {
        "description": "Plan avec limites personnalisées",
        "price_monthly": 0,
        "price_yearly": 0,
        "max_users": None,
        "max_mandates": None,
        "max_storage": None,
        "max_api_calls": None,
        **_ALL_FEATURES,
        "sort_order": 998,
        "support_level": "custom",
    },
}

_PAID_TIERS = frozenset({PlanName.PREMIUM, PlanName.SUPER_ADMIN, PlanName.ILLIMITE, PlanName.CUSTOM})

FEATURE_REQUIREMENTS: Dict[Feature, FrozenSet[PlanName]] = {
    Feature.PAYROLL: _PAID_TIERS,
    Feature.ADVANCED_REPORTS: _PAID_TIERS,
    Feature.BULK_IMPORT: _PAID_TIERS,
    Feature.API_ACCESS: _PAID_TIERS,
    # на FREE max_users = 1, командной работы нет
    Feature.TEAM_MANAGEMENT: _PAID_TIERS,
}

# Колонка тарифа с лимитом для каждого измерения. None - измерение не лимитируется.
LIMIT_COLUMNS: Dict[LimitType, str | None] = {
    LimitType.USERS: "max_users",
    LimitType.MANDATES: "max_mandates",
    LimitType.STORAGE: "max_storage",
    LimitType.OBJECTS: None,
    LimitType.SECTORS: None,
    LimitType.ARTICLES: None,
    LimitType.TASKS: None,
}


def _check_exhaustive() -> None:
    missing = [f.value for f in Feature if f not in FEATURE_REQUIREMENTS]
    if missing:
        raise RuntimeError(f"No plan requirement declared for features: {missing}")
    missing = [d.value for d in LimitType if d not in LIMIT_COLUMNS]
    if missing:
        raise RuntimeError(f"No limit column declared for dimensions: {missing}")
    missing = [p.value for p in PlanName if p not in DEFAULT_PLANS]
    if missing:
        raise RuntimeError(f"No default definition for plans: {missing}")


_check_exhaustive()


def parse_feature(value: Union[Feature, str]) -> Feature:
    if isinstance(value, Feature):
        return value
    try:
        return Feature(value)
    except ValueError:
        raise ValidationError(f"Unknown feature '{value}'. Expected one of: {[f.value for f in Feature]}")


def parse_limit_type(value: Union[LimitType, str]) -> LimitType:
    if isinstance(value, LimitType):
        return value
    try:
        return LimitType(value)
    except ValueError:
        raise ValidationError(f"Unknown limit dimension '{value}'. Expected one of: {[d.value for d in LimitType]}")


def parse_plan_name(value: Union[PlanName, str]) -> PlanName:
    if isinstance(value, PlanName):
        return value
    try:
        return PlanName(value)
    except ValueError:
        raise ValidationError(f"Unknown plan '{value}'. Expected one of: {[p.value for p in PlanName]}")


def parse_subscription_status(value: Union[SubscriptionStatus, str]) -> SubscriptionStatus:
    if isinstance(value, SubscriptionStatus):
        return value
    try:
        return SubscriptionStatus(value)
    except ValueError:
        raise ValidationError(
            f"Unknown subscription status '{value}'. Expected one of: {[s.value for s in SubscriptionStatus]}"
        )


def required_plans(feature: Feature) -> FrozenSet[PlanName]:
    return FEATURE_REQUIREMENTS[feature]


def plan_allows(plan: PlanName, feature: Feature) -> bool:
    """Чистая функция (тариф, фича) -> разрешено ли."""
    return plan in FEATURE_REQUIREMENTS[feature]
