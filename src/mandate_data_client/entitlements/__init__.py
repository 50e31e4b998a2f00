from .catalog import (DEFAULT_PLANS, FEATURE_REQUIREMENTS, LIMIT_COLUMNS, parse_feature,
                      parse_limit_type, parse_plan_name, parse_subscription_status, plan_allows,
                      required_plans)
from .resolver import SubscriptionResolver, effective_plan, is_subscription_active
from .access import FeatureAccessEvaluator
from .limits import LimitChecker, build_limit_result
from .payroll import PayrollReconciler, reconcile_payroll, extract_social_charges_rate, current_month_ratio

__all__ = [
    "DEFAULT_PLANS", "FEATURE_REQUIREMENTS", "LIMIT_COLUMNS",
    "parse_feature", "parse_limit_type", "parse_plan_name", "parse_subscription_status", "plan_allows", "required_plans",
    "SubscriptionResolver", "effective_plan", "is_subscription_active",
    "FeatureAccessEvaluator", "LimitChecker", "build_limit_result",
    "PayrollReconciler", "reconcile_payroll", "extract_social_charges_rate", "current_month_ratio",
]
