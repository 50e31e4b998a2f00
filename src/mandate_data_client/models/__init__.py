from .plan import PlanName, SubscriptionStatus, ACTIVE_STATUSES, PlanInDB, EffectivePlan, SubscriptionInDB
from .entitlements import (Feature, LimitType, FeatureAccessDecision,
                           LimitCheckResult, ActionCheckResult, LimitsSummary)
from .payroll import PayrollSource, AuthoritativePayroll, ManualPayrollCreate, PayrollImportCreate, EmployeeCreate
from .mandate import MandateCreate, MandateInDB, DayValueCreate, DayValueInDB, MandateStatsDrift
from .organization import OrganizationCreate, OrganizationInDB, UserCreate, UserInDB

__all__ = [
    "PlanName", "SubscriptionStatus", "ACTIVE_STATUSES", "PlanInDB", "EffectivePlan", "SubscriptionInDB",
    "Feature", "LimitType", "FeatureAccessDecision", "LimitCheckResult", "ActionCheckResult", "LimitsSummary",
    "PayrollSource", "AuthoritativePayroll", "ManualPayrollCreate", "PayrollImportCreate", "EmployeeCreate",
    "MandateCreate", "MandateInDB", "DayValueCreate", "DayValueInDB", "MandateStatsDrift",
    "OrganizationCreate", "OrganizationInDB", "UserCreate", "UserInDB",
]
