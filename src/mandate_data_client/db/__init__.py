# mandate_data_client/db/__init__.py

from .base import Base

from .organizations.organization_orm import OrganizationORM
from .organizations.users import UserORM
from .organizations.organization_user_orm import OrganizationUserORM
from .organizations.storage_usage_orm import StorageUsageORM

from .billing.plan_orm import PlanORM
from .billing.subscription_orm import SubscriptionORM

# таблицы, которые зависят от mandates
from .mandates.mandate_orm import MandateORM
from .mandates.day_value_orm import DayValueORM
from .payroll.employee_orm import EmployeeORM
from .payroll.manual_payroll_orm import ManualPayrollEntryORM
from .payroll.payroll_import_orm import PayrollImportHistoryORM


__all__ = [
    "Base",
    "OrganizationORM",
    "UserORM",
    "OrganizationUserORM",
    "StorageUsageORM",
    "PlanORM",
    "SubscriptionORM",
    "MandateORM",
    "DayValueORM",
    "EmployeeORM",
    "ManualPayrollEntryORM",
    "PayrollImportHistoryORM",
]
