from .auth.pg_repositoryUser import UserRepository
from .auth.pg_repositoryOrganization import OrganizationRepository
from .auth.pg_repositoryBilling import BillingRepository
from .pg_repositoryMandate import MandateRepository
from .pg_repositoryPayroll import PayrollRepository

__all__ = [
    "UserRepository",
    "OrganizationRepository",
    "BillingRepository",
    "MandateRepository",
    "PayrollRepository",
]
