import logging
from uuid import UUID
from typing import Optional, List, Union
from datetime import date, datetime

from sqlalchemy.ext.asyncio import AsyncEngine

from mandate_data_client.repositories import (UserRepository,
                                              OrganizationRepository,
                                              BillingRepository,
                                              MandateRepository,
                                              PayrollRepository,
                                              )
from mandate_data_client.entitlements import (DEFAULT_PLANS,
                                              SubscriptionResolver,
                                              FeatureAccessEvaluator,
                                              LimitChecker,
                                              PayrollReconciler,
                                              parse_plan_name,
                                              parse_subscription_status,
                                              )
from mandate_data_client.config import LimitsConfig
from mandate_data_client.db import (PlanORM, SubscriptionORM, OrganizationORM, OrganizationUserORM,
                                    UserORM, MandateORM, DayValueORM, EmployeeORM,
                                    ManualPayrollEntryORM, PayrollImportHistoryORM)
from mandate_data_client.models import (PlanName, SubscriptionStatus, EffectivePlan, Feature, LimitType,
                                        FeatureAccessDecision, LimitCheckResult, ActionCheckResult,
                                        LimitsSummary, AuthoritativePayroll, ManualPayrollCreate,
                                        PayrollImportCreate, EmployeeCreate, MandateCreate, DayValueCreate,
                                        MandateStatsDrift, OrganizationCreate, UserCreate)
from mandate_data_client.exceptions import DatabaseError, DataClientError, LimitExceededError, NotFoundError

logger = logging.getLogger(__name__)


class DataClient:
    """
    Единая точка доступа для бизнес-логики: тарифы, доступ к фичам, лимиты,
    мандаты с дневной выручкой и масса зарплат.
    """

    def __init__(
        self,
        engine: AsyncEngine | None = None,
        user_repo: UserRepository | None = None,
        org_repo: OrganizationRepository | None = None,
        billing_repo: BillingRepository | None = None,
        mandate_repo: MandateRepository | None = None,
        payroll_repo: PayrollRepository | None = None,
        limits_config: LimitsConfig | None = None,
    ):
        self._engine = engine
        self.user_repo = user_repo
        self.org_repo = org_repo
        self.billing_repo = billing_repo
        self.mandate_repo = mandate_repo
        self.payroll_repo = payroll_repo
        self.limits_config = limits_config or LimitsConfig()

        self.resolver = SubscriptionResolver(billing_repo)
        self.access = FeatureAccessEvaluator(user_repo, self.resolver)
        self.limits = LimitChecker(
            org_repo, mandate_repo, self.resolver,
            storage_unit_bytes=self.limits_config.storage_unit_bytes,
        )
        self.payroll = PayrollReconciler(payroll_repo, mandate_repo)

    async def aclose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()

    async def check_connections(self) -> dict[str, str]:
        """Проверяет доступность БД. Возвращает словарь со статусами."""
        statuses = {}
        try:
            await self.org_repo.check_connection()
            statuses["database"] = "ok"
        except DatabaseError as e:
            statuses["database"] = f"failed: {e}"
        return statuses

    # ――― каталог тарифов и подписки ――― #

    async def seed_plans(self) -> List[PlanORM]:
        """Создает/обновляет все тарифы каталога. Идемпотентно."""
        plans = []
        for name, values in DEFAULT_PLANS.items():
            plan = await self.billing_repo.upsert_plan(name, values)
            logger.info(f"Plan {plan.name} seeded (id {plan.id})")
            plans.append(plan)
        return plans

    async def list_plans(self) -> List[PlanORM]:
        return await self.billing_repo.list_active_plans()

    async def resolve_effective_plan(self, organization_id: UUID) -> EffectivePlan:
        return await self.resolver.resolve_effective_plan(organization_id)

    async def get_subscription(self, organization_id: UUID) -> Optional[SubscriptionORM]:
        return await self.billing_repo.get_subscription_for_organization(organization_id)

    async def change_plan(
        self, organization_id: UUID, plan_name: Union[PlanName, str], period_days: int | None = None
    ) -> SubscriptionORM:
        return await self.billing_repo.change_plan_transaction(
            organization_id,
            parse_plan_name(plan_name),
            period_days=period_days or self.limits_config.plan_period_days,
        )

    async def change_user_plan(self, email: str, plan_name: Union[PlanName, str]) -> SubscriptionORM:
        """Смена тарифа по email пользователя: меняется подписка его организации."""
        user = await self.user_repo.get_by_email(email)
        if user is None:
            raise NotFoundError(f"User {email} not found.")
        if user.organization_id is None:
            raise NotFoundError(f"User {email} has no organization.")
        return await self.change_plan(user.organization_id, plan_name)

    async def update_subscription_status(
        self, subscription_id: UUID, status: Union[SubscriptionStatus, str]
    ) -> Optional[SubscriptionORM]:
        return await self.billing_repo.update_subscription_status(subscription_id, parse_subscription_status(status))

    async def find_expired_subscriptions(self, now: Optional[datetime] = None) -> List[SubscriptionORM]:
        return await self.billing_repo.find_expired_subscriptions(now)

    async def update_custom_limits(
        self, organization_id: UUID, max_users: Optional[int], max_storage: Optional[int]
    ) -> PlanORM:
        return await self.billing_repo.update_custom_limits(
            organization_id, max_users, max_storage, period_days=self.limits_config.plan_period_days
        )

    # ――― организации и пользователи ――― #

    async def create_organization(self, data: OrganizationCreate) -> OrganizationORM:
        return await self.org_repo.create_organization(data)

    async def create_user(self, data: UserCreate) -> UserORM:
        return await self.user_repo.create_user(data)

    async def get_user_by_id(self, user_id: UUID) -> Optional[UserORM]:
        return await self.user_repo.get_by_id(user_id)

    async def list_organizations(self) -> List[OrganizationORM]:
        return await self.org_repo.list_organizations()

    async def set_user_organization(self, user_id: UUID, organization_id: Optional[UUID]) -> UserORM:
        """Переключает рабочую организацию пользователя (от нее берутся тариф и лимиты)."""
        return await self.user_repo.set_organization(user_id, organization_id)

    async def add_organization_member(
        self, organization_id: UUID, user_id: UUID, role: str = "member"
    ) -> OrganizationUserORM:
        await self._require(organization_id, LimitType.USERS, 1)
        return await self.org_repo.add_member(organization_id, user_id, role)

    async def remove_organization_member(self, organization_id: UUID, user_id: UUID) -> bool:
        return await self.org_repo.remove_member(organization_id, user_id)

    async def record_storage_usage(self, organization_id: UUID, size_bytes: int) -> int:
        """Учитывает загруженный файл. Отказ по лимиту хранилища - LimitExceededError."""
        await self._require(organization_id, LimitType.STORAGE, size_bytes)
        return await self.org_repo.add_storage_usage(organization_id, size_bytes)

    async def release_storage_usage(self, organization_id: UUID, size_bytes: int) -> int:
        return await self.org_repo.add_storage_usage(organization_id, -size_bytes)

    # ――― доступ и лимиты ――― #

    async def has_feature_access(self, user_id: UUID, feature: Union[Feature, str]) -> bool:
        return await self.access.has_feature_access(user_id, feature)

    async def describe_feature_access(self, user_id: UUID, feature: Union[Feature, str]) -> FeatureAccessDecision:
        return await self.access.evaluate(user_id, feature)

    async def check_organization_limits(
        self, organization_id: UUID, dimension: Union[LimitType, str]
    ) -> LimitCheckResult:
        return await self.limits.check_organization_limits(organization_id, dimension)

    async def can_perform_action(
        self, organization_id: UUID, dimension: Union[LimitType, str], increment: int = 1
    ) -> ActionCheckResult:
        return await self.limits.can_perform_action(organization_id, dimension, increment)

    async def get_limits_summary(self, organization_id: UUID) -> LimitsSummary:
        return await self.limits.get_limits_summary(organization_id)

    async def _require(self, organization_id: UUID, dimension: LimitType, increment: int) -> None:
        check = await self.limits.can_perform_action(organization_id, dimension, increment)
        if not check.allowed:
            raise LimitExceededError(check.reason, current=check.current, limit=check.limit,
                                     dimension=dimension.value)

    # ――― мандаты и дневная выручка ――― #

    async def create_mandate(self, organization_id: UUID, data: MandateCreate) -> MandateORM:
        await self._require(organization_id, LimitType.MANDATES, 1)
        return await self.mandate_repo.create_mandate(organization_id, data)

    async def get_mandate(self, mandate_id: UUID) -> Optional[MandateORM]:
        return await self.mandate_repo.get_by_id(mandate_id)

    async def list_mandates(self, organization_id: UUID) -> List[MandateORM]:
        return await self.mandate_repo.list_for_organization(organization_id)

    async def delete_mandate(self, mandate_id: UUID) -> None:
        await self.mandate_repo.delete_mandate(mandate_id)

    async def add_day_value(self, mandate_id: UUID, data: DayValueCreate) -> DayValueORM:
        return await self.mandate_repo.add_day_value(mandate_id, data)

    async def update_day_value(
        self, day_value_id: UUID, value: Optional[float] = None, on_date: Optional[date] = None
    ) -> DayValueORM:
        return await self.mandate_repo.update_day_value(day_value_id, value=value, on_date=on_date)

    async def delete_day_value(self, day_value_id: UUID) -> None:
        await self.mandate_repo.delete_day_value(day_value_id)

    async def list_day_values(
        self, mandate_id: UUID, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[DayValueORM]:
        return await self.mandate_repo.list_day_values(mandate_id, start, end)

    async def recompute_mandate_stats(self, mandate_id: UUID) -> MandateORM:
        return await self.mandate_repo.recompute_stats(mandate_id)

    async def verify_mandate_stats(self) -> List[MandateStatsDrift]:
        """Находит мандаты с разошедшимся кэшем и чинит их. Возвращает найденные расхождения."""
        drifted = await self.mandate_repo.find_stats_drift()
        for drift in drifted:
            logger.warning(
                f"Fixing mandate '{drift.name}': total {drift.stored_total} -> {drift.calculated_total}, "
                f"last entry {drift.stored_last_entry} -> {drift.calculated_last_entry}"
            )
            await self.mandate_repo.recompute_stats(drift.mandate_id)
        return drifted

    async def recompute_all_mandate_stats(self) -> dict[str, int]:
        ids = await self.mandate_repo.list_ids()
        updated = errors = 0
        for mandate_id in ids:
            try:
                await self.mandate_repo.recompute_stats(mandate_id)
                updated += 1
            except DataClientError as e:
                logger.error(f"Failed to recompute stats for mandate {mandate_id}: {e}")
                errors += 1
        logger.info(f"Mandate stats recomputed: {updated} ok, {errors} errors")
        return {"updated": updated, "errors": errors, "total": len(ids)}

    # ――― масса зарплат ――― #

    async def upsert_manual_payroll(self, mandate_id: UUID, data: ManualPayrollCreate) -> ManualPayrollEntryORM:
        return await self.payroll_repo.upsert_manual_entry(mandate_id, data)

    async def list_manual_payroll(self, mandate_id: UUID, year: Optional[int] = None) -> List[ManualPayrollEntryORM]:
        return await self.payroll_repo.list_manual_entries(mandate_id, year)

    async def record_payroll_import(self, mandate_id: UUID, data: PayrollImportCreate) -> PayrollImportHistoryORM:
        return await self.payroll_repo.record_import(mandate_id, data)

    async def delete_payroll_import(self, import_id: UUID) -> None:
        await self.payroll_repo.delete_import(import_id)

    async def add_employee(self, mandate_id: UUID, data: EmployeeCreate) -> EmployeeORM:
        return await self.payroll_repo.add_employee(mandate_id, data)

    async def deactivate_employee(self, employee_id: UUID) -> EmployeeORM:
        return await self.payroll_repo.set_employee_active(employee_id, False)

    async def resolve_authoritative_payroll(
        self, mandate_id: UUID, today: Optional[date] = None
    ) -> AuthoritativePayroll:
        return await self.payroll.resolve_authoritative_payroll(mandate_id, today)
