# Файл: mandate_data_client/entitlements/payroll.py
"""
Выбор авторитетного источника численности персонала для мандата.

Источников два: последняя ручная запись (по году/месяцу) и последний импорт
Gastrotime (по моменту импорта). Сравнивается 1-е число месяца ручной записи
с import_date импорта - т.е. ПЕРИОД против МОМЕНТА ЗАГРУЗКИ. Эвристика наивная,
но дашборды исторически завязаны именно на нее, поэтому поведение сохранено
один в один: импорт побеждает только если он строго позже, ничья - в пользу
ручной записи.

Отдельно считается доля затрат на персонал в выручке текущего месяца:
сначала по ручной записи за текущий месяц, иначе по импорту за текущий период.
"""
import calendar
import logging
import re
from datetime import date, datetime, timezone
from typing import Optional, Tuple
from uuid import UUID

from mandate_data_client.db import ManualPayrollEntryORM, PayrollImportHistoryORM
from mandate_data_client.exceptions import NotFoundError
from mandate_data_client.models.payroll import AuthoritativePayroll, PayrollSource
from mandate_data_client.repositories.pg_repositoryMandate import MandateRepository
from mandate_data_client.repositories.pg_repositoryPayroll import PayrollRepository
from mandate_data_client.utils.dates import as_utc

logger = logging.getLogger(__name__)

_SOCIAL_CHARGES_RE = re.compile(r"charges sociales:\s*(\d+(?:\.\d+)?)%")


def manual_entry_date(entry: ManualPayrollEntryORM) -> datetime:
    return datetime(entry.year, entry.month, 1, tzinfo=timezone.utc)


def month_bounds(day: date) -> Tuple[date, date]:
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def extract_social_charges_rate(notes: Optional[str]) -> Optional[float]:
    if not notes:
        return None
    m = _SOCIAL_CHARGES_RE.search(notes)
    return float(m.group(1)) if m else None


def is_current_month(entry: Optional[ManualPayrollEntryORM], today: date) -> bool:
    return entry is not None and (entry.year, entry.month) == (today.year, today.month)


def current_month_ratio(
    manual: Optional[ManualPayrollEntryORM],
    current_import: Optional[PayrollImportHistoryORM],
    monthly_revenue: float,
    today: date,
) -> Optional[float]:
    """
    Стоимость персонала / выручка месяца * 100.
    Ручная запись за текущий месяц важнее импорта. Без выручки доля не определена.
    """
    if monthly_revenue <= 0:
        return None
    if is_current_month(manual, today):
        return manual.total_cost / monthly_revenue * 100
    if current_import is not None:
        return current_import.total_cost / monthly_revenue * 100
    return None


def reconcile_payroll(
    mandate_id: UUID,
    manual: Optional[ManualPayrollEntryORM],
    last_import: Optional[PayrollImportHistoryORM],
    active_employees: int,
) -> AuthoritativePayroll:
    result = AuthoritativePayroll(
        mandate_id=mandate_id,
        has_payroll_data=manual is not None or last_import is not None,
    )

    use_import = False
    if manual is not None and last_import is not None:
        use_import = as_utc(last_import.import_date) > manual_entry_date(manual)
    elif last_import is not None:
        use_import = True

    if use_import:
        result.reference_date = as_utc(last_import.import_date)
        result.employee_count = last_import.total_employees
        result.source = PayrollSource.GASTROTIME_IMPORT
    elif manual is not None:
        result.reference_date = manual_entry_date(manual)
        result.employee_count = manual.employee_count
        result.social_charges_rate = extract_social_charges_rate(manual.notes)
        result.source = PayrollSource.MANUAL if manual.employee_count is not None else None

    # у выбранного источника нет численности - считаем живых сотрудников
    if result.employee_count is None and active_employees > 0:
        result.employee_count = active_employees
        result.source = PayrollSource.ACTIVE_EMPLOYEES

    return result


class PayrollReconciler:
    def __init__(self, payroll_repo: PayrollRepository, mandate_repo: MandateRepository):
        self._payroll = payroll_repo
        self._mandates = mandate_repo

    async def _current_month_ratio(
        self,
        mandate_id: UUID,
        manual: Optional[ManualPayrollEntryORM],
        last_import: Optional[PayrollImportHistoryORM],
        today: date,
    ) -> Optional[float]:
        current_import = None
        if not is_current_month(manual, today):
            if last_import is None:
                return None
            current_import = await self._payroll.get_import_for_period(mandate_id, f"{today:%Y-%m}")
            if current_import is None:
                return None

        start, end = month_bounds(today)
        revenue = await self._mandates.sum_revenue(mandate_id, start, end)
        return current_month_ratio(manual, current_import, revenue, today)

    async def resolve_authoritative_payroll(
        self, mandate_id: UUID, today: Optional[date] = None
    ) -> AuthoritativePayroll:
        if await self._mandates.get_by_id(mandate_id) is None:
            raise NotFoundError(f"Mandate with id {mandate_id} not found.")
        today = today or datetime.now(timezone.utc).date()

        manual = await self._payroll.get_latest_manual_entry(mandate_id)
        last_import = await self._payroll.get_latest_import(mandate_id)
        resolved = reconcile_payroll(mandate_id, manual, last_import, active_employees=0)
        if resolved.employee_count is None:
            active = await self._payroll.count_active_employees(mandate_id)
            resolved = reconcile_payroll(mandate_id, manual, last_import, active_employees=active)
        resolved.current_month_ratio = await self._current_month_ratio(mandate_id, manual, last_import, today)

        logger.debug(
            f"Payroll for mandate {mandate_id}: {resolved.employee_count} employees "
            f"from {resolved.source.value if resolved.source else 'none'}, "
            f"current month ratio {resolved.current_month_ratio}"
        )
        return resolved
