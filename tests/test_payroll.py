import uuid
from datetime import date, datetime, timedelta, timezone

import pytest
import pytest_asyncio

from mandate_data_client.db import ManualPayrollEntryORM, PayrollImportHistoryORM
from mandate_data_client.entitlements import current_month_ratio, extract_social_charges_rate, reconcile_payroll
from mandate_data_client.exceptions import NotFoundError
from mandate_data_client.models import (DayValueCreate, EmployeeCreate, MandateCreate, ManualPayrollCreate,
                                        PayrollImportCreate, PayrollSource)


def _manual(year, month, employees=None, notes=None, total_cost=0.0):
    return ManualPayrollEntryORM(year=year, month=month, gross_amount=0, social_charges=0, total_cost=total_cost,
                                 employee_count=employees, notes=notes)


def _import(when, employees, total_cost=0.0):
    return PayrollImportHistoryORM(period=f"{when:%Y-%m}", import_date=when, total_employees=employees,
                                   total_cost=total_cost)


# ――― чистая функция reconcile_payroll ――― #

def test_later_import_wins_over_manual():
    mid = uuid.uuid4()
    result = reconcile_payroll(mid, _manual(2024, 6, 10), _import(datetime(2024, 6, 15, tzinfo=timezone.utc), 12), 0)
    assert result.employee_count == 12
    assert result.source is PayrollSource.GASTROTIME_IMPORT
    assert result.reference_date == datetime(2024, 6, 15, tzinfo=timezone.utc)


def test_newer_manual_wins_over_import():
    result = reconcile_payroll(uuid.uuid4(), _manual(2024, 7, 10),
                               _import(datetime(2024, 6, 20, tzinfo=timezone.utc), 12), 0)
    assert result.employee_count == 10
    assert result.source is PayrollSource.MANUAL
    assert result.reference_date == datetime(2024, 7, 1, tzinfo=timezone.utc)


def test_tie_goes_to_manual():
    result = reconcile_payroll(uuid.uuid4(), _manual(2024, 6, 10),
                               _import(datetime(2024, 6, 1, tzinfo=timezone.utc), 12), 0)
    assert result.source is PayrollSource.MANUAL
    assert result.employee_count == 10


def test_naive_import_date_is_utc():
    result = reconcile_payroll(uuid.uuid4(), _manual(2024, 6, 10), _import(datetime(2024, 6, 1, 0, 0, 1), 12), 0)
    assert result.source is PayrollSource.GASTROTIME_IMPORT


def test_manual_without_count_falls_back_to_active_employees():
    result = reconcile_payroll(uuid.uuid4(), _manual(2024, 6), None, active_employees=4)
    assert result.employee_count == 4
    assert result.source is PayrollSource.ACTIVE_EMPLOYEES
    assert result.reference_date == datetime(2024, 6, 1, tzinfo=timezone.utc)


def test_manual_entry_alone_is_authoritative():
    result = reconcile_payroll(uuid.uuid4(), _manual(2024, 6, 5), None, 0)
    assert result.employee_count == 5
    assert result.source is PayrollSource.MANUAL
    assert result.has_payroll_data is True


def test_import_alone_is_authoritative():
    when = datetime(2024, 3, 2, 9, 30, tzinfo=timezone.utc)
    result = reconcile_payroll(uuid.uuid4(), None, _import(when, 7), 0)
    assert result.employee_count == 7
    assert result.source is PayrollSource.GASTROTIME_IMPORT
    assert result.reference_date == when
    assert result.has_payroll_data is True


def test_import_on_first_day_of_next_month_wins():
    result = reconcile_payroll(uuid.uuid4(), _manual(2024, 6, 5),
                               _import(datetime(2024, 7, 1, tzinfo=timezone.utc), 8), 0)
    assert result.employee_count == 8
    assert result.source is PayrollSource.GASTROTIME_IMPORT


def test_offset_import_date_is_compared_in_utc():
    # 01:00 +02:00 = 31 мая 23:00 UTC, раньше периода ручной записи
    plus_two = timezone(timedelta(hours=2))
    result = reconcile_payroll(uuid.uuid4(), _manual(2024, 6, 5),
                               _import(datetime(2024, 6, 1, 1, 0, tzinfo=plus_two), 8), 0)
    assert result.source is PayrollSource.MANUAL
    assert result.employee_count == 5


def test_nothing_known():
    result = reconcile_payroll(uuid.uuid4(), _manual(2024, 6), None, active_employees=0)
    assert result.employee_count is None
    assert result.source is None

    result = reconcile_payroll(uuid.uuid4(), None, None, active_employees=0)
    assert result.employee_count is None
    assert result.source is None
    assert result.reference_date is None
    assert result.has_payroll_data is False


@pytest.mark.parametrize("notes, expected", [
    ("charges sociales: 18.5%", 18.5),
    ("Saisie manuelle, charges sociales: 22%", 22.0),
    ("rien", None),
    (None, None),
])
def test_social_charges_rate_from_notes(notes, expected):
    assert extract_social_charges_rate(notes) == expected


# ――― доля затрат на персонал в выручке месяца ――― #

JUNE_15 = date(2024, 6, 15)


def test_ratio_prefers_current_month_manual_entry():
    manual = _manual(2024, 6, total_cost=2500)
    current_import = _import(datetime(2024, 6, 20, tzinfo=timezone.utc), 8, total_cost=4000)
    assert current_month_ratio(manual, current_import, 10_000, JUNE_15) == pytest.approx(25.0)


def test_ratio_uses_current_period_import():
    stale_manual = _manual(2024, 5, total_cost=2500)
    current_import = _import(datetime(2024, 6, 20, tzinfo=timezone.utc), 8, total_cost=4000)
    assert current_month_ratio(stale_manual, current_import, 10_000, JUNE_15) == pytest.approx(40.0)
    assert current_month_ratio(stale_manual, None, 10_000, JUNE_15) is None


def test_ratio_is_undefined_without_revenue():
    assert current_month_ratio(_manual(2024, 6, total_cost=2500), None, 0, JUNE_15) is None


# ――― через DataClient ――― #

@pytest_asyncio.fixture
async def mandate(data_client, organization):
    return await data_client.create_mandate(organization.id, MandateCreate(name="Hôtel du Lac"))


@pytest.mark.asyncio
async def test_import_after_manual_period_wins(data_client, mandate):
    # ARRANGE
    await data_client.upsert_manual_payroll(
        mandate.id, ManualPayrollCreate(year=2024, month=6, gross_amount=50_000, employee_count=10)
    )
    await data_client.record_payroll_import(
        mandate.id,
        PayrollImportCreate(period="2024-6", import_date=datetime(2024, 6, 15, tzinfo=timezone.utc),
                            total_employees=12),
    )

    # ACT
    result = await data_client.resolve_authoritative_payroll(mandate.id)

    # ASSERT
    assert result.employee_count == 12
    assert result.source is PayrollSource.GASTROTIME_IMPORT


@pytest.mark.asyncio
async def test_newer_manual_entry_wins(data_client, mandate):
    await data_client.record_payroll_import(
        mandate.id,
        PayrollImportCreate(period="2024-06", import_date=datetime(2024, 6, 20, tzinfo=timezone.utc),
                            total_employees=12),
    )
    await data_client.upsert_manual_payroll(
        mandate.id, ManualPayrollCreate(year=2024, month=6, gross_amount=50_000, employee_count=9)
    )
    await data_client.upsert_manual_payroll(
        mandate.id,
        ManualPayrollCreate(year=2024, month=7, gross_amount=50_000, employee_count=10,
                            notes="charges sociales: 18%"),
    )

    result = await data_client.resolve_authoritative_payroll(mandate.id)
    assert result.employee_count == 10
    assert result.source is PayrollSource.MANUAL
    assert result.social_charges_rate == 18.0


@pytest.mark.asyncio
async def test_active_employees_fallback(data_client, mandate):
    await data_client.upsert_manual_payroll(mandate.id, ManualPayrollCreate(year=2024, month=6, gross_amount=1000))
    first = await data_client.add_employee(mandate.id, EmployeeCreate(first_name="Anna", last_name="Muster"))
    await data_client.add_employee(mandate.id, EmployeeCreate(first_name="Marc", last_name="Favre"))
    await data_client.deactivate_employee(first.id)

    result = await data_client.resolve_authoritative_payroll(mandate.id)
    assert result.employee_count == 1
    assert result.source is PayrollSource.ACTIVE_EMPLOYEES


@pytest.mark.asyncio
async def test_no_payroll_data(data_client, mandate):
    result = await data_client.resolve_authoritative_payroll(mandate.id)
    assert result.mandate_id == mandate.id
    assert result.employee_count is None
    assert result.source is None
    assert result.has_payroll_data is False
    assert result.current_month_ratio is None


@pytest.mark.asyncio
async def test_unknown_mandate(data_client):
    with pytest.raises(NotFoundError):
        await data_client.resolve_authoritative_payroll(uuid.uuid4())


@pytest.mark.asyncio
async def test_manual_entry_upsert_defaults_social_charges(data_client, mandate):
    entry = await data_client.upsert_manual_payroll(
        mandate.id, ManualPayrollCreate(year=2024, month=3, gross_amount=1000, employee_count=3)
    )
    assert entry.social_charges == pytest.approx(220)
    assert entry.total_cost == pytest.approx(1220)

    again = await data_client.upsert_manual_payroll(
        mandate.id, ManualPayrollCreate(year=2024, month=3, gross_amount=2000, social_charges=300)
    )
    assert again.id == entry.id
    assert again.total_cost == pytest.approx(2300)
    assert again.employee_count is None


def test_manual_entry_validation():
    from pydantic import ValidationError as PydanticValidationError

    with pytest.raises(PydanticValidationError):
        ManualPayrollCreate(year=2019, month=1, gross_amount=0)
    with pytest.raises(PydanticValidationError):
        ManualPayrollCreate(year=2024, month=13, gross_amount=0)
    with pytest.raises(PydanticValidationError):
        PayrollImportCreate(period="2024/06")
    assert PayrollImportCreate(period="2024-6").period == "2024-06"


@pytest.mark.asyncio
async def test_list_manual_entries_by_year(data_client, mandate):
    for year, month in ((2023, 12), (2024, 2), (2024, 1)):
        await data_client.upsert_manual_payroll(
            mandate.id, ManualPayrollCreate(year=year, month=month, gross_amount=100)
        )

    entries = await data_client.list_manual_payroll(mandate.id, year=2024)
    assert [(e.year, e.month) for e in entries] == [(2024, 1), (2024, 2)]
    assert len(await data_client.list_manual_payroll(mandate.id)) == 3


@pytest.mark.asyncio
async def test_import_with_utc_offset_is_stored_in_utc(data_client, mandate):
    # ARRANGE: импорт в 01:00 +02:00 = 31 мая 23:00 UTC, до периода ручной записи
    await data_client.upsert_manual_payroll(
        mandate.id, ManualPayrollCreate(year=2024, month=6, gross_amount=1000, employee_count=5)
    )
    await data_client.record_payroll_import(
        mandate.id,
        PayrollImportCreate(period="2024-06", total_employees=8,
                            import_date=datetime(2024, 6, 1, 1, 0, tzinfo=timezone(timedelta(hours=2)))),
    )

    # ACT
    result = await data_client.resolve_authoritative_payroll(mandate.id)

    # ASSERT
    assert result.source is PayrollSource.MANUAL
    assert result.employee_count == 5


@pytest.mark.asyncio
async def test_current_month_ratio_from_manual_entry(data_client, mandate):
    await data_client.add_day_value(mandate.id, DayValueCreate(date=date(2024, 6, 1), value=6000))
    await data_client.add_day_value(mandate.id, DayValueCreate(date=date(2024, 6, 30), value=4000))
    await data_client.add_day_value(mandate.id, DayValueCreate(date=date(2024, 5, 31), value=99_000))
    await data_client.upsert_manual_payroll(
        mandate.id, ManualPayrollCreate(year=2024, month=6, gross_amount=2000, social_charges=500, employee_count=4)
    )

    result = await data_client.resolve_authoritative_payroll(mandate.id, today=JUNE_15)

    assert result.has_payroll_data is True
    assert result.current_month_ratio == pytest.approx(25.0)


@pytest.mark.asyncio
async def test_current_month_ratio_from_current_period_import(data_client, mandate):
    await data_client.add_day_value(mandate.id, DayValueCreate(date=date(2024, 6, 10), value=10_000))
    await data_client.upsert_manual_payroll(
        mandate.id, ManualPayrollCreate(year=2024, month=5, gross_amount=2000, employee_count=4)
    )
    await data_client.record_payroll_import(
        mandate.id,
        PayrollImportCreate(period="2024-06", total_employees=6, total_cost=3000,
                            import_date=datetime(2024, 6, 12, tzinfo=timezone.utc)),
    )

    result = await data_client.resolve_authoritative_payroll(mandate.id, today=JUNE_15)

    assert result.source is PayrollSource.GASTROTIME_IMPORT
    assert result.current_month_ratio == pytest.approx(30.0)

    # в другом месяце нет ни записи, ни импорта за период
    later = await data_client.resolve_authoritative_payroll(mandate.id, today=date(2024, 7, 3))
    assert later.current_month_ratio is None


@pytest.mark.asyncio
async def test_current_month_ratio_without_revenue(data_client, mandate):
    await data_client.upsert_manual_payroll(
        mandate.id, ManualPayrollCreate(year=2024, month=6, gross_amount=2000, employee_count=4)
    )

    result = await data_client.resolve_authoritative_payroll(mandate.id, today=JUNE_15)

    assert result.has_payroll_data is True
    assert result.current_month_ratio is None
