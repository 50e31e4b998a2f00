import uuid
from datetime import date

import pytest
import pytest_asyncio
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from mandate_data_client.db import MandateORM
from mandate_data_client.exceptions import DuplicateEntryError, NotFoundError, ValidationError
from mandate_data_client.models import DayValueCreate, DayValueInDB, MandateCreate, MandateInDB, PlanName

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def mandate(data_client, organization):
    return await data_client.create_mandate(organization.id, MandateCreate(name="Hôtel du Lac"))


async def _stats(data_client, mandate_id):
    m = await data_client.get_mandate(mandate_id)
    return m.total_revenue, m.last_entry


async def test_aggregates_follow_every_mutation(data_client, mandate):
    assert await _stats(data_client, mandate.id) == (0.0, None)

    first = await data_client.add_day_value(mandate.id, DayValueCreate(date=date(2024, 1, 1), value=100))
    second = await data_client.add_day_value(mandate.id, DayValueCreate(date=date(2024, 1, 3), value=50))
    assert await _stats(data_client, mandate.id) == (pytest.approx(150.0), date(2024, 1, 3))

    await data_client.update_day_value(second.id, value=70)
    assert await _stats(data_client, mandate.id) == (pytest.approx(170.0), date(2024, 1, 3))

    await data_client.update_day_value(first.id, on_date=date(2024, 1, 5))
    assert await _stats(data_client, mandate.id) == (pytest.approx(170.0), date(2024, 1, 5))

    await data_client.delete_day_value(first.id)
    assert await _stats(data_client, mandate.id) == (pytest.approx(70.0), date(2024, 1, 3))

    await data_client.delete_day_value(second.id)
    assert await _stats(data_client, mandate.id) == (0.0, None)


async def test_duplicate_date_is_rejected_and_cache_untouched(data_client, mandate):
    await data_client.add_day_value(mandate.id, DayValueCreate(date=date(2024, 2, 1), value=10))

    with pytest.raises(DuplicateEntryError):
        await data_client.add_day_value(mandate.id, DayValueCreate(date=date(2024, 2, 1), value=99))

    assert await _stats(data_client, mandate.id) == (pytest.approx(10.0), date(2024, 2, 1))


async def test_same_date_on_two_mandates(data_client, organization, mandate):
    await data_client.change_plan(organization.id, PlanName.PREMIUM)
    other = await data_client.create_mandate(organization.id, MandateCreate(name="Restaurant", group="RESTAURATION"))

    await data_client.add_day_value(mandate.id, DayValueCreate(date=date(2024, 2, 1), value=10))
    await data_client.add_day_value(other.id, DayValueCreate(date=date(2024, 2, 1), value=20))

    assert await _stats(data_client, mandate.id) == (pytest.approx(10.0), date(2024, 2, 1))
    assert await _stats(data_client, other.id) == (pytest.approx(20.0), date(2024, 2, 1))


async def test_unknown_rows(data_client):
    with pytest.raises(NotFoundError):
        await data_client.add_day_value(uuid.uuid4(), DayValueCreate(date=date(2024, 1, 1), value=1))
    with pytest.raises(NotFoundError):
        await data_client.update_day_value(uuid.uuid4(), value=1)
    with pytest.raises(NotFoundError):
        await data_client.delete_day_value(uuid.uuid4())


async def test_verify_repairs_drifted_cache(data_client, db_engine, mandate):
    # ARRANGE: кэш испорчен в обход репозитория
    await data_client.add_day_value(mandate.id, DayValueCreate(date=date(2024, 3, 1), value=40))
    async with AsyncSession(db_engine) as session:
        await session.execute(
            update(MandateORM).where(MandateORM.id == mandate.id).values(total_revenue=999.0, last_entry=None)
        )
        await session.commit()

    # ACT
    drifted = await data_client.verify_mandate_stats()

    # ASSERT
    assert len(drifted) == 1
    assert drifted[0].mandate_id == mandate.id
    assert drifted[0].stored_total == pytest.approx(999.0)
    assert drifted[0].calculated_total == pytest.approx(40.0)
    assert drifted[0].calculated_last_entry == date(2024, 3, 1)

    assert await _stats(data_client, mandate.id) == (pytest.approx(40.0), date(2024, 3, 1))
    assert await data_client.verify_mandate_stats() == []


async def test_recompute_all(data_client, mandate):
    await data_client.add_day_value(mandate.id, DayValueCreate(date=date(2024, 3, 1), value=40))
    report = await data_client.recompute_all_mandate_stats()
    assert report == {"updated": 1, "errors": 0, "total": 1}


async def test_listing(data_client, organization, mandate):
    for day, value in ((1, 10), (2, 20), (3, 30)):
        await data_client.add_day_value(mandate.id, DayValueCreate(date=date(2024, 4, day), value=value))

    values = await data_client.list_day_values(mandate.id, start=date(2024, 4, 2))
    assert [v.date for v in values] == [date(2024, 4, 3), date(2024, 4, 2)]

    mandates = await data_client.list_mandates(organization.id)
    assert [m.id for m in mandates] == [mandate.id]


async def test_orm_rows_convert_to_dtos(data_client, mandate):
    day_value = await data_client.add_day_value(mandate.id, DayValueCreate(date=date(2024, 5, 1), value=12.5))

    dto = DayValueInDB.model_validate(day_value)
    assert dto.mandate_id == mandate.id
    assert dto.value == 12.5

    refreshed = MandateInDB.model_validate(await data_client.get_mandate(mandate.id))
    assert refreshed.group == "HEBERGEMENT"
    assert refreshed.total_revenue == pytest.approx(12.5)
    assert refreshed.last_entry == date(2024, 5, 1)


async def test_negative_update_is_rejected(data_client, mandate):
    day_value = await data_client.add_day_value(mandate.id, DayValueCreate(date=date(2024, 6, 1), value=80))

    with pytest.raises(ValidationError):
        await data_client.update_day_value(day_value.id, value=-5)

    assert await _stats(data_client, mandate.id) == (pytest.approx(80.0), date(2024, 6, 1))
