# Файл: mandate_data_client/repositories/pg_repositoryMandate.py

import logging
from datetime import date
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, func, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from mandate_data_client.db import MandateORM, DayValueORM, OrganizationORM
from mandate_data_client.db.base import get_session
from mandate_data_client.db.uow import AsyncUnitOfWork
from mandate_data_client.exceptions import DatabaseError, DuplicateEntryError, NotFoundError, ValidationError
from mandate_data_client.models.mandate import MandateCreate, DayValueCreate, MandateStatsDrift

logger = logging.getLogger(__name__)

# допуск при сравнении сохраненной и пересчитанной выручки
REVENUE_TOLERANCE = 0.01


async def _aggregate(session: AsyncSession, mandate_id: UUID) -> Tuple[float, Optional[date]]:
    stmt = select(
        func.coalesce(func.sum(DayValueORM.value), 0.0),
        func.max(DayValueORM.date),
    ).where(DayValueORM.mandate_id == mandate_id)
    total, last = (await session.execute(stmt)).one()
    return float(total or 0.0), last


async def recompute_stats(session: AsyncSession, mandate_id: UUID) -> MandateORM:
    """
    Единственное место, где пишутся кэшированные total_revenue/last_entry.
    Вызывается внутри транзакции, которая меняла day_values, - до коммита.
    """
    await session.flush()
    mandate = await session.get(MandateORM, mandate_id)
    if mandate is None:
        raise NotFoundError(f"Mandate with id {mandate_id} not found.")
    total, last = await _aggregate(session, mandate_id)
    mandate.total_revenue = total
    mandate.last_entry = last
    return mandate


class MandateRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # ――― мандаты ――― #

    async def create_mandate(self, organization_id: UUID, data: MandateCreate) -> MandateORM:
        mandate = MandateORM(organization_id=organization_id, **data.model_dump())
        async with get_session(self._session_factory) as session:
            if await session.get(OrganizationORM, organization_id) is None:
                raise NotFoundError(f"Organization with id {organization_id} not found.")
            try:
                session.add(mandate)
                await session.commit()
                await session.refresh(mandate)
                logger.info(f"Created mandate '{mandate.name}' ({mandate.id}) for organization {organization_id}")
                return mandate
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to create mandate: {e}") from e

    async def get_by_id(self, mandate_id: UUID) -> Optional[MandateORM]:
        async with get_session(self._session_factory) as session:
            return await session.get(MandateORM, mandate_id)

    async def list_for_organization(self, organization_id: UUID) -> List[MandateORM]:
        async with get_session(self._session_factory) as session:
            stmt = (
                select(MandateORM)
                .where(MandateORM.organization_id == organization_id)
                .order_by(MandateORM.group, MandateORM.name)
            )
            return list((await session.execute(stmt)).scalars().all())

    async def count_for_organization(self, organization_id: UUID) -> int:
        async with get_session(self._session_factory) as session:
            stmt = select(func.count()).select_from(MandateORM).where(MandateORM.organization_id == organization_id)
            return (await session.execute(stmt)).scalar_one()

    async def delete_mandate(self, mandate_id: UUID) -> None:
        async with get_session(self._session_factory) as session:
            mandate = await session.get(MandateORM, mandate_id)
            if mandate is None:
                raise NotFoundError(f"Mandate with id {mandate_id} not found.")
            try:
                await session.execute(delete(DayValueORM).where(DayValueORM.mandate_id == mandate_id))
                await session.delete(mandate)
                await session.commit()
                logger.info(f"Deleted mandate {mandate_id}")
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to delete mandate {mandate_id}: {e}") from e

    # ――― дневная выручка: каждая операция = изменение строки + пересчет кэша в одной транзакции ――― #

    async def add_day_value(self, mandate_id: UUID, data: DayValueCreate) -> DayValueORM:
        try:
            async with AsyncUnitOfWork(self._session_factory) as uow:
                if await uow.session.get(MandateORM, mandate_id) is None:
                    raise NotFoundError(f"Mandate with id {mandate_id} not found.")
                day_value = DayValueORM(mandate_id=mandate_id, date=data.date, value=data.value)
                uow.session.add(day_value)
                await recompute_stats(uow.session, mandate_id)
        except IntegrityError as e:
            raise DuplicateEntryError(f"A value for {data.date} already exists for mandate {mandate_id}.") from e
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to add day value: {e}") from e
        return day_value

    async def update_day_value(
        self, day_value_id: UUID, value: Optional[float] = None, on_date: Optional[date] = None
    ) -> DayValueORM:
        if value is not None and value < 0:
            raise ValidationError(f"Day value must be >= 0, got {value}")
        try:
            async with AsyncUnitOfWork(self._session_factory) as uow:
                day_value = await uow.session.get(DayValueORM, day_value_id)
                if day_value is None:
                    raise NotFoundError(f"Day value with id {day_value_id} not found.")
                if value is not None:
                    day_value.value = value
                if on_date is not None:
                    day_value.date = on_date
                await recompute_stats(uow.session, day_value.mandate_id)
        except IntegrityError as e:
            raise DuplicateEntryError(f"A value for {on_date} already exists for this mandate.") from e
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to update day value {day_value_id}: {e}") from e
        return day_value

    async def delete_day_value(self, day_value_id: UUID) -> None:
        try:
            async with AsyncUnitOfWork(self._session_factory) as uow:
                day_value = await uow.session.get(DayValueORM, day_value_id)
                if day_value is None:
                    raise NotFoundError(f"Day value with id {day_value_id} not found.")
                mandate_id = day_value.mandate_id
                await uow.session.delete(day_value)
                await recompute_stats(uow.session, mandate_id)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to delete day value {day_value_id}: {e}") from e

    async def list_day_values(
        self, mandate_id: UUID, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[DayValueORM]:
        async with get_session(self._session_factory) as session:
            stmt = select(DayValueORM).where(DayValueORM.mandate_id == mandate_id)
            if start is not None:
                stmt = stmt.where(DayValueORM.date >= start)
            if end is not None:
                stmt = stmt.where(DayValueORM.date <= end)
            stmt = stmt.order_by(DayValueORM.date.desc())
            return list((await session.execute(stmt)).scalars().all())

    async def sum_revenue(self, mandate_id: UUID, start: date, end: date) -> float:
        """Выручка мандата за период [start, end] включительно."""
        async with get_session(self._session_factory) as session:
            stmt = select(func.coalesce(func.sum(DayValueORM.value), 0.0)).where(
                DayValueORM.mandate_id == mandate_id,
                DayValueORM.date >= start,
                DayValueORM.date <= end,
            )
            return float((await session.execute(stmt)).scalar_one() or 0.0)

    # ――― обслуживание кэша ――― #

    async def recompute_stats(self, mandate_id: UUID) -> MandateORM:
        async with AsyncUnitOfWork(self._session_factory) as uow:
            mandate = await recompute_stats(uow.session, mandate_id)
        return mandate

    async def find_stats_drift(self) -> List[MandateStatsDrift]:
        """Мандаты, у которых кэш не совпадает с суммой/максимумом по day_values."""
        async with get_session(self._session_factory) as session:
            stmt = (
                select(
                    MandateORM.id,
                    MandateORM.name,
                    MandateORM.total_revenue,
                    MandateORM.last_entry,
                    func.coalesce(func.sum(DayValueORM.value), 0.0),
                    func.max(DayValueORM.date),
                )
                .outerjoin(DayValueORM, DayValueORM.mandate_id == MandateORM.id)
                .group_by(MandateORM.id, MandateORM.name, MandateORM.total_revenue, MandateORM.last_entry)
            )
            rows = (await session.execute(stmt)).all()

        drifted = []
        for mandate_id, name, stored_total, stored_last, calc_total, calc_last in rows:
            calc_total = float(calc_total or 0.0)
            if abs((stored_total or 0.0) - calc_total) > REVENUE_TOLERANCE or stored_last != calc_last:
                drifted.append(MandateStatsDrift(
                    mandate_id=mandate_id,
                    name=name,
                    stored_total=stored_total or 0.0,
                    calculated_total=calc_total,
                    stored_last_entry=stored_last,
                    calculated_last_entry=calc_last,
                ))
        return drifted

    async def list_ids(self) -> List[UUID]:
        async with get_session(self._session_factory) as session:
            return list((await session.execute(select(MandateORM.id))).scalars().all())
