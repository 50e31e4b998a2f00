# Файл: mandate_data_client/repositories/pg_repositoryPayroll.py

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from mandate_data_client.db import (EmployeeORM, ManualPayrollEntryORM, MandateORM,
                                    PayrollImportHistoryORM)
from mandate_data_client.db.base import get_session
from mandate_data_client.exceptions import DatabaseError, NotFoundError
from mandate_data_client.models.payroll import EmployeeCreate, ManualPayrollCreate, PayrollImportCreate
from mandate_data_client.utils.dates import as_utc

logger = logging.getLogger(__name__)

# charges sociales par défaut, si non saisies
DEFAULT_SOCIAL_CHARGES_RATE = 0.22


class PayrollRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def _ensure_mandate(self, session: AsyncSession, mandate_id: UUID) -> None:
        if await session.get(MandateORM, mandate_id) is None:
            raise NotFoundError(f"Mandate with id {mandate_id} not found.")

    # ――― ручной ввод ――― #

    async def upsert_manual_entry(self, mandate_id: UUID, data: ManualPayrollCreate) -> ManualPayrollEntryORM:
        """Создает или перезаписывает запись за (год, месяц)."""
        social_charges = data.social_charges
        if social_charges is None:
            social_charges = data.gross_amount * DEFAULT_SOCIAL_CHARGES_RATE
        total_cost = data.gross_amount + social_charges

        async with get_session(self._session_factory) as session:
            await self._ensure_mandate(session, mandate_id)
            try:
                stmt = select(ManualPayrollEntryORM).where(
                    ManualPayrollEntryORM.mandate_id == mandate_id,
                    ManualPayrollEntryORM.year == data.year,
                    ManualPayrollEntryORM.month == data.month,
                )
                entry = (await session.execute(stmt)).scalar_one_or_none()
                if entry is None:
                    entry = ManualPayrollEntryORM(mandate_id=mandate_id, year=data.year, month=data.month)
                    session.add(entry)
                entry.gross_amount = data.gross_amount
                entry.social_charges = social_charges
                entry.total_cost = total_cost
                entry.employee_count = data.employee_count
                entry.notes = data.notes
                await session.commit()
                await session.refresh(entry)
                return entry
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to save payroll entry for mandate {mandate_id}: {e}") from e

    async def get_latest_manual_entry(self, mandate_id: UUID) -> Optional[ManualPayrollEntryORM]:
        async with get_session(self._session_factory) as session:
            stmt = (
                select(ManualPayrollEntryORM)
                .where(ManualPayrollEntryORM.mandate_id == mandate_id)
                .order_by(ManualPayrollEntryORM.year.desc(), ManualPayrollEntryORM.month.desc())
                .limit(1)
            )
            return (await session.execute(stmt)).scalar_one_or_none()

    async def list_manual_entries(self, mandate_id: UUID, year: Optional[int] = None) -> List[ManualPayrollEntryORM]:
        async with get_session(self._session_factory) as session:
            stmt = select(ManualPayrollEntryORM).where(ManualPayrollEntryORM.mandate_id == mandate_id)
            if year is not None:
                stmt = stmt.where(ManualPayrollEntryORM.year == year)
            stmt = stmt.order_by(ManualPayrollEntryORM.year, ManualPayrollEntryORM.month)
            return list((await session.execute(stmt)).scalars().all())

    # ――― импорты Gastrotime ――― #

    async def record_import(self, mandate_id: UUID, data: PayrollImportCreate) -> PayrollImportHistoryORM:
        record = PayrollImportHistoryORM(
            mandate_id=mandate_id,
            period=data.period,
            import_date=as_utc(data.import_date or datetime.now(timezone.utc)),
            total_employees=data.total_employees,
            total_hours=data.total_hours,
            total_cost=data.total_cost,
            filename=data.filename,
        )
        async with get_session(self._session_factory) as session:
            await self._ensure_mandate(session, mandate_id)
            try:
                session.add(record)
                await session.commit()
                await session.refresh(record)
                logger.info(f"Recorded payroll import for mandate {mandate_id}, period {data.period}")
                return record
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to record payroll import: {e}") from e

    async def get_latest_import(self, mandate_id: UUID) -> Optional[PayrollImportHistoryORM]:
        async with get_session(self._session_factory) as session:
            stmt = (
                select(PayrollImportHistoryORM)
                .where(PayrollImportHistoryORM.mandate_id == mandate_id)
                .order_by(PayrollImportHistoryORM.import_date.desc())
                .limit(1)
            )
            return (await session.execute(stmt)).scalar_one_or_none()

    async def get_import_for_period(self, mandate_id: UUID, period: str) -> Optional[PayrollImportHistoryORM]:
        """Последний импорт за период 'YYYY-MM', если он был."""
        async with get_session(self._session_factory) as session:
            stmt = (
                select(PayrollImportHistoryORM)
                .where(
                    PayrollImportHistoryORM.mandate_id == mandate_id,
                    PayrollImportHistoryORM.period == period,
                )
                .order_by(PayrollImportHistoryORM.import_date.desc())
                .limit(1)
            )
            return (await session.execute(stmt)).scalar_one_or_none()

    async def delete_import(self, import_id: UUID) -> None:
        async with get_session(self._session_factory) as session:
            record = await session.get(PayrollImportHistoryORM, import_id)
            if record is None:
                raise NotFoundError(f"Payroll import with id {import_id} not found.")
            try:
                await session.delete(record)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to delete payroll import {import_id}: {e}") from e

    # ――― сотрудники ――― #

    async def add_employee(self, mandate_id: UUID, data: EmployeeCreate) -> EmployeeORM:
        employee = EmployeeORM(mandate_id=mandate_id, **data.model_dump())
        async with get_session(self._session_factory) as session:
            await self._ensure_mandate(session, mandate_id)
            try:
                session.add(employee)
                await session.commit()
                await session.refresh(employee)
                return employee
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to add employee: {e}") from e

    async def set_employee_active(self, employee_id: UUID, is_active: bool) -> EmployeeORM:
        async with get_session(self._session_factory) as session:
            employee = await session.get(EmployeeORM, employee_id)
            if employee is None:
                raise NotFoundError(f"Employee with id {employee_id} not found.")
            try:
                employee.is_active = is_active
                await session.commit()
                await session.refresh(employee)
                return employee
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to update employee {employee_id}: {e}") from e

    async def count_active_employees(self, mandate_id: UUID) -> int:
        async with get_session(self._session_factory) as session:
            stmt = select(func.count()).select_from(EmployeeORM).where(
                EmployeeORM.mandate_id == mandate_id,
                EmployeeORM.is_active.is_(True),
            )
            return (await session.execute(stmt)).scalar_one()
