from __future__ import annotations
from enum import Enum
from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_validator


class PayrollSource(str, Enum):
    MANUAL = "manual"
    GASTROTIME_IMPORT = "gastrotime_import"
    ACTIVE_EMPLOYEES = "active_employees"


class AuthoritativePayroll(BaseModel):
    mandate_id: UUID
    employee_count: Optional[int] = None
    source: Optional[PayrollSource] = None
    # Дата "победившей" записи: 1-е число месяца ручного ввода или момент импорта.
    reference_date: Optional[datetime] = None
    social_charges_rate: Optional[float] = None
    # Есть ли хоть одна ручная запись или импорт.
    has_payroll_data: bool = False
    # Стоимость персонала за текущий месяц в % от выручки этого месяца.
    current_month_ratio: Optional[float] = None


class ManualPayrollCreate(BaseModel):
    year: int = Field(..., ge=2020, le=2030)
    month: int = Field(..., ge=1, le=12)
    gross_amount: float = Field(..., ge=0)
    social_charges: Optional[float] = Field(None, ge=0)
    employee_count: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class PayrollImportCreate(BaseModel):
    period: str
    import_date: Optional[datetime] = None
    total_employees: int = Field(0, ge=0)
    total_hours: float = Field(0, ge=0)
    total_cost: float = Field(0, ge=0)
    filename: Optional[str] = None

    @field_validator("period")
    @classmethod
    def _check_period(cls, v: str) -> str:
        year, sep, month = v.partition("-")
        if not sep or not (year.isdigit() and month.isdigit()) or len(year) != 4 or not 1 <= int(month) <= 12:
            raise ValueError("period must look like 'YYYY-MM'")
        return f"{year}-{int(month):02d}"


class EmployeeCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    position: Optional[str] = None
    is_active: bool = True
