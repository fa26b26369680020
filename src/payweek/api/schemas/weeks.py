"""Payroll week and weekly summary DTOs. Pure Pydantic, zero ORM imports."""
from __future__ import annotations
from datetime import date
from enum import Enum
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class WeekStatusDTO(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class SummaryView(str, Enum):
    PROJECTED = "projected"
    SETTLEMENT = "settlement"


class PayrollWeekRead(_CamelModel):
    id: str
    start_date: date
    end_date: date
    status: WeekStatusDTO
    exchange_rate: float | None = None


class PayrollWeekList(_CamelModel):
    items: list[PayrollWeekRead]
    total: int


class ProjectBreakdownRead(_CamelModel):
    project_id: str
    project_name: str
    personnel: float
    contractors: float
    fund_requests: float
    total: float


class WeeklySummaryResponse(_CamelModel):
    week: PayrollWeekRead
    view: SummaryView
    include_deductions: bool
    personnel: float
    contractors: float
    fund_requests: float
    gross_wages: float
    late_hours_deduction: float
    cash_advances: float
    grand_total: float
    breakdown: list[ProjectBreakdownRead]
