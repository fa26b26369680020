"""Weekly cost aggregation.

Pure functions over already-loaded records. Totals are never rounded here;
formatting belongs to whoever presents them.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from numbers import Real
from typing import Any, Iterable

from payweek.models.payroll import AttendanceStatus, Currency

HOURS_PER_DAY = 8


def coerce_amount(value: Any) -> float:
    """Numbers pass through; locale text like ``"1.234,50"`` is parsed; anything else is 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, Real):
        number = float(value)
        return 0.0 if math.isnan(number) or math.isinf(number) else number
    if isinstance(value, str):
        cleaned = value.strip().replace(".", "").replace(",", ".")
        try:
            number = float(cleaned)
        except ValueError:
            return 0.0
        return 0.0 if math.isnan(number) or math.isinf(number) else number
    return 0.0


@dataclass
class ProjectBreakdown:
    project_id: str
    project_name: str
    personnel: float = 0.0
    contractors: float = 0.0
    fund_requests: float = 0.0

    @property
    def total(self) -> float:
        return self.personnel + self.contractors + self.fund_requests


@dataclass
class WeeklyTotals:
    personnel: float
    contractors: float
    fund_requests: float
    gross_wages: float
    late_hours_deduction: float
    cash_advances: float
    breakdown: list[ProjectBreakdown] = field(default_factory=list)

    @property
    def grand_total(self) -> float:
        return self.personnel + self.contractors + self.fund_requests


class WageBook:
    """Daily wage per employee and date, honouring wage history when present."""

    def __init__(self, employees: Iterable[Any], wage_histories: Iterable[Any] = ()) -> None:
        self._base = {e.id: coerce_amount(getattr(e, "daily_wage", None)) for e in employees}
        self._history: dict[str, list[tuple[date, float]]] = {}
        for h in wage_histories:
            effective = getattr(h, "effective_date", None)
            if effective is None:
                continue
            self._history.setdefault(h.employee_id, []).append(
                (effective, coerce_amount(getattr(h, "amount", None)))
            )
        for entries in self._history.values():
            entries.sort(key=lambda e: e[0])

    def wage_for(self, employee_id: str, day: date | None) -> float:
        wage = self._base.get(employee_id, 0.0)
        if day is None:
            return wage
        for effective, amount in self._history.get(employee_id, ()):
            if effective <= day:
                wage = amount
            else:
                break
        return wage


def _is_present(att: Any) -> bool:
    return getattr(att, "status", None) == AttendanceStatus.PRESENT


def _is_usd(record: Any) -> bool:
    return getattr(record, "currency", None) == Currency.USD


def fund_request_amount(req: Any, week_rate: float = 0.0) -> float:
    amount = coerce_amount(getattr(req, "amount", None))
    if not _is_usd(req):
        return amount
    rate = coerce_amount(getattr(req, "exchange_rate", None)) or week_rate or 1.0
    return amount * rate


def certification_amount(cert: Any, week_rate: float = 0.0) -> float:
    amount = coerce_amount(getattr(cert, "amount", None))
    if not _is_usd(cert):
        return amount
    return amount * (week_rate or 1.0)


def cash_advance_amount(adv: Any) -> float:
    installments = coerce_amount(getattr(adv, "installments", None)) or 1.0
    return coerce_amount(getattr(adv, "amount", None)) / installments


def aggregate_week(
    week: Any,
    *,
    attendance: Iterable[Any],
    cash_advances: Iterable[Any],
    certifications: Iterable[Any],
    fund_requests: Iterable[Any],
    employees: Iterable[Any],
    projects: Iterable[Any],
    wage_histories: Iterable[Any] = (),
    include_deductions: bool = True,
) -> WeeklyTotals:
    """Personnel, contractor and fund-request cost of one payroll week.

    ``include_deductions`` switches between the settlement view (late hours and
    cash advances subtracted) and the projected view (gross wages only).
    Records without a known project count toward the totals but not the
    per-project breakdown.
    """
    week_rate = coerce_amount(getattr(week, "exchange_rate", None))
    wages = WageBook(employees, wage_histories)
    by_project: dict[str, ProjectBreakdown] = {
        p.id: ProjectBreakdown(project_id=p.id, project_name=p.name) for p in projects
    }

    gross = late = 0.0
    for att in attendance:
        if not _is_present(att):
            continue
        wage = wages.wage_for(att.employee_id, getattr(att, "date", None))
        late_cost = coerce_amount(getattr(att, "late_hours", None)) * wage / HOURS_PER_DAY
        gross += wage
        late += late_cost
        entry = by_project.get(getattr(att, "project_id", None))
        if entry is not None:
            entry.personnel += wage - late_cost if include_deductions else wage

    advances = 0.0
    for adv in cash_advances:
        amount = cash_advance_amount(adv)
        advances += amount
        entry = by_project.get(getattr(adv, "project_id", None))
        if entry is not None and include_deductions:
            entry.personnel -= amount

    personnel = gross - late - advances if include_deductions else gross

    contractors = 0.0
    for cert in certifications:
        amount = certification_amount(cert, week_rate)
        contractors += amount
        entry = by_project.get(getattr(cert, "project_id", None))
        if entry is not None:
            entry.contractors += amount

    requests = 0.0
    for req in fund_requests:
        amount = fund_request_amount(req, week_rate)
        requests += amount
        entry = by_project.get(getattr(req, "project_id", None))
        if entry is not None:
            entry.fund_requests += amount

    breakdown = [
        b for b in by_project.values()
        if b.personnel or b.contractors or b.fund_requests
    ]
    return WeeklyTotals(
        personnel=personnel,
        contractors=contractors,
        fund_requests=requests,
        gross_wages=gross,
        late_hours_deduction=late,
        cash_advances=advances,
        breakdown=breakdown,
    )
