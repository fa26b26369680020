"""Events produced by row classification, before they become stored records."""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, timedelta
from payweek.ingest.workbook import week_bounds


@dataclass(frozen=True)
class SheetContext:
    sheet_name: str
    base_date: date
    week_start: date
    week_end: date

    @classmethod
    def for_sheet_date(cls, sheet_name: str, sheet_date: date) -> "SheetContext":
        start, end = week_bounds(sheet_date)
        return cls(sheet_name=sheet_name, base_date=sheet_date, week_start=start, week_end=end)

    @classmethod
    def for_explicit_week(
        cls, sheet_name: str, week_start: date, week_end: date | None = None,
    ) -> "SheetContext":
        end = week_end or week_start + timedelta(days=6)
        return cls(sheet_name=sheet_name, base_date=week_start, week_start=week_start, week_end=end)


@dataclass(frozen=True)
class ImportWarning:
    reason: str
    sheet: str | None = None
    row: int | None = None


@dataclass(frozen=True)
class AttendanceEvent:
    employee_id: str
    date: date
    project_id: str | None
    notes: str | None = None


@dataclass(frozen=True)
class CertificationEvent:
    contractor_id: str
    contractor_name: str
    project_id: str
    project_name: str
    amount: float
    date: date
    notes: str | None = None


@dataclass(frozen=True)
class FundRequestEvent:
    category: str
    project_id: str | None
    project_name: str | None
    amount: float
    date: date
    description: str


@dataclass
class ClassificationResult:
    attendance: list[AttendanceEvent] = field(default_factory=list)
    certifications: list[CertificationEvent] = field(default_factory=list)
    fund_requests: list[FundRequestEvent] = field(default_factory=list)
    warnings: list[ImportWarning] = field(default_factory=list)

    def extend(self, other: "ClassificationResult") -> None:
        self.attendance.extend(other.attendance)
        self.certifications.extend(other.certifications)
        self.fund_requests.extend(other.fund_requests)
        self.warnings.extend(other.warnings)

    @property
    def event_count(self) -> int:
        return len(self.attendance) + len(self.certifications) + len(self.fund_requests)
