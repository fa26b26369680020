"""Payroll week and the three event streams the weekly import produces."""
from datetime import date as date_type
from enum import Enum
from typing import Optional
from sqlmodel import Field, UniqueConstraint
from payweek.models.base import TimestampMixin, new_id


class WeekStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class EventSource(str, Enum):
    MANUAL = "MANUAL"
    IMPORT = "IMPORT"
    IMPORT_LEGACY = "IMPORT_LEGACY"


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PAID = "PAID"


class Currency(str, Enum):
    ARS = "ARS"
    USD = "USD"


class FundCategory(str, Enum):
    MATERIALS = "Materiales"
    LOGISTICS = "Logística y PMD"
    PETTY_CASH = "Caja Chica"
    OTHER = "Otros"


class PayrollWeek(TimestampMixin, table=True):
    __table_args__ = (
        UniqueConstraint("start_date", name="uq_payrollweek_start_date"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    start_date: date_type
    end_date: date_type
    status: WeekStatus = Field(default=WeekStatus.OPEN)
    exchange_rate: Optional[float] = None


class Attendance(TimestampMixin, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    employee_id: str = Field(index=True)
    date: date_type = Field(index=True)
    status: AttendanceStatus = Field(default=AttendanceStatus.PRESENT)
    late_hours: float = Field(default=0.0)
    project_id: Optional[str] = Field(default=None, index=True)
    payroll_week_id: str = Field(foreign_key="payrollweek.id", index=True)
    source: EventSource = Field(default=EventSource.MANUAL, index=True)
    notes: Optional[str] = None


class CashAdvance(TimestampMixin, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    employee_id: str = Field(index=True)
    payroll_week_id: str = Field(foreign_key="payrollweek.id", index=True)
    project_id: Optional[str] = None
    amount: float
    installments: int = Field(default=1)
    date: Optional[date_type] = None
    reason: Optional[str] = None


class ContractorCertification(TimestampMixin, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    payroll_week_id: str = Field(foreign_key="payrollweek.id", index=True)
    contractor_id: str = Field(index=True)
    contractor_name: Optional[str] = None
    project_id: str = Field(index=True)
    project_name: Optional[str] = None
    amount: float
    currency: Currency = Field(default=Currency.ARS)
    date: date_type = Field(index=True)
    status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    source: EventSource = Field(default=EventSource.MANUAL, index=True)
    notes: Optional[str] = None


class FundRequest(TimestampMixin, table=True):
    """Expense request. Not linked to a week; scoped by ``date`` instead."""
    id: str = Field(default_factory=new_id, primary_key=True)
    requester_id: Optional[str] = None
    requester_name: Optional[str] = None
    category: str = Field(default=FundCategory.MATERIALS.value)
    project_id: Optional[str] = Field(default=None, index=True)
    project_name: Optional[str] = None
    amount: float
    currency: Currency = Field(default=Currency.ARS)
    exchange_rate: float = Field(default=1.0)
    status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    date: date_type = Field(index=True)
    description: Optional[str] = None
    source: EventSource = Field(default=EventSource.MANUAL, index=True)
