"""Registries the import resolves names against. Read-only from the pipeline's side."""
from datetime import date
from typing import Optional
from sqlmodel import Field
from payweek.models.base import TimestampMixin, new_id


class Employee(TimestampMixin, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(index=True)
    category: Optional[str] = None
    daily_wage: float = Field(default=0.0)
    status: str = Field(default="Activo")


class Contractor(TimestampMixin, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(index=True)


class Project(TimestampMixin, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(index=True)
    client: Optional[str] = None
    status: str = Field(default="En Curso")


class DailyWageHistory(TimestampMixin, table=True):
    """Wage changes over time; the latest entry effective on a date wins."""
    id: str = Field(default_factory=new_id, primary_key=True)
    employee_id: str = Field(foreign_key="employee.id", index=True)
    amount: float
    effective_date: date
