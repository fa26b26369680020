"""Read-only access to the employee/contractor/project registries."""
from __future__ import annotations
from sqlmodel import Session, select
from payweek.models.registry import Employee, Contractor, Project, DailyWageHistory


class RegistryRepository:
    def __init__(self, session: Session) -> None:
        self._s = session

    def list_employees(self) -> list[Employee]:
        return list(self._s.exec(select(Employee)).all())

    def list_contractors(self) -> list[Contractor]:
        return list(self._s.exec(select(Contractor)).all())

    def list_projects(self) -> list[Project]:
        return list(self._s.exec(select(Project)).all())

    def list_wage_histories(self, employee_ids: set[str] | None = None) -> list[DailyWageHistory]:
        stmt = select(DailyWageHistory)
        if employee_ids is not None:
            if not employee_ids:
                return []
            stmt = stmt.where(DailyWageHistory.employee_id.in_(employee_ids))
        return list(self._s.exec(stmt).all())
