"""Payroll week read use-case service."""
from __future__ import annotations
from payweek.domain.exceptions import NotFoundError
from payweek.infra.db.uow import UnitOfWork
from payweek.infra.db.repositories.payroll_repository import PayrollRepository
from payweek.api.schemas.weeks import PayrollWeekRead, PayrollWeekList


class WeeksService:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def list_weeks(self, limit: int = 100, offset: int = 0) -> PayrollWeekList:
        weeks = PayrollRepository(self._uow.session).list_weeks(limit=limit, offset=offset)
        items = [PayrollWeekRead.model_validate(w) for w in weeks]
        return PayrollWeekList(items=items, total=len(items))

    def get_week(self, week_id: str) -> PayrollWeekRead:
        week = PayrollRepository(self._uow.session).get_week(week_id)
        if week is None:
            raise NotFoundError(f"Payroll week {week_id} not found")
        return PayrollWeekRead.model_validate(week)
