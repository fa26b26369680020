"""Payroll week endpoints."""
from fastapi import APIRouter, Depends, Query
from payweek.api.deps import get_uow
from payweek.api.schemas.weeks import (
    PayrollWeekList, PayrollWeekRead, SummaryView, WeeklySummaryResponse,
)
from payweek.infra.db.uow import UnitOfWork
from payweek.services.summary_service import SummaryService
from payweek.services.weeks_service import WeeksService

router = APIRouter(prefix="/payroll-weeks", tags=["payroll-weeks"])


@router.get("", response_model=PayrollWeekList)
def list_weeks(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    uow: UnitOfWork = Depends(get_uow),
) -> PayrollWeekList:
    return WeeksService(uow).list_weeks(limit=limit, offset=offset)


@router.get("/{week_id}", response_model=PayrollWeekRead)
def get_week(week_id: str, uow: UnitOfWork = Depends(get_uow)) -> PayrollWeekRead:
    return WeeksService(uow).get_week(week_id)


@router.get("/{week_id}/summary", response_model=WeeklySummaryResponse)
def get_week_summary(
    week_id: str,
    view: SummaryView = Query(SummaryView.PROJECTED),
    uow: UnitOfWork = Depends(get_uow),
) -> WeeklySummaryResponse:
    return SummaryService(uow).get_summary(week_id, view)
