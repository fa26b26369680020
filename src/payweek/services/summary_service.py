"""Weekly summary use-case service."""
from __future__ import annotations
from payweek.domain.exceptions import NotFoundError
from payweek.infra.db.uow import UnitOfWork
from payweek.infra.db.repositories.payroll_repository import PayrollRepository
from payweek.infra.db.repositories.registry_repository import RegistryRepository
from payweek.api.schemas.weeks import (
    PayrollWeekRead, ProjectBreakdownRead, SummaryView, WeeklySummaryResponse,
)
from payweek.finance.aggregator import aggregate_week
from payweek.models.payroll import PaymentStatus

# Status filter and deduction switch per view.
VIEW_RULES: dict[SummaryView, tuple[set[PaymentStatus], bool]] = {
    SummaryView.PROJECTED: (
        {PaymentStatus.PENDING, PaymentStatus.APPROVED, PaymentStatus.PAID}, False,
    ),
    SummaryView.SETTLEMENT: ({PaymentStatus.APPROVED}, True),
}


class SummaryService:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def get_summary(
        self, week_id: str, view: SummaryView = SummaryView.PROJECTED,
    ) -> WeeklySummaryResponse:
        payroll = PayrollRepository(self._uow.session)
        registry = RegistryRepository(self._uow.session)

        week = payroll.get_week(week_id)
        if week is None:
            raise NotFoundError(f"Payroll week {week_id} not found")

        statuses, include_deductions = VIEW_RULES[view]
        attendance = payroll.list_attendance(week_id)
        employee_ids = {a.employee_id for a in attendance}

        totals = aggregate_week(
            week,
            attendance=attendance,
            cash_advances=payroll.list_cash_advances(week_id),
            certifications=payroll.list_certifications(week_id, statuses=statuses),
            fund_requests=payroll.list_fund_requests(week.start_date, week.end_date, statuses=statuses),
            employees=registry.list_employees(),
            projects=sorted(registry.list_projects(), key=lambda p: p.name),
            wage_histories=registry.list_wage_histories(employee_ids),
            include_deductions=include_deductions,
        )

        return WeeklySummaryResponse(
            week=PayrollWeekRead.model_validate(week),
            view=view,
            include_deductions=include_deductions,
            personnel=totals.personnel,
            contractors=totals.contractors,
            fund_requests=totals.fund_requests,
            gross_wages=totals.gross_wages,
            late_hours_deduction=totals.late_hours_deduction,
            cash_advances=totals.cash_advances,
            grand_total=totals.grand_total,
            breakdown=[
                ProjectBreakdownRead(
                    project_id=b.project_id,
                    project_name=b.project_name,
                    personnel=b.personnel,
                    contractors=b.contractors,
                    fund_requests=b.fund_requests,
                    total=b.total,
                )
                for b in totals.breakdown
            ],
        )
