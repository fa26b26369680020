"""Repository for payroll weeks and the weekly event streams. Caller owns the transaction."""
from __future__ import annotations
from datetime import date
from sqlalchemy import or_
from sqlmodel import Session, select, desc
from payweek.models.payroll import (
    PayrollWeek, Attendance, CashAdvance, ContractorCertification, FundRequest,
    EventSource, PaymentStatus,
)


class PayrollRepository:
    def __init__(self, session: Session) -> None:
        self._s = session

    # --- PayrollWeek ---

    def get_week(self, week_id: str) -> PayrollWeek | None:
        return self._s.get(PayrollWeek, week_id)

    def list_weeks(self, limit: int = 100, offset: int = 0) -> list[PayrollWeek]:
        return list(self._s.exec(
            select(PayrollWeek).order_by(desc(PayrollWeek.start_date)).offset(offset).limit(limit)
        ).all())

    def find_week_by_start(self, start_date: date) -> PayrollWeek | None:
        return self._s.exec(
            select(PayrollWeek).where(PayrollWeek.start_date == start_date)
        ).first()

    # --- Attendance / CashAdvance ---

    def list_attendance(self, week_id: str) -> list[Attendance]:
        return list(self._s.exec(
            select(Attendance).where(Attendance.payroll_week_id == week_id)
        ).all())

    def list_cash_advances(self, week_id: str) -> list[CashAdvance]:
        return list(self._s.exec(
            select(CashAdvance).where(CashAdvance.payroll_week_id == week_id)
        ).all())

    # --- Certifications / FundRequests ---

    def list_certifications(
        self, week_id: str, *, statuses: set[PaymentStatus] | None = None,
    ) -> list[ContractorCertification]:
        stmt = select(ContractorCertification).where(ContractorCertification.payroll_week_id == week_id)
        if statuses is not None:
            stmt = stmt.where(ContractorCertification.status.in_(statuses))
        return list(self._s.exec(stmt).all())

    def list_fund_requests(
        self, start: date, end: date, *, statuses: set[PaymentStatus] | None = None,
    ) -> list[FundRequest]:
        stmt = select(FundRequest).where(FundRequest.date >= start, FundRequest.date <= end)
        if statuses is not None:
            stmt = stmt.where(FundRequest.status.in_(statuses))
        return list(self._s.exec(stmt).all())

    # --- Import cleanup lookups ---

    # Records linked to another week are never stale for this one, even when
    # their date falls inside this week's window.

    def attendance_ids_for_source(
        self, source: EventSource, start: date, end: date, week_id: str | None = None,
    ) -> list[str]:
        in_window = (Attendance.date >= start) & (Attendance.date <= end)
        cond = (
            or_(Attendance.payroll_week_id == week_id, in_window & Attendance.payroll_week_id.is_(None))
            if week_id else in_window
        )
        return list(self._s.exec(
            select(Attendance.id).where(Attendance.source == source, cond)
        ).all())

    def certification_ids_for_source(
        self, source: EventSource, start: date, end: date, week_id: str | None = None,
    ) -> list[str]:
        in_window = (ContractorCertification.date >= start) & (ContractorCertification.date <= end)
        cond = (
            or_(
                ContractorCertification.payroll_week_id == week_id,
                in_window & ContractorCertification.payroll_week_id.is_(None),
            )
            if week_id else in_window
        )
        return list(self._s.exec(
            select(ContractorCertification.id).where(ContractorCertification.source == source, cond)
        ).all())

    def fund_request_ids_for_source(self, source: EventSource, start: date, end: date) -> list[str]:
        return list(self._s.exec(
            select(FundRequest.id).where(
                FundRequest.source == source,
                FundRequest.date >= start,
                FundRequest.date <= end,
            )
        ).all())
