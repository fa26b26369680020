"""Unit tests for the UnitOfWork context manager."""
from datetime import date
import pytest
from sqlmodel import Session, select
from payweek.models.payroll import PayrollWeek
from payweek.infra.db.uow import UnitOfWork


def test_commit_persists_record(use_test_engine):
    with UnitOfWork() as uow:
        week = PayrollWeek(start_date=date(2026, 3, 2), end_date=date(2026, 3, 8))
        uow.session.add(week)
        uow.commit()
        week_id = week.id

    # Verify in a separate session
    with Session(use_test_engine) as s:
        fetched = s.get(PayrollWeek, week_id)
        assert fetched is not None
        assert fetched.start_date == date(2026, 3, 2)


def test_rollback_on_exception_reverts_record(use_test_engine):
    with Session(use_test_engine) as s:
        count_before = len(s.exec(select(PayrollWeek)).all())

    try:
        with UnitOfWork() as uow:
            week = PayrollWeek(start_date=date(2026, 3, 9), end_date=date(2026, 3, 15))
            uow.session.add(week)
            uow.session.flush()  # write to DB within transaction
            raise ValueError("forced error")
    except ValueError:
        pass

    # Record must not have been persisted
    with Session(use_test_engine) as s:
        count_after = len(s.exec(select(PayrollWeek)).all())

    assert count_after == count_before


def test_session_is_released_after_exit(use_test_engine):
    uow = UnitOfWork()
    with uow:
        uow.session.add(PayrollWeek(start_date=date(2026, 3, 16), end_date=date(2026, 3, 22)))
    with pytest.raises(RuntimeError):
        uow.session
    with pytest.raises(RuntimeError):
        uow.commit()
