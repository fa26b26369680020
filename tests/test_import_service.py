"""Integration tests for ImportService and ImportReconciler against a temp SQLite DB."""
from datetime import date

import pytest
from sqlmodel import Session, select

from payweek.config import settings
from payweek.domain.exceptions import (
    ImportTimeoutError, ImportValidationError, InferenceError, PersistenceError,
)
from payweek.ingest.events import AttendanceEvent, ClassificationResult, SheetContext
from payweek.ingest.reconciler import ImportReconciler, OpKind
from payweek.infra.db.repositories.payroll_repository import PayrollRepository
from payweek.models.payroll import (
    Attendance, ContractorCertification, EventSource, FundRequest, PaymentStatus, PayrollWeek,
)
from payweek.services.import_service import ImportService

HEADER = ["Nombre", "Categoria", "Lunes", "Martes", "Obra Norte", "Obra Sur"]
OVERRIDE = {
    "headerRowIndex": 1,
    "dataStartRowIndex": 2,
    "nameColumnIndex": 0,
    "categoryColumnIndex": 1,
    "projectColumnIndices": [4, 5],
    "dayColumnIndices": [{"index": 2, "date": "2026-02-02"}, {"index": 3, "date": "2026-02-03"}],
}


def _sheet(juan_days=("x", "Obra Sur")):
    return [
        ["Planilla semanal"],
        HEADER,
        ["Juan Perez", "Oficial", *juan_days, "", ""],
        ["Acme SRL", "Pintura", "", "", 15000, ""],
        ["", "Caja", "", "", "", 3000],
    ]


def _all(engine, model):
    with Session(engine) as s:
        return list(s.exec(select(model)).all())


def _import(sheets, **kwargs):
    return ImportService().import_sheets(sheets, analysis_override=OVERRIDE, **kwargs)


# ---------------------------------------------------------------------------
# Mapped import
# ---------------------------------------------------------------------------


def test_import_creates_week_and_events(registry):
    result = _import({"02.02.2026": _sheet()})

    assert result.sheets_processed == 1
    assert (result.created.attendance, result.created.certifications, result.created.fund_requests) == (2, 1, 1)

    weeks = _all(registry, PayrollWeek)
    assert len(weeks) == 1
    assert (weeks[0].start_date, weeks[0].end_date) == (date(2026, 2, 2), date(2026, 2, 8))
    assert weeks[0].exchange_rate == settings.IMPORT_DEFAULT_EXCHANGE_RATE

    att = sorted(_all(registry, Attendance), key=lambda a: a.date)
    assert [(a.employee_id, a.date, a.project_id, a.source) for a in att] == [
        ("E1", date(2026, 2, 2), None, EventSource.IMPORT),
        ("E1", date(2026, 2, 3), "P2", EventSource.IMPORT),
    ]
    assert all(a.payroll_week_id == weeks[0].id for a in att)

    cert = _all(registry, ContractorCertification)[0]
    assert (cert.contractor_id, cert.project_id, cert.amount, cert.status) == ("C1", "P1", 15000, PaymentStatus.PENDING)

    req = _all(registry, FundRequest)[0]
    assert (req.category, req.project_id, req.amount) == ("Caja Chica", "P2", 3000)
    assert (req.requester_id, req.requester_name) == ("SYSTEM", "Importador Excel")
    assert req.exchange_rate == settings.IMPORT_DEFAULT_EXCHANGE_RATE


def test_reimport_is_idempotent(registry):
    _import({"02.02.2026": _sheet()}, exchange_rate=1500)
    _import({"02.02.2026": _sheet()}, exchange_rate=1500)

    assert len(_all(registry, PayrollWeek)) == 1
    assert len(_all(registry, Attendance)) == 2
    assert len(_all(registry, ContractorCertification)) == 1
    assert len(_all(registry, FundRequest)) == 1


def test_reimport_replaces_previous_import(registry):
    _import({"02.02.2026": _sheet()})
    _import({"02.02.2026": _sheet(juan_days=("", "Obra Norte"))})

    att = _all(registry, Attendance)
    assert [(a.date, a.project_id) for a in att] == [(date(2026, 2, 3), "P1")]


def test_manual_and_other_source_records_survive(registry):
    _import({"02.02.2026": _sheet()})
    week = _all(registry, PayrollWeek)[0]
    with Session(registry) as s:
        s.add(Attendance(employee_id="E2", date=date(2026, 2, 4), payroll_week_id=week.id))
        s.add(Attendance(employee_id="E2", date=date(2026, 2, 5), payroll_week_id=week.id,
                         source=EventSource.IMPORT_LEGACY))
        s.add(FundRequest(amount=99, date=date(2026, 2, 6), description="manual"))
        s.commit()

    _import({"02.02.2026": _sheet()})

    sources = sorted(a.source.value for a in _all(registry, Attendance))
    assert sources == ["IMPORT", "IMPORT", "IMPORT_LEGACY", "MANUAL"]
    assert sorted(r.amount for r in _all(registry, FundRequest)) == [99, 3000]


def test_invalid_sheet_name_is_skipped_with_warning(registry):
    result = _import({"02.02.2026": _sheet(), "31/02/2026": _sheet(), "Resumen": _sheet()})

    assert result.sheets_processed == 1
    skipped = [w for w in result.warnings if w.sheet in ("31/02/2026", "Resumen")]
    assert len(skipped) == 2
    assert "31/02/2026" in skipped[0].reason
    assert len(_all(registry, Attendance)) == 2


def test_sheets_of_the_same_week_accumulate(registry):
    result = _import({"02.02.2026": _sheet(), "04.02.2026": _sheet()})

    assert result.sheets_processed == 2
    assert len(_all(registry, PayrollWeek)) == 1
    att_dates = sorted(a.date for a in _all(registry, Attendance))
    assert att_dates == [date(2026, 2, 2), date(2026, 2, 3), date(2026, 2, 4), date(2026, 2, 5)]


def test_sheets_of_different_weeks_create_each_week(registry):
    _import({"02.02.2026": _sheet(), "09.02.2026": _sheet()})
    starts = sorted(w.start_date for w in _all(registry, PayrollWeek))
    assert starts == [date(2026, 2, 2), date(2026, 2, 9)]


def test_next_week_import_keeps_spillover_attendance_of_previous_week(registry):
    # A Sunday sheet's second day column lands on the following Monday.
    _import({"08.02.2026": _sheet()})
    _import({"09.02.2026": _sheet()})

    weeks = {w.start_date: w.id for w in _all(registry, PayrollWeek)}
    by_week: dict[str, list[date]] = {}
    for a in _all(registry, Attendance):
        by_week.setdefault(a.payroll_week_id, []).append(a.date)

    assert sorted(by_week[weeks[date(2026, 2, 2)]]) == [date(2026, 2, 8), date(2026, 2, 9)]
    assert sorted(by_week[weeks[date(2026, 2, 9)]]) == [date(2026, 2, 9), date(2026, 2, 10)]


def test_reimport_of_previous_week_replaces_its_spillover(registry):
    _import({"08.02.2026": _sheet()})
    _import({"09.02.2026": _sheet()})
    _import({"08.02.2026": _sheet(juan_days=("x", ""))})

    first = next(w for w in _all(registry, PayrollWeek) if w.start_date == date(2026, 2, 2))
    dates = sorted(a.date for a in _all(registry, Attendance) if a.payroll_week_id == first.id)
    assert dates == [date(2026, 2, 8)]
    assert len(_all(registry, Attendance)) == 3


def test_existing_week_is_reused(registry):
    with Session(registry) as s:
        s.add(PayrollWeek(id="WEXIST", start_date=date(2026, 2, 2), end_date=date(2026, 2, 8), exchange_rate=900))
        s.commit()

    _import({"03.02.2026": _sheet()})

    weeks = _all(registry, PayrollWeek)
    assert [w.id for w in weeks] == ["WEXIST"]
    assert weeks[0].exchange_rate == 900
    assert {a.payroll_week_id for a in _all(registry, Attendance)} == {"WEXIST"}


def test_unresolved_project_column_warns(registry):
    header = HEADER[:-1] + ["Obra Fantasma"]
    rows = [["Planilla"], header, ["Acme SRL", "", "", "", "", 500], [""], [""]]
    result = _import({"02.02.2026": rows})
    assert any("Obra Fantasma" in w.reason for w in result.warnings)
    assert _all(registry, ContractorCertification) == []


# ---------------------------------------------------------------------------
# Rejections: nothing is written
# ---------------------------------------------------------------------------


def test_missing_file_rejected(registry):
    with pytest.raises(ImportValidationError, match="Missing file"):
        ImportService().import_workbook(None)


def test_short_sheet_rejected_without_writes(registry):
    with pytest.raises(ImportValidationError):
        _import({"02.02.2026": _sheet()[:4]})
    assert _all(registry, PayrollWeek) == []


@pytest.mark.parametrize("rate", [0, -1500.0])
def test_non_positive_exchange_rate_rejected(registry, rate):
    with pytest.raises(ImportValidationError, match="exchange rate"):
        _import({"02.02.2026": _sheet()}, exchange_rate=rate)
    assert _all(registry, PayrollWeek) == []


def test_missing_exchange_rate_uses_default(registry):
    _import({"02.02.2026": _sheet()}, exchange_rate=None)
    assert _all(registry, PayrollWeek)[0].exchange_rate == settings.IMPORT_DEFAULT_EXCHANGE_RATE


class SteppingClock:
    def __init__(self, step):
        self.now = 0.0
        self.step = step

    def __call__(self):
        current = self.now
        self.now += self.step
        return current


def test_deadline_between_sheets_aborts_without_writes(registry, monkeypatch):
    monkeypatch.setattr(settings, "IMPORT_TIMEOUT_SECONDS", 10.0)
    # start 0, first sheet 6, second sheet 12
    service = ImportService(clock=SteppingClock(6.0))
    with pytest.raises(ImportTimeoutError, match="09.02.2026"):
        service.import_sheets(
            {"02.02.2026": _sheet(), "09.02.2026": _sheet()}, analysis_override=OVERRIDE,
        )
    assert _all(registry, PayrollWeek) == []
    assert _all(registry, Attendance) == []


def test_deadline_before_writing_aborts_legacy_import(registry, monkeypatch):
    monkeypatch.setattr(settings, "IMPORT_TIMEOUT_SECONDS", 5.0)
    service = ImportService(clock=SteppingClock(6.0))
    with pytest.raises(ImportTimeoutError, match="before writing"):
        service.import_legacy_sheets({"Semana": _legacy_sheet()}, week_start=date(2026, 2, 2))
    assert _all(registry, PayrollWeek) == []


def test_run_within_deadline_writes(registry, monkeypatch):
    monkeypatch.setattr(settings, "IMPORT_TIMEOUT_SECONDS", 100.0)
    ImportService(clock=SteppingClock(1.0)).import_sheets(
        {"02.02.2026": _sheet(), "09.02.2026": _sheet()}, analysis_override=OVERRIDE,
    )
    assert len(_all(registry, PayrollWeek)) == 2


class FailingProvider:
    def infer(self, sample_rows):
        raise InferenceError("provider returned garbage")


def test_inference_failure_aborts_before_writes(registry):
    with pytest.raises(InferenceError):
        ImportService(FailingProvider()).import_sheets({"02.02.2026": _sheet()})
    assert _all(registry, PayrollWeek) == []
    assert _all(registry, Attendance) == []


# ---------------------------------------------------------------------------
# Legacy import
# ---------------------------------------------------------------------------


LEGACY_HEADER = ["Nombre", "Categoria", "Jornal", "Lunes", "Martes", "Obra Norte", "Obra Sur"]


def _legacy_sheet():
    return [
        LEGACY_HEADER,
        ["Juan Perez", "Oficial", 8000, "Obra Norte", "Obra Sur", "", ""],
        ["Acme SRL", "Pintura", "", "", "", 12000, ""],
        ["Materiales", "Corralón", "", "", "", "", 4500],
        ["Nadie Conocido", "Ayudante", 6000, "Obra Norte", "", "", ""],
    ]


def test_legacy_import(registry):
    result = ImportService().import_legacy_sheets({"Semana": _legacy_sheet()}, week_start=date(2026, 2, 2))

    assert (result.created.attendance, result.created.certifications, result.created.fund_requests) == (2, 1, 1)
    assert len(result.warnings) == 1 and result.warnings[0].row == 4

    week = _all(registry, PayrollWeek)[0]
    assert (week.start_date, week.end_date, week.exchange_rate) == (date(2026, 2, 2), date(2026, 2, 8), None)

    att = sorted(_all(registry, Attendance), key=lambda a: a.date)
    assert [(a.date, a.project_id, a.notes, a.source) for a in att] == [
        (date(2026, 2, 2), "P1", "Importado Legacy", EventSource.IMPORT_LEGACY),
        (date(2026, 2, 3), "P2", "Importado Legacy", EventSource.IMPORT_LEGACY),
    ]
    req = _all(registry, FundRequest)[0]
    assert (req.requester_name, req.exchange_rate, req.date) == ("Importador Legacy", 1.0, date(2026, 2, 8))


def test_legacy_reimport_replaces_fund_requests(registry):
    for _ in range(2):
        ImportService().import_legacy_sheets({"Semana": _legacy_sheet()}, week_start=date(2026, 2, 2))
    assert len(_all(registry, Attendance)) == 2
    assert len(_all(registry, ContractorCertification)) == 1
    assert len(_all(registry, FundRequest)) == 1


def test_legacy_fund_requests_kept_when_replacement_disabled(registry, monkeypatch):
    monkeypatch.setattr(settings, "LEGACY_REPLACE_FUND_REQUESTS", False)
    for _ in range(2):
        ImportService().import_legacy_sheets({"Semana": _legacy_sheet()}, week_start=date(2026, 2, 2))
    assert len(_all(registry, Attendance)) == 2
    assert len(_all(registry, FundRequest)) == 2


def test_legacy_week_end_before_start_rejected(registry):
    with pytest.raises(ImportValidationError):
        ImportService().import_legacy_sheets(
            {"Semana": _legacy_sheet()}, week_start=date(2026, 2, 8), week_end=date(2026, 2, 2),
        )


# ---------------------------------------------------------------------------
# ImportReconciler chunking
# ---------------------------------------------------------------------------


def _stage(reconciler, engine, week_start: date, n_attendance: int):
    ctx = SheetContext.for_explicit_week("S", week_start)
    result = ClassificationResult(attendance=[
        AttendanceEvent(employee_id="E1", date=week_start, project_id=None) for _ in range(n_attendance)
    ])
    with Session(engine) as s:
        return reconciler.stage_sheet(PayrollRepository(s), ctx, result)


def test_reconciler_rejects_manual_source_and_oversized_batches():
    with pytest.raises(ValueError):
        ImportReconciler(EventSource.MANUAL)
    with pytest.raises(ValueError):
        ImportReconciler(EventSource.IMPORT, batch_size=501)


def test_reconciler_commits_in_chunks(registry):
    reconciler = ImportReconciler(EventSource.IMPORT, batch_size=2)
    _stage(reconciler, registry, date(2026, 2, 2), 4)

    ops = reconciler.operations
    assert [op.kind for op in ops] == [OpKind.INSERT] * 5
    assert [len(c) for c in reconciler.chunks()] == [2, 2, 1]
    assert reconciler.commit() == 3
    assert len(_all(registry, Attendance)) == 4


def test_cleanup_is_queued_before_inserts(registry):
    first = ImportReconciler(EventSource.IMPORT)
    _stage(first, registry, date(2026, 2, 2), 2)
    first.commit()

    second = ImportReconciler(EventSource.IMPORT)
    _stage(second, registry, date(2026, 2, 2), 1)
    assert [op.kind for op in second.operations] == [OpKind.DELETE, OpKind.DELETE, OpKind.INSERT]
    second.commit()
    assert len(_all(registry, Attendance)) == 1


def test_failed_chunk_keeps_earlier_chunks(registry):
    reconciler = ImportReconciler(EventSource.IMPORT, batch_size=2)
    _stage(reconciler, registry, date(2026, 2, 2), 3)   # W1, A, A, A
    _stage(reconciler, registry, date(2026, 2, 9), 1)   # W2, A

    # A week with the same start appears before the flush; W2's insert now violates uniqueness.
    with Session(registry) as s:
        s.add(PayrollWeek(start_date=date(2026, 2, 9), end_date=date(2026, 2, 15)))
        s.commit()

    with pytest.raises(PersistenceError) as excinfo:
        reconciler.commit()

    assert excinfo.value.chunk_index == 2
    assert excinfo.value.chunks_committed == 2
    assert len(_all(registry, Attendance)) == 3
    assert len(_all(registry, PayrollWeek)) == 2
