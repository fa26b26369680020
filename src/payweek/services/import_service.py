"""Weekly-payment import use case.

Runs in three phases so no read transaction is held open while writing:

1. analysis of the first sheet (no DB access; provider failures abort here);
2. one read-only UnitOfWork snapshots registries and stale import records
   while every sheet is classified and staged;
3. the reconciler flushes the staged operations in chunks.

The run deadline (IMPORT_TIMEOUT_SECONDS) is checked between sheets and
before the flush; once flushing starts it runs to the end.
"""
from __future__ import annotations

import time
from datetime import date
from typing import Any, Callable

from sqlmodel import Session

from payweek.api.schemas.imports import (
    CreatedCounts, ImportPreviewResponse, ImportResponse, ImportWarningRead, SheetStatus,
)
from payweek.config import settings
from payweek.domain.exceptions import ImportTimeoutError, ImportValidationError
from payweek.infra.db.repositories.payroll_repository import PayrollRepository
from payweek.infra.db.repositories.registry_repository import RegistryRepository
from payweek.infra.db.uow import UnitOfWork
from payweek.ingest.analyzer import SheetAnalyzer, StructureInferenceProvider
from payweek.ingest.classifier import LegacyRowClassifier, MappedRowClassifier
from payweek.ingest.events import ImportWarning, SheetContext
from payweek.ingest.mapping import StructuralMapping
from payweek.ingest.reconciler import ImportReconciler
from payweek.ingest.resolver import EntityResolver, RegistryEntry, RegistrySnapshot
from payweek.ingest.workbook import Rows, parse_sheet_date, read_workbook
from payweek.logging import logger
from payweek.models.payroll import EventSource


def load_registry_snapshot(session: Session) -> RegistrySnapshot:
    repo = RegistryRepository(session)
    by_id = lambda items: sorted(items, key=lambda x: x.id)  # noqa: E731
    return RegistrySnapshot(
        employees=tuple(RegistryEntry(e.id, e.name) for e in by_id(repo.list_employees())),
        contractors=tuple(RegistryEntry(c.id, c.name) for c in by_id(repo.list_contractors())),
        projects=tuple(RegistryEntry(p.id, p.name, p.client) for p in by_id(repo.list_projects())),
    )


class _Deadline:
    def __init__(self, clock: Callable[[], float]) -> None:
        self._clock = clock
        self._expires_at = clock() + settings.IMPORT_TIMEOUT_SECONDS

    def check(self, stage: str) -> None:
        if self._clock() >= self._expires_at:
            logger.warning(
                "Import deadline of %ss passed %s; nothing written", settings.IMPORT_TIMEOUT_SECONDS, stage,
            )
            raise ImportTimeoutError(
                f"Import exceeded {settings.IMPORT_TIMEOUT_SECONDS:g}s {stage}. Nothing was written."
            )


def _warning_dtos(warnings: list[ImportWarning]) -> list[ImportWarningRead]:
    return [ImportWarningRead(reason=w.reason, sheet=w.sheet, row=w.row) for w in warnings]


class ImportService:
    def __init__(
        self,
        provider: StructureInferenceProvider | None = None,
        *,
        uow_factory: Callable[[], UnitOfWork] = UnitOfWork,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._analyzer = SheetAnalyzer(provider)
        self._uow_factory = uow_factory
        self._clock = clock

    @staticmethod
    def _read(content: bytes | None) -> dict[str, Rows]:
        if not content:
            raise ImportValidationError("Missing file")
        return read_workbook(content)

    # --- Inference / override import ---

    def import_workbook(
        self,
        content: bytes | None,
        *,
        exchange_rate: float | None = None,
        analysis_override: StructuralMapping | dict | str | None = None,
    ) -> ImportResponse:
        return self.import_sheets(
            self._read(content), exchange_rate=exchange_rate, analysis_override=analysis_override,
        )

    def import_sheets(
        self,
        sheets: dict[str, Rows],
        *,
        exchange_rate: float | None = None,
        analysis_override: StructuralMapping | dict | str | None = None,
    ) -> ImportResponse:
        if not sheets:
            raise ImportValidationError("The workbook has no sheets.")
        if exchange_rate is not None and exchange_rate <= 0:
            raise ImportValidationError(f"The exchange rate must be positive, got {exchange_rate:g}.")
        rate = exchange_rate if exchange_rate is not None else settings.IMPORT_DEFAULT_EXCHANGE_RATE
        deadline = _Deadline(self._clock)

        first_name, first_rows = next(iter(sheets.items()))
        mapping = self._analyzer.analyze(first_rows, override=analysis_override)
        header_row = first_rows[mapping.header_row_index]

        reconciler = ImportReconciler(EventSource.IMPORT, exchange_rate=rate, uow_factory=self._uow_factory)
        warnings: list[ImportWarning] = []
        processed = 0

        with self._uow_factory() as uow:
            resolver = EntityResolver(load_registry_snapshot(uow.session))
            classifier = MappedRowClassifier(mapping, header_row, resolver)
            warnings.extend(classifier.column_warnings(first_name))
            repo = PayrollRepository(uow.session)

            for sheet_name, rows in sheets.items():
                deadline.check(f"before sheet '{sheet_name}'")
                sheet_date = parse_sheet_date(sheet_name)
                if sheet_date is None:
                    logger.warning("Sheet '%s' is not named as a date; skipped", sheet_name)
                    warnings.append(ImportWarning(
                        sheet=sheet_name,
                        reason=f"Sheet name '{sheet_name}' is not a valid date. Sheet ignored.",
                    ))
                    continue
                processed += 1
                ctx = SheetContext.for_sheet_date(sheet_name, sheet_date)
                result = classifier.classify_sheet(rows, ctx)
                warnings.extend(result.warnings)
                reconciler.stage_sheet(repo, ctx, result)
                logger.info(
                    "Sheet '%s' (week %s): %d event(s), %d warning(s)",
                    sheet_name, ctx.week_start, result.event_count, len(result.warnings),
                )

        deadline.check("before writing")
        reconciler.commit()
        return self._response(reconciler, warnings, processed)

    # --- Legacy import ---

    def import_legacy(
        self,
        content: bytes | None,
        *,
        week_start: date,
        week_end: date | None = None,
    ) -> ImportResponse:
        sheets = self._read(content)
        return self.import_legacy_sheets(sheets, week_start=week_start, week_end=week_end)

    def import_legacy_sheets(
        self,
        sheets: dict[str, Rows],
        *,
        week_start: date,
        week_end: date | None = None,
    ) -> ImportResponse:
        if not sheets:
            raise ImportValidationError("The workbook has no sheets.")
        if week_end is not None and week_end < week_start:
            raise ImportValidationError("weekEnd must not be before weekStart.")

        deadline = _Deadline(self._clock)
        sheet_name, rows = next(iter(sheets.items()))
        layout = self._analyzer.analyze_legacy(rows)
        ctx = SheetContext.for_explicit_week(sheet_name, week_start, week_end)

        reconciler = ImportReconciler(
            EventSource.IMPORT_LEGACY,
            replace_fund_requests=settings.LEGACY_REPLACE_FUND_REQUESTS,
            uow_factory=self._uow_factory,
        )
        with self._uow_factory() as uow:
            resolver = EntityResolver(load_registry_snapshot(uow.session))
            result = LegacyRowClassifier(layout, resolver).classify_sheet(rows, ctx)
            reconciler.stage_sheet(PayrollRepository(uow.session), ctx, result)

        deadline.check("before writing")
        reconciler.commit()
        return self._response(reconciler, result.warnings, 1)

    # --- Preview ---

    def preview(self, content: bytes | None) -> ImportPreviewResponse:
        sheets = self._read(content)
        _, first_rows = next(iter(sheets.items()))
        mapping = self._analyzer.analyze(first_rows)

        statuses = []
        for name in sheets:
            parsed = parse_sheet_date(name)
            statuses.append(SheetStatus(name=name, valid_date=parsed is not None, parsed_date=parsed))

        start = mapping.header_row_index
        return ImportPreviewResponse(
            analysis=mapping,
            sheets=statuses,
            sample_rows=[_jsonable_row(r) for r in first_rows[start:start + 11]],
        )

    @staticmethod
    def _response(reconciler: ImportReconciler, warnings: list[ImportWarning], processed: int) -> ImportResponse:
        created = reconciler.created
        return ImportResponse(
            created=CreatedCounts(
                attendance=created.attendance,
                certifications=created.certifications,
                fund_requests=created.fund_requests,
            ),
            warnings=_warning_dtos(warnings),
            sheets_processed=processed,
        )


def _jsonable_row(row: list[Any]) -> list[Any]:
    return [c if isinstance(c, (str, int, float, bool)) or c is None else str(c) for c in row]
