"""Idempotent persistence of classified events.

For every week a run touches, records carrying the run's source tag are
queued for deletion before the new events are queued for insertion. The
whole queue is then flushed in fixed-size chunks, one UnitOfWork per chunk.
Chunk boundaries ignore sheet and row boundaries, and there is no rollback
across chunks: if chunk N fails, chunks before N stay committed.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel

from payweek.config import settings
from payweek.domain.exceptions import PersistenceError
from payweek.infra.db.repositories.payroll_repository import PayrollRepository
from payweek.infra.db.uow import UnitOfWork
from payweek.ingest.events import ClassificationResult, SheetContext
from payweek.logging import logger
from payweek.models.base import new_id
from payweek.models.payroll import (
    Attendance, AttendanceStatus, ContractorCertification, Currency, EventSource,
    FundRequest, PaymentStatus, PayrollWeek, WeekStatus,
)

MAX_BATCH_SIZE = 500

_REQUESTER_NAMES = {
    EventSource.IMPORT: "Importador Excel",
    EventSource.IMPORT_LEGACY: "Importador Legacy",
}


class OpKind(str, Enum):
    DELETE = "DELETE"
    INSERT = "INSERT"


@dataclass(frozen=True)
class WriteOp:
    kind: OpKind
    model: type[SQLModel]
    record_id: str
    record: SQLModel | None = None


@dataclass
class CreatedCounts:
    attendance: int = 0
    certifications: int = 0
    fund_requests: int = 0


class ImportReconciler:
    def __init__(
        self,
        source: EventSource,
        *,
        exchange_rate: float | None = None,
        batch_size: int | None = None,
        replace_fund_requests: bool = True,
        uow_factory: Callable[[], UnitOfWork] = UnitOfWork,
    ) -> None:
        if source == EventSource.MANUAL:
            raise ValueError("Manual records are never reconciled by an import.")
        size = batch_size or settings.IMPORT_BATCH_SIZE
        if not 0 < size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}")

        self.source = source
        self._exchange_rate = exchange_rate
        self._batch_size = size
        self._replace_fund_requests = replace_fund_requests
        self._uow_factory = uow_factory

        self._ops: list[WriteOp] = []
        self._week_ids: dict[date, str] = {}
        self._cleaned: set[date] = set()
        self.created = CreatedCounts()

    @property
    def operations(self) -> list[WriteOp]:
        return list(self._ops)

    # --- Staging ---

    def ensure_week(self, repo: PayrollRepository, ctx: SheetContext) -> str:
        week_id = self._week_ids.get(ctx.week_start)
        if week_id is not None:
            return week_id

        existing = repo.find_week_by_start(ctx.week_start)
        if existing is not None:
            week_id = existing.id
        else:
            week = PayrollWeek(
                id=new_id(),
                start_date=ctx.week_start,
                end_date=ctx.week_end,
                status=WeekStatus.OPEN,
                exchange_rate=self._exchange_rate,
            )
            self._ops.append(WriteOp(OpKind.INSERT, PayrollWeek, week.id, week))
            week_id = week.id
            logger.info("Queued new payroll week %s starting %s", week_id, ctx.week_start)
        self._week_ids[ctx.week_start] = week_id
        return week_id

    def _queue_cleanup(self, repo: PayrollRepository, ctx: SheetContext, week_id: str) -> None:
        # Once per week per run: later sheets of the same week add to, not replace, earlier ones.
        if ctx.week_start in self._cleaned:
            return
        self._cleaned.add(ctx.week_start)

        start, end = ctx.week_start, ctx.week_end
        stale: list[tuple[type[SQLModel], list[str]]] = [
            (Attendance, repo.attendance_ids_for_source(self.source, start, end, week_id)),
            (ContractorCertification, repo.certification_ids_for_source(self.source, start, end, week_id)),
        ]
        if self._replace_fund_requests:
            stale.append((FundRequest, repo.fund_request_ids_for_source(self.source, start, end)))

        for model, ids in stale:
            for record_id in ids:
                self._ops.append(WriteOp(OpKind.DELETE, model, record_id))
            if ids:
                logger.info(
                    "Queued %d stale %s record(s) for week %s (source=%s)",
                    len(ids), model.__name__, start, self.source.value,
                )

    def stage_sheet(self, repo: PayrollRepository, ctx: SheetContext, result: ClassificationResult) -> str:
        """Queue the cleanup for the sheet's week and inserts for its events."""
        week_id = self.ensure_week(repo, ctx)
        self._queue_cleanup(repo, ctx, week_id)

        for ev in result.attendance:
            rec = Attendance(
                id=new_id(),
                employee_id=ev.employee_id,
                date=ev.date,
                status=AttendanceStatus.PRESENT,
                late_hours=0.0,
                project_id=ev.project_id,
                payroll_week_id=week_id,
                source=self.source,
                notes=ev.notes,
            )
            self._ops.append(WriteOp(OpKind.INSERT, Attendance, rec.id, rec))
            self.created.attendance += 1

        for ev in result.certifications:
            rec = ContractorCertification(
                id=new_id(),
                payroll_week_id=week_id,
                contractor_id=ev.contractor_id,
                contractor_name=ev.contractor_name,
                project_id=ev.project_id,
                project_name=ev.project_name,
                amount=ev.amount,
                currency=Currency.ARS,
                date=ev.date,
                status=PaymentStatus.PENDING,
                source=self.source,
                notes=ev.notes,
            )
            self._ops.append(WriteOp(OpKind.INSERT, ContractorCertification, rec.id, rec))
            self.created.certifications += 1

        for ev in result.fund_requests:
            rec = FundRequest(
                id=new_id(),
                requester_id="SYSTEM",
                requester_name=_REQUESTER_NAMES[self.source],
                category=ev.category,
                project_id=ev.project_id,
                project_name=ev.project_name,
                amount=ev.amount,
                currency=Currency.ARS,
                exchange_rate=self._exchange_rate or 1.0,
                status=PaymentStatus.PENDING,
                date=ev.date,
                description=ev.description,
                source=self.source,
            )
            self._ops.append(WriteOp(OpKind.INSERT, FundRequest, rec.id, rec))
            self.created.fund_requests += 1

        return week_id

    # --- Flush ---

    def chunks(self) -> list[list[WriteOp]]:
        size = self._batch_size
        return [self._ops[i:i + size] for i in range(0, len(self._ops), size)]

    def commit(self) -> int:
        """Flush queued operations chunk by chunk. Returns the number of chunks committed."""
        chunks = self.chunks()
        committed = 0
        for index, chunk in enumerate(chunks):
            try:
                with self._uow_factory() as uow:
                    for op in chunk:
                        if op.kind == OpKind.DELETE:
                            uow.session.execute(delete(op.model).where(op.model.id == op.record_id))
                        else:
                            uow.session.add(op.record)
            except SQLAlchemyError as exc:
                logger.error(
                    "Import chunk %d/%d failed after %d committed chunk(s): %s",
                    index + 1, len(chunks), committed, exc,
                )
                raise PersistenceError(
                    f"Write chunk {index + 1} of {len(chunks)} failed; "
                    f"{committed} earlier chunk(s) remain committed: {exc}",
                    chunk_index=index,
                    chunks_committed=committed,
                ) from exc
            committed += 1
        logger.info("Committed %d operation(s) in %d chunk(s)", len(self._ops), committed)
        self._ops = []
        return committed
