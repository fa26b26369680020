"""Row classification into attendance, certification and fund-request events.

Two strategies share the EntityResolver:

* MappedRowClassifier reads rows through an inferred or overridden
  StructuralMapping. Any row naming a known employee yields attendance per
  marked day cell, and marked days on an unknown name are reported; positive
  project-column amounts become certifications when the name is a known
  contractor and fund requests otherwise.
* LegacyRowClassifier first puts each row in exactly one bucket (personnel,
  contractor, concept) by vocabulary, then walks days or project columns.

Both are pure: same rows, mapping and registry snapshot give the same events.
"""
from __future__ import annotations

from datetime import timedelta
from numbers import Real
from typing import Any, Iterable, Protocol

from payweek.ingest.events import (
    AttendanceEvent, CertificationEvent, ClassificationResult, FundRequestEvent,
    ImportWarning, SheetContext,
)
from payweek.ingest.mapping import (
    LegacyLayout, RowView, RowViewFactory, StructuralMapping, cell_text,
)
from payweek.ingest.resolver import EntityResolver, RegistryEntry, normalize
from payweek.models.payroll import FundCategory

BLANK_MARKS = {"", "0", "-"}

OPERATIVE_CATEGORIES = (
    "capataz", "oficial", "1/2 oficial", "½ oficial", "ayudante", "sereno",
    "oficial albanil", "oficial carpintero", "oficial armador",
)
CONCEPT_NAMES = (
    "materiales", "caja", "varios", "mano de obra", "fletes", "combustible", "subtotal", "total",
)


class RowClassifier(Protocol):
    def classify_row(self, view: RowView, ctx: SheetContext) -> ClassificationResult:
        ...

    def classify_sheet(self, rows: list[list[Any]], ctx: SheetContext) -> ClassificationResult:
        ...


def _classify_all(
    classifier: RowClassifier, views: Iterable[RowView], ctx: SheetContext,
) -> ClassificationResult:
    result = ClassificationResult()
    for view in views:
        result.extend(classifier.classify_row(view, ctx))
    return result


def is_day_mark(value: Any) -> bool:
    """A day cell counts when it is not blank, not zero and not a dash."""
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, Real):
        return value != 0
    text = cell_text(value)
    if text in BLANK_MARKS:
        return False
    try:
        return float(text) != 0
    except ValueError:
        return True


def positive_number(value: Any) -> float | None:
    """Strict: only numeric cells count as amounts."""
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    amount = float(value)
    return amount if amount > 0 else None


def lenient_number(value: Any) -> float:
    """Numeric cells or numeric text; anything else is 0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, Real):
        return float(value)
    try:
        return float(cell_text(value))
    except ValueError:
        return 0.0


def fund_category_for(category_text: str) -> FundCategory:
    key = normalize(category_text or FundCategory.MATERIALS.value)
    found = FundCategory.MATERIALS
    if "flete" in key:
        found = FundCategory.LOGISTICS
    if "caja" in key:
        found = FundCategory.PETTY_CASH
    return found


# ---------------------------------------------------------------------------
# Mapped (inference / override) strategy
# ---------------------------------------------------------------------------


class MappedRowClassifier:
    def __init__(
        self,
        mapping: StructuralMapping,
        header_row: list[Any],
        resolver: EntityResolver,
    ) -> None:
        self._factory = RowViewFactory.from_mapping(mapping, header_row)
        self._resolver = resolver

        # Project columns are resolved once from the analyzed header row.
        self._project_columns: dict[int, RegistryEntry] = {}
        self._unresolved_columns: list[tuple[int, str]] = []
        for col in mapping.project_column_indices:
            header = cell_text(header_row[col]) if col < len(header_row) else ""
            project = resolver.match_project(header)
            if project is None:
                self._unresolved_columns.append((col, header))
            else:
                self._project_columns[col] = project

    def column_warnings(self, sheet_name: str) -> list[ImportWarning]:
        return [
            ImportWarning(
                sheet=sheet_name,
                reason=f"Project column {col} ('{header}') does not match a known project; its amounts are ignored.",
            )
            for col, header in self._unresolved_columns
        ]

    def classify_sheet(self, rows: list[list[Any]], ctx: SheetContext) -> ClassificationResult:
        return _classify_all(self, self._factory.views(rows), ctx)

    def classify_row(self, view: RowView, ctx: SheetContext) -> ClassificationResult:
        result = ClassificationResult()
        name, category = view.name, view.category
        if not name and not category:
            return result
        if "total" in normalize(name):
            return result

        employee = self._resolver.match_employee(name)
        contractor = self._resolver.match_contractor(name)
        marked = [day for day in view.days if is_day_mark(day.value)]
        if employee is not None:
            for day in marked:
                project = (
                    self._resolver.match_project(cell_text(day.value))
                    or self._resolver.match_project(day.header)
                )
                result.attendance.append(AttendanceEvent(
                    employee_id=employee.id,
                    date=ctx.base_date + timedelta(days=day.offset),
                    project_id=project.id if project else None,
                ))
        elif marked and name and contractor is None:
            days = ", ".join(day.header or f"day {day.offset + 1}" for day in marked)
            result.warnings.append(ImportWarning(
                sheet=ctx.sheet_name,
                row=view.row_index,
                reason=f"Employee not found: '{name}'. Attendance on {days} skipped.",
            ))

        for cell in view.money:
            amount = positive_number(cell.value)
            if amount is None:
                continue
            project = self._project_columns.get(cell.column)
            if project is None:
                continue
            if contractor is not None:
                result.certifications.append(CertificationEvent(
                    contractor_id=contractor.id,
                    contractor_name=contractor.name,
                    project_id=project.id,
                    project_name=project.name,
                    amount=amount,
                    date=ctx.base_date,
                ))
            else:
                result.fund_requests.append(FundRequestEvent(
                    category=fund_category_for(category).value,
                    project_id=project.id,
                    project_name=project.name,
                    amount=amount,
                    date=ctx.base_date,
                    description=f"{name} - {category}",
                ))
        return result


# ---------------------------------------------------------------------------
# Legacy (vocabulary) strategy
# ---------------------------------------------------------------------------


def is_operative_category(category: str) -> bool:
    key = normalize(category)
    return any(term in key for term in OPERATIVE_CATEGORIES)


def is_concept_name(name: str) -> bool:
    key = normalize(name)
    return any(term in key for term in CONCEPT_NAMES)


def legacy_fund_category(concept: str) -> FundCategory:
    key = normalize(concept)
    found = FundCategory.OTHER
    if "material" in key:
        found = FundCategory.MATERIALS
    if "caja" in key:
        found = FundCategory.PETTY_CASH
    return found


class LegacyRowClassifier:
    def __init__(self, layout: LegacyLayout, resolver: EntityResolver) -> None:
        self._factory = RowViewFactory.from_legacy(layout)
        self._resolver = resolver

    def classify_sheet(self, rows: list[list[Any]], ctx: SheetContext) -> ClassificationResult:
        return _classify_all(self, self._factory.views(rows), ctx)

    def classify_row(self, view: RowView, ctx: SheetContext) -> ClassificationResult:
        result = ClassificationResult()
        name, category = view.name, view.category
        key = normalize(name)
        if not name and not category:
            return result
        if key == "total" or key.startswith("resumen"):
            return result

        is_concept = is_concept_name(name) or (not name and bool(category))
        is_operative = is_operative_category(category)
        has_journal = lenient_number(view.journal) > 0

        if is_operative and has_journal and not is_concept:
            self._personnel(view, ctx, result)
        elif not is_operative and not is_concept and name:
            self._contractor(view, ctx, result)
        elif is_concept:
            self._concept(view, ctx, result)
        return result

    def _warn(self, result: ClassificationResult, view: RowView, ctx: SheetContext, reason: str) -> None:
        result.warnings.append(ImportWarning(sheet=ctx.sheet_name, row=view.row_index, reason=reason))

    def _personnel(self, view: RowView, ctx: SheetContext, result: ClassificationResult) -> None:
        employee = self._resolver.match_employee(view.name)
        if employee is None:
            self._warn(result, view, ctx, f"Employee not found: '{view.name}'. Row skipped.")
            return
        for day in view.days:
            text = cell_text(day.value)
            if text in BLANK_MARKS:
                continue
            project = self._resolver.match_project(text)
            if project is None:
                self._warn(
                    result, view, ctx,
                    f"Project not found '{text}' for employee '{view.name}' on {day.header}.",
                )
                continue
            result.attendance.append(AttendanceEvent(
                employee_id=employee.id,
                date=ctx.week_start + timedelta(days=day.offset),
                project_id=project.id,
                notes="Importado Legacy",
            ))

    def _contractor(self, view: RowView, ctx: SheetContext, result: ClassificationResult) -> None:
        contractor = self._resolver.match_contractor(view.name)
        for cell in view.money:
            amount = lenient_number(cell.value)
            if amount <= 0:
                continue
            project = self._resolver.match_project(cell.header)
            if project is None:
                self._warn(
                    result, view, ctx,
                    f"Project not found '{cell.header}' for contractor '{view.name}' ({amount:g}).",
                )
                continue
            if contractor is None:
                self._warn(
                    result, view, ctx,
                    f"Contractor not registered: '{view.name}'. Certification on {project.name} skipped.",
                )
                continue
            result.certifications.append(CertificationEvent(
                contractor_id=contractor.id,
                contractor_name=contractor.name,
                project_id=project.id,
                project_name=project.name,
                amount=amount,
                date=ctx.week_end,
                notes=f"Rubro: {view.category}",
            ))

    def _concept(self, view: RowView, ctx: SheetContext, result: ClassificationResult) -> None:
        concept = view.name or "VARIOS"
        for cell in view.money:
            amount = lenient_number(cell.value)
            if amount <= 0:
                continue
            project = self._resolver.match_project(cell.header)
            if project is None:
                self._warn(
                    result, view, ctx,
                    f"Project not found '{cell.header}' for concept '{concept}' ({amount:g}).",
                )
                continue
            result.fund_requests.append(FundRequestEvent(
                category=legacy_fund_category(concept).value,
                project_id=project.id,
                project_name=project.name,
                amount=amount,
                date=ctx.week_end,
                description=f"{concept} - {view.category}",
            ))
