"""Structural mapping of a weekly sheet and the typed row view built from it.

A StructuralMapping says which columns hold the name, category, day marks and
per-project amounts. The legacy layout carries the same roles, found from a
fixed header vocabulary instead of column indices. Both feed a
RowViewFactory so classifiers never re-derive offsets per cell.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# StructuralMapping (wire format of the inference provider and overrides)
# ---------------------------------------------------------------------------


class DayColumn(BaseModel):
    index: int = Field(ge=0)
    date: dt.date | None = None


class StructuralMapping(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    header_row_index: int = Field(ge=0)
    data_start_row_index: int = Field(ge=0)
    name_column_index: int = Field(ge=0)
    category_column_index: int | None = None
    project_column_indices: list[int] = Field(default_factory=list)
    day_column_indices: list[DayColumn] = Field(default_factory=list)

    @field_validator("category_column_index", mode="before")
    @classmethod
    def negative_category_means_absent(cls, v: Any) -> Any:
        if isinstance(v, int) and v < 0:
            return None
        return v

    @field_validator("project_column_indices")
    @classmethod
    def project_indices_non_negative(cls, v: list[int]) -> list[int]:
        if any(i < 0 for i in v):
            raise ValueError("project column indices must be >= 0")
        return v


# ---------------------------------------------------------------------------
# Legacy layout
# ---------------------------------------------------------------------------

WEEKDAY_OFFSETS: dict[str, int] = {
    "lunes": 0,
    "martes": 1,
    "miercoles": 2,
    "jueves": 3,
    "viernes": 4,
    "sabado": 5,
    "domingo": 6,
}


@dataclass(frozen=True)
class LegacyLayout:
    """Header-keyed roles for legacy sheets. The header is always the first row."""
    name_column: int
    category_column: int | None = None
    journal_column: int | None = None
    # (column, weekday offset, header text)
    day_columns: tuple[tuple[int, int, str], ...] = ()
    # (column, header text)
    project_columns: tuple[tuple[int, str], ...] = ()
    data_start_row_index: int = 1


# ---------------------------------------------------------------------------
# RowView
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DayCell:
    offset: int
    header: str
    value: Any


@dataclass(frozen=True)
class MoneyCell:
    column: int
    header: str
    value: Any


@dataclass(frozen=True)
class RowView:
    row_index: int
    name: str
    category: str
    journal: Any = None
    days: tuple[DayCell, ...] = field(default_factory=tuple)
    money: tuple[MoneyCell, ...] = field(default_factory=tuple)


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _cell(row: list[Any], index: int | None) -> Any:
    if index is None or index >= len(row):
        return ""
    return row[index]


class RowViewFactory:
    """Precomputes column roles once, then builds a RowView per spreadsheet row."""

    def __init__(
        self,
        *,
        name_column: int,
        category_column: int | None,
        journal_column: int | None,
        day_columns: list[tuple[int, int, str]],
        money_columns: list[tuple[int, str]],
        data_start_row_index: int,
    ) -> None:
        self._name = name_column
        self._category = category_column
        self._journal = journal_column
        self._days = day_columns
        self._money = money_columns
        self.data_start_row_index = data_start_row_index

    @classmethod
    def from_mapping(cls, mapping: StructuralMapping, header_row: list[Any]) -> "RowViewFactory":
        # Day offsets are ordinal positions after sorting by column index.
        ordered = sorted(mapping.day_column_indices, key=lambda d: d.index)
        days = [
            (d.index, offset, cell_text(_cell(header_row, d.index)))
            for offset, d in enumerate(ordered)
        ]
        money = [(i, cell_text(_cell(header_row, i))) for i in mapping.project_column_indices]
        return cls(
            name_column=mapping.name_column_index,
            category_column=mapping.category_column_index,
            journal_column=None,
            day_columns=days,
            money_columns=money,
            data_start_row_index=mapping.data_start_row_index,
        )

    @classmethod
    def from_legacy(cls, layout: LegacyLayout) -> "RowViewFactory":
        return cls(
            name_column=layout.name_column,
            category_column=layout.category_column,
            journal_column=layout.journal_column,
            day_columns=list(layout.day_columns),
            money_columns=list(layout.project_columns),
            data_start_row_index=layout.data_start_row_index,
        )

    def view(self, row_index: int, row: list[Any]) -> RowView:
        return RowView(
            row_index=row_index,
            name=cell_text(_cell(row, self._name)),
            category=cell_text(_cell(row, self._category)),
            journal=_cell(row, self._journal) if self._journal is not None else None,
            days=tuple(DayCell(offset, header, _cell(row, col)) for col, offset, header in self._days),
            money=tuple(MoneyCell(col, header, _cell(row, col)) for col, header in self._money),
        )

    def views(self, rows: list[list[Any]]):
        for i in range(self.data_start_row_index, len(rows)):
            row = rows[i]
            if not row:
                continue
            yield self.view(i, row)
