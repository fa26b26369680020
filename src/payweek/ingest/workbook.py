"""Workbook loading and sheet-name date parsing."""
from __future__ import annotations
import io
import zipfile
from datetime import date, datetime, timedelta
from typing import Any
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from payweek.domain.exceptions import ImportValidationError

Rows = list[list[Any]]

# Tried in order; strptime accepts single-digit day/month for %d and %m.
SHEET_DATE_FORMATS = ("%d.%m.%Y", "%d-%m-%Y", "%Y-%m-%d", "%d/%m/%Y")
MIN_SHEET_YEAR = 2000
MAX_SHEET_YEAR = 2030


def read_workbook(content: bytes) -> dict[str, Rows]:
    """Return every sheet as a list of rows, in workbook order.

    Empty cells become ``""``; trailing blank rows are dropped.
    """
    try:
        wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
        raise ImportValidationError(f"Could not read workbook: {exc}") from exc

    try:
        sheets: dict[str, Rows] = {}
        for ws in wb.worksheets:
            rows = [
                ["" if cell is None else cell for cell in row]
                for row in ws.iter_rows(values_only=True)
            ]
            while rows and all(_is_blank(c) for c in rows[-1]):
                rows.pop()
            sheets[ws.title] = rows
    finally:
        wb.close()

    if not sheets:
        raise ImportValidationError("The workbook has no sheets.")
    return sheets


def parse_sheet_date(sheet_name: str) -> date | None:
    """Parse a sheet name as a date. First format that parses wins; year must be in range."""
    text = (sheet_name or "").strip()
    for fmt in SHEET_DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt).date()
        except ValueError:
            continue
        if MIN_SHEET_YEAR <= parsed.year <= MAX_SHEET_YEAR:
            return parsed
    return None


def week_bounds(day: date) -> tuple[date, date]:
    """Monday..Sunday of the week containing *day*."""
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
