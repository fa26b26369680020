"""Tests for workbook reading and sheet-name dates."""
from datetime import date

import pytest

from payweek.domain.exceptions import ImportValidationError
from payweek.ingest.workbook import parse_sheet_date, read_workbook, week_bounds


class TestParseSheetDate:
    @pytest.mark.parametrize("name, expected", [
        ("03.02.2026", date(2026, 2, 3)),
        ("3.2.2026", date(2026, 2, 3)),
        ("03-02-2026", date(2026, 2, 3)),
        ("2026-02-03", date(2026, 2, 3)),
        ("03/02/2026", date(2026, 2, 3)),
        (" 03.02.2026 ", date(2026, 2, 3)),
    ])
    def test_supported_formats(self, name, expected):
        assert parse_sheet_date(name) == expected

    @pytest.mark.parametrize("name", ["31/02/2026", "Hoja1", "", "03.02.1999", "03.02.2031", "2026/02/03"])
    def test_rejected(self, name):
        assert parse_sheet_date(name) is None

    def test_year_bounds_inclusive(self):
        assert parse_sheet_date("01.01.2000") == date(2000, 1, 1)
        assert parse_sheet_date("31.12.2030") == date(2030, 12, 31)


def test_week_bounds_monday_to_sunday():
    # 2026-02-03 is a Tuesday
    assert week_bounds(date(2026, 2, 3)) == (date(2026, 2, 2), date(2026, 2, 8))
    assert week_bounds(date(2026, 2, 2)) == (date(2026, 2, 2), date(2026, 2, 8))
    assert week_bounds(date(2026, 2, 8)) == (date(2026, 2, 2), date(2026, 2, 8))


class TestReadWorkbook:
    def test_sheets_in_order_blanks_as_empty_strings(self, make_xlsx):
        content = make_xlsx({
            "03.02.2026": [["Nombre", None, "Obra A"], ["Juan", None, 100]],
            "Notas": [["x"]],
        })
        sheets = read_workbook(content)
        assert list(sheets) == ["03.02.2026", "Notas"]
        assert sheets["03.02.2026"][1] == ["Juan", "", 100]

    def test_trailing_blank_rows_dropped(self, make_xlsx):
        content = make_xlsx({"S": [["a"], ["b"], [None], [None]]})
        assert read_workbook(content)["S"] == [["a"], ["b"]]

    def test_garbage_bytes_rejected(self):
        with pytest.raises(ImportValidationError):
            read_workbook(b"definitely not a workbook")
