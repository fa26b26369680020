"""Shared test fixtures.

  use_test_engine  — redirects UoW + infra layer to a temp-file SQLite DB.
  registry         — seeds employees, contractors and projects used by the sheets below.
  client           — FastAPI TestClient wired to the test engine.
  make_xlsx        — builds an in-memory workbook from {sheet name: rows}.
"""
import io
import pytest
from sqlmodel import SQLModel, create_engine, Session


@pytest.fixture
def use_test_engine(tmp_path, monkeypatch):
    """Monkeypatch infra/db engine references to an isolated temp-file SQLite DB."""
    db_path = tmp_path / "test_payweek.db"
    test_engine = create_engine(f"sqlite:///{db_path}", echo=False)

    import payweek.models  # noqa: F401 — register all ORM mappers
    SQLModel.metadata.create_all(test_engine)

    monkeypatch.setattr("payweek.infra.db.engine.engine", test_engine)
    monkeypatch.setattr("payweek.infra.db.uow.engine", test_engine)

    yield test_engine

    SQLModel.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture
def registry(use_test_engine):
    """Employees E1 'Juan Pérez', contractor C1 'Acme SRL', projects P1 'Obra Norte' / P2 'Obra Sur'."""
    from payweek.models.registry import Employee, Contractor, Project

    with Session(use_test_engine) as s:
        s.add(Employee(id="E1", name="Juan Pérez", category="Oficial", daily_wage=8000.0))
        s.add(Employee(id="E2", name="Ana Gómez", category="Ayudante", daily_wage=6000.0))
        s.add(Contractor(id="C1", name="Acme SRL"))
        s.add(Project(id="P1", name="Obra Norte", client="Cliente Norte"))
        s.add(Project(id="P2", name="Obra Sur"))
        s.commit()
    return use_test_engine


@pytest.fixture
def client(use_test_engine):
    """FastAPI TestClient backed by the isolated test engine."""
    from fastapi.testclient import TestClient
    from payweek.api.app import create_app

    app = create_app()
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_xlsx():
    from openpyxl import Workbook

    def _build(sheets: dict[str, list[list]]) -> bytes:
        wb = Workbook()
        wb.remove(wb.active)
        for title, rows in sheets.items():
            ws = wb.create_sheet(title)
            for row in rows:
                ws.append(row)
        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue()

    return _build
