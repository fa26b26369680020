import os
import sys
import typer
from datetime import datetime
from pathlib import Path
from payweek.config import settings
from payweek.domain.exceptions import PayweekError
from payweek.logging import logger, get_run_id

app = typer.Typer(no_args_is_help=True)

@app.callback()
def main():
    """
    Payweek weekly payment CLI.
    """
    pass

@app.command(name="doctor")
def doctor():
    """
    Check system configuration and environment health.
    """
    logger.info("Running doctor check...")

    failures: list[str] = []
    passed = 0

    print("\n🩺 Payweek Doctor\n")

    # ── Check 1: Environment / Interpreter ──────────────────────────────────
    print("[Environment]")
    print(f"  Python: {sys.version.split()[0]}")
    print(f"  Prefix: {sys.prefix}")
    print(f"  Run ID: {get_run_id()}")
    passed += 1

    # ── Check 2: OpenAI API Key ──────────────────────────────────────────────
    print("\n[Configuration]")
    api_key_ok = bool(
        settings.OPENAI_API_KEY and settings.OPENAI_API_KEY.get_secret_value()
    )
    if api_key_ok:
        print("  OPENAI_API_KEY:                ✅ Set")
        passed += 1
    else:
        print("  OPENAI_API_KEY:                ❌ Missing")
        failures.append("OPENAI_API_KEY is not set — structure inference needs it (overrides and legacy imports do not)")

    print(f"  OPENAI_MODEL_STRUCTURED:       {settings.OPENAI_MODEL_STRUCTURED}")
    print(f"  IMPORT_BATCH_SIZE:             {settings.IMPORT_BATCH_SIZE}")
    print(f"  IMPORT_DEFAULT_EXCHANGE_RATE:  {settings.IMPORT_DEFAULT_EXCHANGE_RATE}")
    print(f"  LEGACY_REPLACE_FUND_REQUESTS:  {settings.LEGACY_REPLACE_FUND_REQUESTS}")

    # ── Check 3: Data directory ──────────────────────────────────────────────
    print("\n[Data Directory]")
    data_dir = settings.data_dir
    if data_dir.exists() and data_dir.is_dir():
        print(f"  {data_dir}/                          ✅ Found: {data_dir.absolute()}")
        passed += 1
    else:
        print(f"  {data_dir}/                          ❌ Missing: {data_dir.absolute()}")
        failures.append(f"{data_dir}/ directory not found at {data_dir.absolute()} — run `mkdir {data_dir}`")

    # ── Check 4: DB file / directory writability ─────────────────────────────
    print("\n[Database]")
    db_file = data_dir / "payweek.db"
    if not settings.database_url.startswith("sqlite"):
        print(f"  DATABASE_URL                   ⚠️  Skipped (not SQLite)")
    elif db_file.exists():
        if os.access(db_file, os.W_OK):
            print(f"  {db_file}               ✅ Exists and writable")
            passed += 1
        else:
            print(f"  {db_file}               ❌ Exists but NOT writable")
            failures.append(f"{db_file} exists but is not writable — check file permissions")
    elif data_dir.exists():
        if os.access(data_dir, os.W_OK):
            print(f"  {db_file}               ✅ Does not exist yet; {data_dir}/ is writable (db init can create it)")
            passed += 1
        else:
            print(f"  {db_file}               ❌ {data_dir}/ directory is not writable")
            failures.append(f"{data_dir}/ directory is not writable — db init cannot create payweek.db")
    else:
        print(f"  {db_file}               ⚠️  Skipped ({data_dir}/ missing)")

    # ── Summary ──────────────────────────────────────────────────────────────
    total = passed + len(failures)
    print(f"\n{'─' * 50}")
    if failures:
        print(f"Result: {passed}/{total} checks passed\n")
        for msg in failures:
            print(f"  ❌ {msg}")
        print()
        raise typer.Exit(code=1)
    else:
        print(f"Result: {passed}/{total} checks passed — all good ✅")
        print()


db_app = typer.Typer(help="Database management commands.")
app.add_typer(db_app, name="db")

@db_app.command("init")
def init():
    """Initialize the database tables."""
    from payweek.db import init_db
    try:
        init_db()
        logger.info("Database initialized successfully.")
        print("✅ Database initialized.")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        print(f"❌ Failed: {e}")
        raise typer.Exit(code=1)


def _parse_date(value: str | None, option: str):
    if value is None:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        print(f"❌ {option} must be YYYY-MM-DD, got {value!r}")
        raise typer.Exit(code=1)


@app.command(name="import")
def import_workbook(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Weekly payments .xlsx workbook"),
    exchange_rate: float = typer.Option(settings.IMPORT_DEFAULT_EXCHANGE_RATE, help="Weekly ARS/USD exchange rate"),
    override: Path | None = typer.Option(None, exists=True, dir_okay=False, help="JSON structural mapping to use instead of inference"),
    legacy: bool = typer.Option(False, "--legacy", help="Read the sheet with the fixed legacy header layout"),
    week_start: str | None = typer.Option(None, help="Legacy only: week start (YYYY-MM-DD)"),
    week_end: str | None = typer.Option(None, help="Legacy only: week end (YYYY-MM-DD)"),
):
    """Import a weekly payments workbook."""
    from payweek.db import init_db
    from payweek.ingest.analyzer import LLMStructureInferenceProvider
    from payweek.services.import_service import ImportService

    init_db()
    content = file.read_bytes()
    try:
        if legacy:
            start = _parse_date(week_start, "--week-start")
            if start is None:
                print("❌ --legacy requires --week-start")
                raise typer.Exit(code=1)
            result = ImportService().import_legacy(
                content, week_start=start, week_end=_parse_date(week_end, "--week-end"),
            )
        else:
            analysis = override.read_text(encoding="utf-8") if override else None
            provider = None if analysis else LLMStructureInferenceProvider()
            result = ImportService(provider).import_workbook(
                content, exchange_rate=exchange_rate, analysis_override=analysis,
            )
    except PayweekError as e:
        logger.error(f"Import failed: {e.message}")
        print(f"❌ Failed: {e.message}")
        raise typer.Exit(code=1)

    c = result.created
    print(
        f"✅ Imported {result.sheets_processed} sheet(s): {c.attendance} attendance, "
        f"{c.certifications} certification(s), {c.fund_requests} fund request(s)"
    )
    for w in result.warnings:
        where = w.sheet or "-"
        if w.row is not None:
            where = f"{where}:{w.row}"
        print(f"  ⚠️  [{where}] {w.reason}")


@app.command(name="summary")
def summary(
    week_id: str,
    view: str = typer.Option("projected", help="projected | settlement"),
):
    """Print the cost summary of one payroll week."""
    from payweek.api.schemas.weeks import SummaryView
    from payweek.infra.db.uow import UnitOfWork
    from payweek.services.summary_service import SummaryService

    try:
        summary_view = SummaryView(view)
    except ValueError:
        print(f"❌ Unknown view {view!r}; use projected or settlement")
        raise typer.Exit(code=1)

    try:
        with UnitOfWork() as uow:
            s = SummaryService(uow).get_summary(week_id, summary_view)
    except PayweekError as e:
        print(f"❌ {e.message}")
        raise typer.Exit(code=1)

    print(f"\nWeek {s.week.start_date} → {s.week.end_date} ({s.view.value})")
    print(f"  Personnel:     {s.personnel:>14,.2f}")
    print(f"  Contractors:   {s.contractors:>14,.2f}")
    print(f"  Fund requests: {s.fund_requests:>14,.2f}")
    print(f"  Total:         {s.grand_total:>14,.2f}")
    if s.breakdown:
        print("\n[By project]")
        for b in s.breakdown:
            print(f"  {b.project_name:<30} {b.total:>14,.2f}")
    print()

if __name__ == "__main__":
    app()
