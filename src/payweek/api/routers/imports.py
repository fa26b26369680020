"""Weekly payment import endpoints."""
from datetime import date
from fastapi import APIRouter, Depends, File, Form, UploadFile
from payweek.api.deps import get_structure_provider
from payweek.api.schemas.imports import ImportPreviewResponse, ImportResponse
from payweek.config import settings
from payweek.ingest.analyzer import StructureInferenceProvider
from payweek.services.import_service import ImportService

router = APIRouter(prefix="/weekly-payments/import", tags=["imports"])

# Sync handlers: the import pipeline blocks, FastAPI runs them in its threadpool.


def _read(file: UploadFile | None) -> bytes | None:
    if file is None:
        return None
    return file.file.read()


@router.post("", response_model=ImportResponse)
def import_weekly_payments(
    file: UploadFile | None = File(None),
    exchange_rate_weekly: float = Form(settings.IMPORT_DEFAULT_EXCHANGE_RATE, alias="exchangeRateWeekly"),
    analysis_override: str | None = Form(None, alias="analysisOverride"),
    provider: StructureInferenceProvider = Depends(get_structure_provider),
) -> ImportResponse:
    return ImportService(provider).import_workbook(
        _read(file),
        exchange_rate=exchange_rate_weekly,
        analysis_override=analysis_override or None,
    )


@router.post("/preview", response_model=ImportPreviewResponse)
def preview_weekly_payments(
    file: UploadFile | None = File(None),
    provider: StructureInferenceProvider = Depends(get_structure_provider),
) -> ImportPreviewResponse:
    return ImportService(provider).preview(_read(file))


@router.post("/legacy", response_model=ImportResponse)
def import_legacy_payments(
    week_start: date = Form(..., alias="weekStart"),
    week_end: date | None = Form(None, alias="weekEnd"),
    file: UploadFile | None = File(None),
) -> ImportResponse:
    return ImportService().import_legacy(_read(file), week_start=week_start, week_end=week_end)
