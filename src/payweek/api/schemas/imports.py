"""Weekly-payment import DTOs. Pure Pydantic, zero ORM imports; camelCase on the wire."""
from __future__ import annotations
from datetime import date
from typing import Any
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from payweek.ingest.mapping import StructuralMapping


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class CreatedCounts(_CamelModel):
    attendance: int = 0
    certifications: int = 0
    fund_requests: int = 0


class ImportWarningRead(_CamelModel):
    reason: str
    sheet: str | None = None
    row: int | None = None


class ImportResponse(_CamelModel):
    created: CreatedCounts
    warnings: list[ImportWarningRead] = Field(default_factory=list)
    sheets_processed: int


class SheetStatus(_CamelModel):
    name: str
    valid_date: bool
    parsed_date: date | None = None


class ImportPreviewResponse(_CamelModel):
    analysis: StructuralMapping
    sheets: list[SheetStatus]
    sample_rows: list[list[Any]]
