"""Sheet structure analysis.

Three ways to learn how a weekly sheet is laid out:

* inference: a sample of the first rows goes to a StructureInferenceProvider
  (an LLM behind the ``LLMClient`` protocol in production, a stub in tests);
* override: the caller hands over a StructuralMapping it already trusts;
* legacy: the first row is read as a header and roles are found by vocabulary.

Provider failures are fatal for the whole import and are never retried.
"""
from __future__ import annotations

import json
from typing import Any, Protocol, runtime_checkable

import openai
from pydantic import ValidationError

from payweek.config import settings
from payweek.domain.exceptions import (
    ConfigurationError, ImportValidationError, InferenceError,
)
from payweek.ingest.mapping import WEEKDAY_OFFSETS, LegacyLayout, StructuralMapping, cell_text
from payweek.ingest.resolver import normalize
from payweek.llm.protocol import LLMClient
from payweek.logging import logger

LEGACY_NAME_HEADERS = {"name", "nombre", "apellido y nombre", "nombre y apellido"}
LEGACY_CATEGORY_HEADERS = {"category", "categoria", "rubro"}
LEGACY_JOURNAL_HEADERS = {"journal", "jornal"}
LEGACY_IGNORED_HEADERS = {"item", "nro", "n°", "#"}


@runtime_checkable
class StructureInferenceProvider(Protocol):
    def infer(self, sample_rows: list[list[Any]]) -> StructuralMapping:
        """Return the mapping for a sheet, or raise ConfigurationError/InferenceError."""
        ...


def build_instructions(target_year: int) -> str:
    return (
        "You are an expert data analyst. You receive the first rows of a raw "
        "spreadsheet (array of arrays) used to record weekly construction payments.\n"
        "Identify its structure:\n"
        "1. The HEADER row (contains 'Nombre', 'Categoria', project names, dates).\n"
        "2. The index of the name column (employee or contractor).\n"
        "3. The index of the category column, if any.\n"
        "4. Columns that are projects (obras); they hold monetary amounts.\n"
        "5. Columns that are days/dates (e.g. 'Lun 01', '01/01'). Convert each header "
        f"to an ISO date (YYYY-MM-DD), assuming year {target_year} when it is missing.\n"
        "6. The row where data starts (usually header row + 1).\n"
        "All indices are zero-based. Reply with a single JSON object:\n"
        "{\n"
        '  "headerRowIndex": number,\n'
        '  "dataStartRowIndex": number,\n'
        '  "nameColumnIndex": number,\n'
        '  "categoryColumnIndex": number (optional),\n'
        '  "projectColumnIndices": number[],\n'
        '  "dayColumnIndices": [ { "index": number, "date": "YYYY-MM-DD" } ]\n'
        "}"
    )


class LLMStructureInferenceProvider:
    """Structure inference via a chat-completion model returning JSON."""

    def __init__(
        self,
        llm_client: LLMClient | None = None,
        *,
        model: str | None = None,
        target_year: int | None = None,
    ) -> None:
        self._llm_client = llm_client
        self._model = model or settings.OPENAI_MODEL_STRUCTURED
        self._target_year = target_year or settings.IMPORT_TARGET_YEAR

    def _client(self) -> LLMClient:
        if self._llm_client is None:
            from payweek.llm.protocol import OpenAILLMClient  # lazy: needs credentials
            self._llm_client = OpenAILLMClient()
        return self._llm_client

    def infer(self, sample_rows: list[list[Any]]) -> StructuralMapping:
        client = self._client()
        messages = [
            {"role": "system", "content": build_instructions(self._target_year)},
            {"role": "user", "content": json.dumps(sample_rows, default=str, ensure_ascii=False)},
        ]
        try:
            raw = client.chat_completions_create(
                model=self._model,
                messages=messages,
                response_format={"type": "json_object"},
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise ConfigurationError(f"Structure inference provider rejected credentials: {exc}") from exc
        except openai.OpenAIError as exc:
            raise InferenceError(f"Structure inference request failed: {exc}") from exc

        try:
            return StructuralMapping.model_validate_json(raw or "")
        except ValidationError as exc:
            logger.error("Structure inference returned an unusable mapping: %s", exc)
            raise InferenceError(f"Structure inference returned an unusable mapping: {exc}") from exc


class SheetAnalyzer:
    def __init__(self, provider: StructureInferenceProvider | None = None) -> None:
        self._provider = provider

    @staticmethod
    def _require_rows(rows: list[list[Any]]) -> None:
        if len(rows) < settings.IMPORT_MIN_ROWS:
            raise ImportValidationError(
                f"The sheet has {len(rows)} rows; at least {settings.IMPORT_MIN_ROWS} are required."
            )

    @staticmethod
    def parse_override(override: StructuralMapping | dict | str) -> StructuralMapping:
        if isinstance(override, StructuralMapping):
            return override
        try:
            if isinstance(override, str):
                return StructuralMapping.model_validate_json(override)
            return StructuralMapping.model_validate(override)
        except ValidationError as exc:
            raise ImportValidationError(f"Invalid analysis override: {exc}") from exc

    def analyze(
        self,
        rows: list[list[Any]],
        *,
        override: StructuralMapping | dict | str | None = None,
    ) -> StructuralMapping:
        self._require_rows(rows)

        if override is not None:
            logger.info("Using caller-supplied analysis override")
            mapping = self.parse_override(override)
            if mapping.header_row_index >= len(rows):
                raise ImportValidationError(
                    f"Analysis override header row {mapping.header_row_index} is outside the sheet."
                )
            return mapping

        if self._provider is None:
            raise ConfigurationError("No structure inference provider is configured.")

        sample = rows[: settings.IMPORT_SAMPLE_ROWS]
        logger.info("Starting structure inference on %d sample rows", len(sample))
        mapping = self._provider.infer(sample)
        if mapping.header_row_index >= len(sample):
            raise InferenceError(
                f"Inferred header row {mapping.header_row_index} is outside the sampled rows."
            )
        return mapping

    def analyze_legacy(self, rows: list[list[Any]]) -> LegacyLayout:
        self._require_rows(rows)
        header = rows[0]

        name_col = category_col = journal_col = None
        days: list[tuple[int, int, str]] = []
        projects: list[tuple[int, str]] = []
        for col, value in enumerate(header):
            text = cell_text(value)
            key = normalize(text)
            if not key:
                continue
            if key in LEGACY_NAME_HEADERS and name_col is None:
                name_col = col
            elif key in LEGACY_CATEGORY_HEADERS and category_col is None:
                category_col = col
            elif key in LEGACY_JOURNAL_HEADERS and journal_col is None:
                journal_col = col
            elif key in LEGACY_IGNORED_HEADERS or "total" in key:
                continue
            else:
                offset = _weekday_offset(key)
                if offset is not None:
                    days.append((col, offset, text))
                else:
                    projects.append((col, text))

        if name_col is None:
            raise ImportValidationError("Legacy sheet has no name column in its first row.")

        return LegacyLayout(
            name_column=name_col,
            category_column=category_col,
            journal_column=journal_col,
            day_columns=tuple(days),
            project_columns=tuple(projects),
        )


def _weekday_offset(normalized_header: str) -> int | None:
    for day_name, offset in WEEKDAY_OFFSETS.items():
        if day_name in normalized_header:
            return offset
    return None
