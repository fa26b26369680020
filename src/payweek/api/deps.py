"""FastAPI dependencies."""
from __future__ import annotations
from typing import Generator
from payweek.infra.db.uow import UnitOfWork
from payweek.ingest.analyzer import LLMStructureInferenceProvider, StructureInferenceProvider


def get_uow() -> Generator[UnitOfWork, None, None]:
    """Yield one UnitOfWork per request; commit/rollback in __exit__."""
    with UnitOfWork() as uow:
        yield uow


def get_structure_provider() -> StructureInferenceProvider:
    """Structure inference backed by OpenAI; the client is built on first use."""
    return LLMStructureInferenceProvider()
