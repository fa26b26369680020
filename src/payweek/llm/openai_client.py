"""Lazily constructed OpenAI SDK client configured from settings."""
from __future__ import annotations
from functools import lru_cache
from openai import OpenAI
from payweek.config import settings
from payweek.domain.exceptions import ConfigurationError


@lru_cache(maxsize=1)
def get_client() -> OpenAI:
    key = settings.OPENAI_API_KEY.get_secret_value() if settings.OPENAI_API_KEY else ""
    if not key:
        raise ConfigurationError(
            "OPENAI_API_KEY is not set; structure inference is unavailable."
        )
    return OpenAI(api_key=key, timeout=settings.IMPORT_TIMEOUT_SECONDS, max_retries=0)
