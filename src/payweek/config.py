"""Application settings, loaded from the environment and ``.env``."""
from __future__ import annotations
from pathlib import Path
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DATA_DIR: Path = Path("data")
    DATABASE_URL: str | None = None
    LOG_LEVEL: str = "INFO"

    OPENAI_API_KEY: SecretStr | None = None
    OPENAI_MODEL_STRUCTURED: str = "gpt-4o-mini"

    # Import pipeline
    IMPORT_SAMPLE_ROWS: int = 15
    IMPORT_MIN_ROWS: int = 5
    IMPORT_TARGET_YEAR: int = 2026
    IMPORT_DEFAULT_EXCHANGE_RATE: float = 1200.0
    IMPORT_BATCH_SIZE: int = Field(default=450, gt=0)
    IMPORT_TIMEOUT_SECONDS: float = Field(default=60.0, gt=0)
    LEGACY_REPLACE_FUND_REQUESTS: bool = True

    @field_validator("IMPORT_BATCH_SIZE")
    @classmethod
    def batch_size_within_store_limit(cls, v: int) -> int:
        if v > 500:
            raise ValueError("IMPORT_BATCH_SIZE must not exceed 500 operations")
        return v

    @property
    def data_dir(self) -> Path:
        return self.DATA_DIR

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL or f"sqlite:///{self.DATA_DIR / 'payweek.db'}"


settings = Settings()
