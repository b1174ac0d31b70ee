"""Configuration management.

Values come from environment variables prefixed ``ORDERING_`` (or a local
``.env`` file) and are validated by pydantic-settings.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

# Resolve data directory relative to the project root.
# When installed in editable mode the project root is the repo root.
DATA_DIR = Path(__file__).resolve().parents[3] / "data"


class Settings(BaseSettings):
    database_url: str = f"sqlite:///{DATA_DIR / 'ordering.db'}"
    echo_sql: bool = False
    log_level: str = "INFO"
    max_attempts: int = Field(default=3, ge=1)  # per dispatched command
    backoff_seconds: float = Field(default=0.05, ge=0)
    outbox_batch_size: int = Field(default=100, ge=1)

    model_config = {"env_prefix": "ORDERING_", "env_file": ".env", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
