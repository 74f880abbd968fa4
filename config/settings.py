"""
Settings for the workflow console.

Values come from environment variables or a `.env` file in the working
directory. Defaults suit local development against a SQLite file.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path.cwd() / ".env"
load_dotenv(ENV_PATH, override=False)


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # SQLAlchemy URL of the backend holding the workflow tables
    database_url: str = Field(default="sqlite:///./workflows.db")
    database_echo: bool = Field(default=False)
    # Identity the console acts as when stamping created_by / organization_id
    organization_id: str = Field(default="")
    user_id: str | None = Field(default=None)
    openai_api_key: str | None = Field(default=None)
    openai_model: str = Field(default="gpt-4o-mini")
    log_level: str = Field(default="INFO")
    # Window used for per-workflow execution counts
    log_window_days: int = Field(default=7, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
