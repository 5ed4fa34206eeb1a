"""Centralised application configuration using pydantic-settings.

All environment variables are read through the Settings class.
Consumers call ``get_settings()`` to obtain a cached, validated instance.
Tests construct ``Settings(_env_file=None, ...)`` directly for isolation.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from marginalia.llm.prompt import DEFAULT_EXPLAIN_PROMPT

logger = logging.getLogger(__name__)

# src/marginalia/config.py  ->  parent x3  ->  project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


# ---------------------------------------------------------------------------
# Sub-models (one per configuration domain)
# ---------------------------------------------------------------------------
class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str | None = None


class LlmConfig(BaseModel):
    """Claude API / LLM configuration."""

    api_key: SecretStr = SecretStr("")
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4096
    explain_prompt: str = DEFAULT_EXPLAIN_PROMPT

    @field_validator("explain_prompt")
    @classmethod
    def _requires_text_placeholder(cls, value: str) -> str:
        if "{text}" not in value:
            msg = "LLM__EXPLAIN_PROMPT must contain a {text} placeholder"
            raise ValueError(msg)
        return value


class AnnotationConfig(BaseModel):
    """Highlight and annotation behaviour."""

    reject_ephemeral_ids: bool = False
    session_page_size: int = Field(default=30, ge=1)
    explain_excerpt_length: int = Field(default=20, ge=1)


class AppConfig(BaseModel):
    """Application runtime configuration."""

    log_dir: Path = Path("logs")


class DevConfig(BaseModel):
    """Development and testing toggles."""

    persistence_mock: bool = False
    database_echo: bool = False
    test_database_url: str | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Application settings with automatic .env loading and type validation.

    Environment variables use double-underscore delimiter for nesting:
    ``DATABASE__URL``, ``LLM__API_KEY``, ``ANNOTATION__REJECT_EPHEMERAL_IDS``,
    etc.
    """

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database: DatabaseConfig = DatabaseConfig()
    llm: LlmConfig = LlmConfig()
    annotation: AnnotationConfig = AnnotationConfig()
    app: AppConfig = AppConfig()
    dev: DevConfig = DevConfig()


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    settings = Settings()

    env_file = settings.model_config.get("env_file")
    if env_file is not None and Path(str(env_file)).is_file():
        logger.info("Settings loaded .env from: %s", env_file)
    else:
        logger.info("Settings: no .env file found, using env vars and defaults")

    return settings
