"""Application configuration settings.

This module provides the AppConfig class and settings singleton.
"""

from pathlib import Path
from typing import Literal

import structlog
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from personal_chatbot import __version__
from personal_chatbot.config.env_loader import Environment, get_environment, load_env_files
from personal_chatbot.config.validators import (
    resolve_path,
    validate_log_format,
    validate_log_level,
    validate_sensitive_marker,
)

log = structlog.get_logger(__name__)


class AppConfig(BaseSettings):
    """Unified application configuration.

    Values come from CHATBOT_* environment variables (after .env files are
    loaded by env_loader) and fall back to the defaults below.
    """

    model_config = SettingsConfigDict(
        # .env files are loaded manually by env_loader to support priority order
        env_prefix="CHATBOT_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
        protected_namespaces=(),  # model_config_path
    )

    # Environment
    environment: Environment = Field(
        default_factory=get_environment, description="Current environment"
    )

    # Application
    project_name: str = Field(
        default="personal-chatbot", description="Bot name reported by self_info"
    )
    version: str = Field(default=__version__, description="Bot version reported by self_info")

    # Telemetry
    log_dir: Path | None = Field(default=None, description="JSON log directory (None disables)")
    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(default="console", description="Log format (json or console)")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        return validate_log_level(v)

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        return validate_log_format(v)

    @field_validator("model_config_path", "storage_sqlite_path", mode="before")
    @classmethod
    def resolve_paths(cls, v: Path | str) -> Path:
        """Resolve relative paths to absolute."""
        return resolve_path(v)

    # Assistant identity
    assistant_system_role: str = Field(
        default="You are a friendly personal assistant.",
        description="System message that opens every new conversation",
    )
    assistant_sensitive_marker: str = Field(
        default="",
        description="Prefix the model emits to flag a sensitive reply (empty disables)",
    )

    @field_validator("assistant_sensitive_marker")
    @classmethod
    def validate_sensitive_marker(cls, v: str) -> str:
        """Validate sensitivity marker."""
        return validate_sensitive_marker(v)

    # LLM backends
    model_config_path: Path = Field(
        default=Path("config/models.yaml"), description="Path to model config file"
    )
    llm_max_retries: int = Field(default=2, ge=0, description="Maximum retry attempts")

    # Orchestrator
    orchestrator_max_model_calls: int = Field(
        default=8,
        ge=1,
        description="Maximum model invocations per turn (bounds tool-calling loops)",
    )

    # Storage
    storage_backend: Literal["memory", "sqlite"] = Field(
        default="memory", description="Conversation storage backend"
    )
    storage_sqlite_path: Path = Field(
        default=Path("data/conversations.sqlite3"), description="SQLite database file"
    )

    # Tools
    reminder_max_seconds: int = Field(
        default=60 * 60 * 24 * 30,
        ge=1,
        description="Furthest a reminder may be scheduled ahead, in seconds",
    )
    image_generator_endpoint: str = Field(
        default="https://api.openai.com/v1", description="OpenAI-compatible images API base URL"
    )
    image_generator_model: str | None = Field(
        default=None, description="Image model id (None disables image_generator)"
    )
    image_generator_api_key: str | None = Field(default=None, description="Images API key")
    image_generator_timeout: int = Field(
        default=120, ge=1, description="Image generation read timeout in seconds"
    )
    exchange_rate_endpoint: str = Field(
        default="https://v6.exchangerate-api.com", description="ExchangeRate-API base URL"
    )
    exchange_rate_api_key: str | None = Field(
        default=None, description="ExchangeRate-API key (None disables exchange_rate)"
    )


_settings: AppConfig | None = None


def load_app_config() -> AppConfig:
    """Load .env files, then build and validate the settings.

    Raises:
        ValidationError: If a CHATBOT_* value is invalid.
    """
    loaded_files = load_env_files()

    try:
        config = AppConfig()
    except ValidationError as e:
        log.error("app_config_invalid", errors=e.error_count(), env_files=loaded_files)
        raise

    log.info(
        "app_config_loaded",
        environment=config.environment.value,
        log_level=config.log_level,
        storage_backend=config.storage_backend,
        model_config_path=str(config.model_config_path),
    )
    return config


def get_settings() -> AppConfig:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_app_config()
    return _settings
