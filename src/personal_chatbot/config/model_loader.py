"""Load and validate model configuration from YAML file.

This module provides the main entry point for loading model configuration:
- Loads config/models.yaml
- Validates against the ModelConfig schema
- Returns a typed ModelConfig object
"""

from pathlib import Path

import structlog
from pydantic import ValidationError

from personal_chatbot.config.loader import (
    ConfigLoadError,
    format_validation_error,
    load_yaml_file,
)
from personal_chatbot.llm_client.models import ModelConfig

log = structlog.get_logger(__name__)


class ModelConfigError(ConfigLoadError):
    """Raised when model configuration cannot be loaded or is invalid."""

    pass


def load_model_config(config_path: Path | str | None = None) -> ModelConfig:
    """Load and validate model configuration from YAML file.

    Args:
        config_path: Path to models.yaml. If None, uses settings.model_config_path.

    Returns:
        Validated ModelConfig object.

    Raises:
        ModelConfigError: If configuration cannot be loaded, parsed, or validated.

    Example:
        >>> config = load_model_config()
        >>> config.models[config.default].id
        'gpt-4o-mini'
    """
    if config_path is None:
        from personal_chatbot.config.settings import get_settings  # noqa: PLC0415

        config_path = get_settings().model_config_path
        log.debug("using_model_config_path_from_settings", path=str(config_path))

    config_path = Path(config_path)

    if not config_path.is_file():
        raise ModelConfigError(f"Model config file not found: {config_path}")

    log.info("loading_model_config", config_path=str(config_path))

    content = load_yaml_file(config_path, error_class=ModelConfigError)

    try:
        config = ModelConfig.model_validate(content)
    except ValidationError as e:
        raise ModelConfigError(
            f"Model configuration validation failed:\n{format_validation_error(e)}"
        ) from None

    log.info(
        "model_config_loaded",
        default_model=config.default,
        model_names=list(config.models),
    )
    return config
