"""Bootstrap configuration helpers (pre-settings).

Logging needs a couple of values before the pydantic settings can be built,
because the settings module itself logs while loading.

Constraints:
- Keep this module dependency-light (no telemetry imports).
- Validate values with the shared config validators.
"""

from __future__ import annotations

import os
from pathlib import Path

from personal_chatbot.config.validators import validate_log_format, validate_log_level


def get_bootstrap_log_level(default: str = "INFO") -> str:
    """Get logging level from environment without importing settings.

    Args:
        default: Default log level if not set or invalid.

    Returns:
        Uppercased, validated log level string.
    """
    value = os.getenv("CHATBOT_LOG_LEVEL", default)
    try:
        return validate_log_level(value)
    except ValueError:
        return validate_log_level(default)


def get_bootstrap_log_format(default: str = "console") -> str:
    """Get console log format (json or console) from environment.

    Args:
        default: Default format if not set or invalid.
    """
    value = os.getenv("CHATBOT_LOG_FORMAT", default)
    try:
        return validate_log_format(value)
    except ValueError:
        return validate_log_format(default)


def get_bootstrap_log_dir() -> Path | None:
    """Get the JSON log directory from the environment.

    Returns:
        Directory for JSON log files, or None when ``CHATBOT_LOG_DIR`` is unset.
    """
    value = os.getenv("CHATBOT_LOG_DIR", "").strip()
    if not value:
        return None
    return Path(value).expanduser()
