"""Custom validators for configuration values."""

from pathlib import Path

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_VALID_LOG_FORMATS = {"json", "console"}


def validate_log_level(value: str) -> str:
    """Validate log level is one of the standard levels.

    Args:
        value: Log level string.

    Returns:
        Uppercased log level.

    Raises:
        ValueError: If log level is not valid.
    """
    if value.upper() not in _VALID_LOG_LEVELS:
        raise ValueError(f"log_level must be one of {_VALID_LOG_LEVELS}, got {value}")
    return value.upper()


def validate_log_format(value: str) -> str:
    """Validate log format is 'json' or 'console'.

    Raises:
        ValueError: If log format is not valid.
    """
    if value.lower() not in _VALID_LOG_FORMATS:
        raise ValueError(f"log_format must be one of {_VALID_LOG_FORMATS}, got {value}")
    return value.lower()


def validate_sensitive_marker(value: str) -> str:
    """Validate the sensitivity marker.

    Leading and trailing whitespace is not allowed because model output is
    matched against the marker as a plain prefix.

    Args:
        value: Marker string; empty disables implicit sensitivity.

    Returns:
        The marker unchanged.

    Raises:
        ValueError: If the marker has surrounding whitespace.
    """
    if value != value.strip():
        raise ValueError("sensitive_marker must not start or end with whitespace")
    return value


def resolve_path(value: Path | str) -> Path:
    """Resolve relative paths against the project root.

    Args:
        value: Path value (can be string or Path).

    Returns:
        Absolute Path object.
    """
    path = Path(value).expanduser()
    if not path.is_absolute():
        # src/personal_chatbot/config -> project root
        project_root = Path(__file__).parent.parent.parent.parent
        path = project_root / path
    return path.resolve()
