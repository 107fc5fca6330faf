"""Structured logging configuration using structlog.

Console output goes to stderr, pretty-printed or as JSON depending on
``CHATBOT_LOG_FORMAT``. When a log directory is configured (``CHATBOT_LOG_DIR``),
events are also written as JSON lines to a rotating file.
"""

import logging
import logging.handlers
import pathlib
import sys
from datetime import datetime, timezone
from typing import Any

import structlog


def _get_log_level() -> str:
    """Get log level from the environment.

    Returns:
        Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    # Settings import logging helpers, so read the bootstrap values directly.
    from personal_chatbot.config.bootstrap import get_bootstrap_log_level  # noqa: PLC0415

    return get_bootstrap_log_level()


def _get_log_format() -> str:
    """Get console log format from the environment."""
    from personal_chatbot.config.bootstrap import get_bootstrap_log_format  # noqa: PLC0415

    return get_bootstrap_log_format()


def _get_log_dir() -> pathlib.Path | None:
    """Get the JSON log directory, if file logging is enabled.

    Returns:
        Path to the log directory, or None when file logging is disabled.
    """
    from personal_chatbot.config.bootstrap import get_bootstrap_log_dir  # noqa: PLC0415

    return get_bootstrap_log_dir()


def _add_timestamp(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add UTC timestamp to log event."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _component(logger_name: str | None) -> str:
    # "personal_chatbot.orchestrator.executor" -> "executor"
    return logger_name.rsplit(".", 1)[-1] if logger_name else "unknown"


def _add_component(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add component name to a record from a plain stdlib logger."""
    event_dict["component"] = _component(getattr(logger, "name", None))
    return event_dict


def _add_component_from_event_dict(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add component name from the ``logger`` key set by ``add_logger_name``."""
    event_dict["component"] = _component(event_dict.get("logger"))
    return event_dict


def _formatter(renderer: Any) -> structlog.stdlib.ProcessorFormatter:
    # foreign_pre_chain applies to records from plain stdlib loggers (httpx, sqlalchemy)
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            _add_timestamp,  # type: ignore[list-item]
            _add_component,  # type: ignore[list-item]
        ],
    )


def _configure_file_handler(log_dir: pathlib.Path) -> logging.handlers.RotatingFileHandler:
    """Create the rotating JSON-lines handler writing to ``log_dir/current.jsonl``."""
    log_dir.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        filename=str(log_dir / "current.jsonl"),
        maxBytes=20 * 1024 * 1024,  # 20 MB
        backupCount=5,
        encoding="utf-8",
    )
    handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
    return handler


def _configure_console_handler(log_format: str = "console") -> logging.StreamHandler[Any]:
    """Create the stderr handler.

    Args:
        log_format: "console" for pretty-printed output, "json" for JSON lines.
    """
    renderer: Any
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_formatter(renderer))
    return handler


def configure_logging() -> None:
    """Configure structlog for structured logging.

    Called lazily by ``get_logger`` the first time a logger is requested. Safe to
    call again; handlers on the root logger are replaced.
    """
    log_level = _get_log_level()
    log_dir = _get_log_dir()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    configured_level = getattr(logging, log_level, logging.INFO)

    if log_dir is not None:
        # File handler keeps INFO+ events regardless of the console level
        file_handler = _configure_file_handler(log_dir)
        file_handler.setLevel(logging.INFO)
        root_logger.addHandler(file_handler)

    console_handler = _configure_console_handler(_get_log_format())
    console_handler.setLevel(configured_level)
    root_logger.addHandler(console_handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            _add_component_from_event_dict,  # type: ignore[list-item]
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:  # Returns structlog.stdlib.BoundLogger
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module).

    Returns:
        Configured structlog logger instance.

    Example:
        >>> from personal_chatbot.telemetry import get_logger
        >>> log = get_logger(__name__)
        >>> log.info("turn_started", conversation_id="0190...", trace_id="abc")
    """
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(name)
