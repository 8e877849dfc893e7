"""Logging configuration using structlog for structured logging."""

import logging
import logging.handlers
from pathlib import Path
from typing import Any

import structlog

from jobtrail.tags.context import merge_tag_context

from .config import LoggingConfig


def setup_logging(config: LoggingConfig) -> None:
    """
    Configure logging based on configuration.

    This function sets up both structlog and standard library logging to work
    together. Events carry the structlog contextvars and the tags of the
    shared tag context, so anything logged while a job runs is tagged with
    the job's class and jid.

    Args:
        config: LoggingConfig object with logging settings

    Example:
        >>> from jobtrail.common.config import LoggingConfig
        >>> setup_logging(LoggingConfig(level="DEBUG", format="text"))
    """
    log_level = getattr(logging, config.level.upper())

    # Configure standard library logging (for third-party libraries)
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[],
        force=True,
    )

    for library, level in config.third_party.items():
        logging.getLogger(library).setLevel(getattr(logging, level.upper()))

    processors = [
        structlog.contextvars.merge_contextvars,
        merge_tag_context,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if config.format == "json":
        processors.append(structlog.processors.JSONRenderer(default=repr))
    else:
        # Text format with colors for development
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    handlers: list[logging.Handler] = []

    if "console" in config.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        handlers.append(console_handler)

    if "file" in config.handlers and config.file:
        log_path = Path(config.file.path)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=config.file.path,
            maxBytes=config.file.max_bytes,
            backupCount=config.file.backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    for handler in handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """
    Get a structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structlog logger instance
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """
    Bind context variables that will be included in all subsequent log messages.

    Inside a job these values are also added, prefixed, to the job's finish
    and failure records.

    Args:
        **kwargs: Key-value pairs to bind to the logging context

    Example:
        >>> bind_context(user_id=42)
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
