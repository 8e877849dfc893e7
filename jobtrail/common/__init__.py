"""Common utilities: configuration models and logging setup."""

from .config import Config, FileLoggingConfig, JobLoggingConfig, LoggingConfig
from .logging_config import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    "Config",
    "FileLoggingConfig",
    "JobLoggingConfig",
    "LoggingConfig",
    "bind_context",
    "clear_context",
    "get_logger",
    "setup_logging",
]
