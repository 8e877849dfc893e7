"""jobtrail package initialization.

Structured lifecycle logging for background jobs, with log tags carried from
the enqueuing process to the worker.
"""

from .common.config import Config, FileLoggingConfig, JobLoggingConfig, LoggingConfig
from .common.logging_config import bind_context, clear_context, get_logger, setup_logging
from .core.exceptions import InvalidLogLevelError, JobTrailError, WorkerResolutionError
from .jobs import (
    JobLogger,
    MessageFormatter,
    TagPassthroughMiddleware,
    WorkerRegistry,
    default_registry,
    register_worker,
)
from .tags import (
    SupportsScopedTags,
    SupportsTagQuery,
    TagContext,
    TaggedLogger,
    is_tagged_logger,
    tag_context,
)

__version__ = "0.1.0"
__all__ = [
    "Config",
    "FileLoggingConfig",
    "InvalidLogLevelError",
    "JobLogger",
    "JobLoggingConfig",
    "JobTrailError",
    "LoggingConfig",
    "MessageFormatter",
    "SupportsScopedTags",
    "SupportsTagQuery",
    "TagContext",
    "TagPassthroughMiddleware",
    "TaggedLogger",
    "WorkerRegistry",
    "WorkerResolutionError",
    "bind_context",
    "clear_context",
    "default_registry",
    "get_logger",
    "is_tagged_logger",
    "register_worker",
    "setup_logging",
    "tag_context",
]
