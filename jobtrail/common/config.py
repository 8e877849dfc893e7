"""Configuration models using Pydantic for validation."""

from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
import yaml
from pydantic import BaseModel, Field, field_validator

if TYPE_CHECKING:
    from jobtrail.jobs.job_logger import JobLogger
    from jobtrail.jobs.passthrough import TagPassthroughMiddleware

logger = structlog.get_logger(__name__)


class JobLoggingConfig(BaseModel):
    """Settings consumed by the job logger and message formatter.

    All options default to off so the job logger behaves like the framework's
    built in one unless told otherwise.
    """

    skip_logging_job_arguments: bool = Field(
        default=False,
        description="Never include job arguments in lifecycle messages",
    )
    skip_logging_arguments: bool = Field(
        default=False,
        description="Alias of skip_logging_job_arguments",
    )
    skip_start_job_logging: bool = Field(
        default=False,
        description="Do not log the start of jobs",
    )
    skip_enqueued_time_logging: bool = Field(
        default=False,
        description="Do not compute the time jobs spent in the queue",
    )
    log_tag_prefix: str = Field(
        default="",
        description="Prefix added to every tag derived from the job",
    )
    job_label: str = Field(
        default="Sidekiq",
        min_length=1,
        description="Framework name used in lifecycle messages",
    )
    passthrough_tags: List[str] = Field(
        default_factory=list,
        description="Tags copied from the enqueuing context into jobs",
    )

    @field_validator("log_tag_prefix", mode="before")
    @classmethod
    def validate_prefix(cls, v: Any) -> str:
        """Treat a null prefix as no prefix."""
        return "" if v is None else v

    @property
    def skip_arguments(self) -> bool:
        """True if either argument skipping option is enabled."""
        return self.skip_logging_job_arguments or self.skip_logging_arguments


class FileLoggingConfig(BaseModel):
    """Configuration for file-based logging."""

    path: str = Field(
        default="logs/jobtrail.log",
        description="Path of the log file",
    )
    max_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        description="Maximum size of a log file before rotation",
    )
    backup_count: int = Field(
        default=5,
        ge=0,
        description="Number of rotated files to keep",
    )


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    format: str = Field(
        default="json",
        description="Log format: json or text",
    )
    handlers: List[str] = Field(
        default_factory=lambda: ["console"],
        description="Log handlers: console, file",
    )
    file: Optional[FileLoggingConfig] = Field(
        default=None,
        description="File logging configuration (required for the file handler)",
    )
    third_party: Dict[str, str] = Field(
        default_factory=dict,
        description="Log levels for third-party libraries (advanced)",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = ["json", "text"]
        v_lower = v.lower()
        if v_lower not in valid_formats:
            raise ValueError(f"Invalid format: {v}. Must be one of {valid_formats}")
        return v_lower

    @field_validator("handlers")
    @classmethod
    def validate_handlers(cls, v: List[str]) -> List[str]:
        """Validate handler names."""
        valid_handlers = {"console", "file"}
        for handler in v:
            if handler not in valid_handlers:
                raise ValueError(
                    f"Invalid handler: {handler}. Must be one of {sorted(valid_handlers)}"
                )
        return v


class Config(BaseModel):
    """Root configuration.

    Example:
        >>> config = Config.from_yaml_string("jobs:\\n  log_tag_prefix: sidekiq.")
        >>> config.jobs.log_tag_prefix
        'sidekiq.'
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    jobs: JobLoggingConfig = Field(default_factory=JobLoggingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        """
        Load configuration from a YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Config object with validated configuration

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML is invalid
            pydantic.ValidationError: If configuration is invalid
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        logger.debug("config_loaded", path=str(path))
        return cls.model_validate(data or {})

    @classmethod
    def from_yaml_string(cls, yaml_string: str) -> "Config":
        """
        Load configuration from YAML string.

        Args:
            yaml_string: YAML configuration as string

        Returns:
            Config object with validated configuration
        """
        data = yaml.safe_load(yaml_string)
        return cls.model_validate(data or {})

    def build_job_logger(self, logger: Any, **kwargs: Any) -> "JobLogger":
        """Create a job logger writing to a sink with these settings."""
        from jobtrail.jobs.job_logger import JobLogger

        return JobLogger(logger, config=self.jobs, **kwargs)

    def build_passthrough_middleware(self, logger: Any) -> "TagPassthroughMiddleware":
        """Create the tag passthrough middleware for the configured tags."""
        from jobtrail.jobs.passthrough import TagPassthroughMiddleware

        return TagPassthroughMiddleware(*self.jobs.passthrough_tags, logger=logger)
