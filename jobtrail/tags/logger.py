"""Structured-tag-capable logging sink.

`TaggedLogger` wraps a structlog logger and adds the operations the job
logging components need from a sink: scoped tags, tag queries and a scoped
level override. Components check for these capabilities with
`is_tagged_logger` instead of assuming a concrete type, so a plain
`logging.Logger` can be used anywhere and simply gets untagged messages.

Example:
    >>> from jobtrail.tags.logger import TaggedLogger
    >>> logger = TaggedLogger("worker")
    >>> with logger.tag({"user_id": 123}):
    ...     logger.info("Charging card", amount=10)
"""

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, ContextManager, Optional, Protocol, Union, runtime_checkable

import structlog

from jobtrail.core.exceptions import InvalidLogLevelError
from jobtrail.tags.context import TagContext, tag_context

LevelLike = Union[int, str]

_LEVEL_ALIASES = {
    "WARN": logging.WARNING,
    "FATAL": logging.CRITICAL,
    "UNKNOWN": logging.CRITICAL,
}

_METHOD_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "critical",
}


@runtime_checkable
class SupportsScopedTags(Protocol):
    """Sink that can push tags and override its level for a scope."""

    def tag(self, tags: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> ContextManager[None]: ...

    def silence(self, level: LevelLike) -> ContextManager[None]: ...


@runtime_checkable
class SupportsTagQuery(Protocol):
    """Sink that can report the current value of a tag."""

    def tag_value(self, key: str) -> Any: ...


def is_tagged_logger(logger: Any) -> bool:
    """Check whether a logger supports scoped tags and tag queries."""
    return isinstance(logger, SupportsScopedTags) and isinstance(logger, SupportsTagQuery)


def parse_level(level: LevelLike) -> int:
    """Convert a level name or number into a stdlib logging level.

    Args:
        level: Level number or case-insensitive name (``warn`` and ``fatal``
            are accepted as aliases)

    Returns:
        Numeric logging level

    Raises:
        InvalidLogLevelError: If the level is not recognized
    """
    if isinstance(level, bool):
        raise InvalidLogLevelError(f"Invalid log level: {level!r}", level=level)
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        name = level.strip().upper()
        if name in _LEVEL_ALIASES:
            return _LEVEL_ALIASES[name]
        value = logging.getLevelName(name)
        if isinstance(value, int):
            return value
    raise InvalidLogLevelError(f"Invalid log level: {level!r}", level=level)


class TaggedLogger:
    """Structlog-backed logger with scoped tags and a scoped level override.

    Every emitted event carries the tags of the active context frames, with
    tags passed to the call itself taking precedence.

    Attributes:
        context: Tag context shared with other loggers using the same instance
        base_level: Level in effect when no scoped override is active
    """

    def __init__(
        self,
        name: Optional[str] = None,
        level: LevelLike = logging.DEBUG,
        context: Optional[TagContext] = None,
        logger: Any = None,
    ):
        """
        Initialize the tagged logger.

        Args:
            name: Logger name passed to structlog.get_logger
            level: Minimum level for emitted events
            context: Tag context (defaults to the shared context)
            logger: Underlying structlog logger (overrides name)
        """
        self.name = name
        self.base_level = parse_level(level)
        self.context = context if context is not None else tag_context
        self._logger = logger if logger is not None else structlog.get_logger(name)
        self._level_override: ContextVar[Optional[int]] = ContextVar(
            f"{self.context.name}_level_{id(self)}", default=None
        )

    @property
    def level(self) -> int:
        """Effective level for the current execution flow."""
        override = self._level_override.get()
        return self.base_level if override is None else override

    @level.setter
    def level(self, value: LevelLike) -> None:
        self.base_level = parse_level(value)

    def is_enabled_for(self, level: LevelLike) -> bool:
        """Check whether events at a level would be emitted."""
        return parse_level(level) >= self.level

    @contextmanager
    def silence(self, level: LevelLike) -> Iterator[None]:
        """Use a different level for the duration of the block.

        Args:
            level: Level to apply inside the block

        Raises:
            InvalidLogLevelError: If the level is not recognized
        """
        token = self._level_override.set(parse_level(level))
        try:
            yield
        finally:
            self._level_override.reset(token)

    def tag(self, tags: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> ContextManager[None]:
        """Push tags onto the context for the duration of a with block."""
        return self.context.tag(tags, **kwargs)

    def tag_value(self, key: str) -> Any:
        """Return the current value of a tag, or None."""
        return self.context.value_of(key)

    @property
    def tags(self) -> dict[str, Any]:
        """Currently active tags."""
        return self.context.current()

    def log(self, level: LevelLike, message: str, tags: Optional[Mapping[str, Any]] = None) -> None:
        """Emit a message with the active tags merged with explicit ones.

        Args:
            level: Level of the event
            message: Human readable message
            tags: Tags for this event only
        """
        level = parse_level(level)
        if level < self.level:
            return

        event = self.context.current()
        if tags:
            event.update({str(key): value for key, value in tags.items()})
        # The message is passed positionally as structlog's event.
        event.pop("event", None)

        method = _METHOD_NAMES.get(level)
        if method is None:
            self._logger.log(level, message, **event)
        else:
            getattr(self._logger, method)(message, **event)

    def debug(self, message: str, /, **tags: Any) -> None:
        self.log(logging.DEBUG, message, tags)

    def info(self, message: str, /, **tags: Any) -> None:
        self.log(logging.INFO, message, tags)

    def warning(self, message: str, /, **tags: Any) -> None:
        self.log(logging.WARNING, message, tags)

    def error(self, message: str, /, **tags: Any) -> None:
        self.log(logging.ERROR, message, tags)

    def critical(self, message: str, /, **tags: Any) -> None:
        self.log(logging.CRITICAL, message, tags)
