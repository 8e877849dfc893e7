"""Scoped tag context backed by contextvars.

Tags are pushed as frames onto a per-execution-flow stack. Each thread and
each asyncio task sees its own stack, so concurrently running jobs never
observe each other's tags.

Example:
    >>> from jobtrail.tags.context import TagContext
    >>> context = TagContext()
    >>> with context.tag({"user_id": 123}):
    ...     with context.tag(request_id="abc"):
    ...         context.value_of("user_id")
    123
    >>> context.value_of("user_id") is None
    True
"""

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from itertools import count
from typing import Any, Optional

Frame = Mapping[str, Any]

_context_ids = count()


class TagContext:
    """Stack of tag frames local to the current thread or task.

    Querying a key returns the value from the innermost frame that defines it.
    """

    def __init__(self, name: Optional[str] = None) -> None:
        """Initialize an empty tag context.

        Args:
            name: Optional name used for the underlying ContextVar
        """
        self.name = name or f"jobtrail_tags_{next(_context_ids)}"
        self._frames: ContextVar[tuple[Frame, ...]] = ContextVar(self.name, default=())

    @contextmanager
    def tag(self, tags: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> Iterator[None]:
        """Push a frame of tags for the duration of the block.

        Args:
            tags: Mapping of tag names to values
            **kwargs: Additional tags

        Yields:
            None; the frame is popped when the block exits, normally or not
        """
        frame: dict[str, Any] = {}
        if tags:
            frame.update({str(key): value for key, value in tags.items()})
        frame.update(kwargs)

        token = self._frames.set(self._frames.get() + (frame,))
        try:
            yield
        finally:
            self._frames.reset(token)

    def value_of(self, key: str) -> Any:
        """Return the innermost value for a tag, or None if no frame defines it."""
        key = str(key)
        for frame in reversed(self._frames.get()):
            if key in frame:
                return frame[key]
        return None

    def has_tag(self, key: str) -> bool:
        """Check whether any active frame defines a tag."""
        key = str(key)
        return any(key in frame for frame in self._frames.get())

    def current(self) -> dict[str, Any]:
        """Return the effective tags with inner frames overriding outer ones."""
        merged: dict[str, Any] = {}
        for frame in self._frames.get():
            merged.update(frame)
        return merged

    @property
    def depth(self) -> int:
        """Number of frames active in the current execution flow."""
        return len(self._frames.get())


# Shared by every TaggedLogger that is not given its own context
tag_context = TagContext("jobtrail_tags")


def merge_tag_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Structlog processor adding the shared tag context to each event.

    Keys passed explicitly with the event take precedence.
    """
    tags = tag_context.current()
    if tags:
        event_dict = {**tags, **event_dict}
    return event_dict
