"""Client middleware passing log tags from the enqueuing context to the job.

When a job is enqueued, the values of an allow-list of tags are read from the
current tag context and stored in the job's ``logging.tags`` option. The job
logger restores them as tags while the job runs on the worker.

Example:
    >>> from jobtrail.tags import TaggedLogger
    >>> logger = TaggedLogger("web")
    >>> middleware = TagPassthroughMiddleware("user_id", "request_id", logger=logger)
    >>> with logger.tag(user_id=123):
    ...     job = middleware.before_submit({"class": "ChargeCard", "args": [1]})
    >>> job["logging"]["tags"]
    {'user_id': 123}
"""

import json
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Optional, TypeVar

import structlog

from jobtrail.jobs.descriptor import JobDescriptor
from jobtrail.tags.logger import is_tagged_logger

logger = structlog.get_logger(__name__)

T = TypeVar("T")

JSON_SAFE_TYPES = (str, int, float, bool)


def json_value(value: Any) -> Any:
    """Convert a tag value into something that survives JSON transport.

    Returns:
        The value itself for scalars, a JSON round-tripped copy for other
        values, or None if the value cannot be encoded
    """
    if value is None:
        return None
    if type(value) in JSON_SAFE_TYPES:
        return value

    try:
        return json.loads(json.dumps(value))
    except (TypeError, ValueError, RecursionError):
        return None


def _flatten(tags: Iterable[Any]) -> Iterable[str]:
    for tag in tags:
        if isinstance(tag, (list, tuple, set, frozenset)):
            yield from _flatten(tag)
        else:
            yield str(tag)


class TagPassthroughMiddleware:
    """Copies allow-listed tags into jobs at enqueue time.

    The middleware does nothing unless the logger supports scoped tags and
    tag queries, so it is harmless when paired with a plain logger.

    Attributes:
        pass_through_tags: Tag names to copy, in order, without duplicates
        logger: Logger whose tag context is read
    """

    def __init__(self, *pass_through_tags: Any, logger: Any):
        """
        Initialize the middleware.

        Args:
            *pass_through_tags: Tag names (strings or lists of strings)
            logger: Logger of the enqueuing process
        """
        self.pass_through_tags = list(dict.fromkeys(_flatten(pass_through_tags)))
        self.logger = logger

    def __call__(
        self,
        job_class: Any,
        job: JobDescriptor,
        queue: Optional[str],
        call_next: Callable[[JobDescriptor], T],
    ) -> T:
        """Run as a client middleware, handing the tagged job to the next link.

        Args:
            job_class: Worker class or name being enqueued
            job: Job descriptor
            queue: Destination queue
            call_next: Rest of the middleware chain

        Returns:
            Whatever the rest of the chain returns
        """
        return call_next(self.before_submit(job))

    def before_submit(self, job: JobDescriptor) -> JobDescriptor:
        """Return the job with the current pass-through tags embedded.

        The job passed in is never modified. It is returned as is when there
        is nothing to add.
        """
        if not is_tagged_logger(self.logger):
            return job

        options = job.get("logging")
        if options is None:
            options = {}
        elif not isinstance(options, Mapping):
            logger.debug("passthrough_skipped_malformed_logging", jid=job.get("jid"))
            return job

        existing = options.get("tags")
        tags = dict(existing) if isinstance(existing, Mapping) else {}

        added = False
        for tag in self.pass_through_tags:
            raw = self.logger.tag_value(tag)
            if raw is None:
                continue
            value = json_value(raw)
            if value is None:
                logger.debug("passthrough_tag_dropped", tag=tag, value_type=type(raw).__name__)
                continue
            tags[tag] = value
            added = True

        if not added:
            return job

        return {**job, "logging": {**options, "tags": tags}}

