"""Safe accessors over job descriptors.

A job descriptor is the plain dict a job travels as between the client and
the worker (Sidekiq payload format). None of these helpers raise on malformed
input; unexpected shapes are treated as absent.
"""

import math
import time
from collections.abc import Mapping
from typing import Any, Optional, Union

JobDescriptor = dict[str, Any]


def logging_options(job: Mapping[str, Any]) -> dict[str, Any]:
    """Return the job's ``logging`` options, or an empty dict if malformed."""
    options = job.get("logging")
    if isinstance(options, Mapping):
        return dict(options)
    return {}


def job_args(job: Mapping[str, Any]) -> list[Any]:
    """Return the positional arguments of a job as a list."""
    args = job.get("args")
    if args is None:
        return []
    if isinstance(args, (list, tuple)):
        return list(args)
    return [args]


def _first_present(*values: Any) -> Any:
    # Only None and False count as missing; "" and 0 are kept
    for value in values:
        if value is not None and value is not False:
            return value
    return None


def worker_class(job: Mapping[str, Any]) -> Optional[str]:
    """Name used to display the job's worker.

    ``display_class`` takes precedence over ``wrapped`` which takes
    precedence over ``class``.
    """
    return _first_present(job.get("display_class"), job.get("wrapped"), job.get("class"))


def target_class(job: Mapping[str, Any]) -> Optional[str]:
    """Name of the worker that actually runs the job (ignores ``display_class``)."""
    return _first_present(job.get("wrapped"), job.get("class"))


def job_level(job: Mapping[str, Any]) -> Optional[Union[str, int]]:
    """Per-job log level from ``logging.level`` or the ``log_level`` shorthand."""
    return _first_present(logging_options(job).get("level"), job.get("log_level"))


def passthrough_tags(job: Mapping[str, Any]) -> Optional[dict[str, Any]]:
    """Tags embedded in the job by the passthrough middleware, if well formed."""
    tags = logging_options(job).get("tags")
    if isinstance(tags, Mapping):
        return {str(key): value for key, value in tags.items()}
    return None


def enqueued_time_ms(job: Mapping[str, Any], now: Optional[float] = None) -> Optional[int]:
    """Milliseconds the job spent waiting in the queue.

    Older Sidekiq versions store ``enqueued_at`` as float epoch seconds; newer
    ones store integer epoch milliseconds. Both are accepted.

    Args:
        job: Job descriptor
        now: Current epoch time in seconds (defaults to time.time())

    Returns:
        Wait time in milliseconds clamped to zero, or None if the job has no
        numeric ``enqueued_at``
    """
    enqueued_at = job.get("enqueued_at")
    if isinstance(enqueued_at, bool) or not isinstance(enqueued_at, (int, float)):
        return None
    if not math.isfinite(enqueued_at):
        return None

    if isinstance(enqueued_at, float):
        enqueued_at = round(enqueued_at * 1000)

    if now is None:
        now = time.time()
    enqueued_ms = round(now * 1000 - enqueued_at)
    return max(enqueued_ms, 0)
