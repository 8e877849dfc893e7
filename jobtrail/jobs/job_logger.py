"""Job lifecycle logging.

`JobLogger` replaces a job framework's built in job logger. It logs the
start, end and failure of each job with timing information and tags:

- worker class name and job id (as scoped tags while the job runs)
- batch id and the job's static tags, when present
- tags passed through from the enqueuing process
- queue name and retry count
- execution duration and time spent waiting in the queue

Messages include the job arguments, for example
``Finished Sidekiq job MyWorker.perform("foo", 12) in 12.3ms``. Workers can
restrict which arguments are shown with the ``logging.args`` job option.

Example:
    >>> job_logger = JobLogger(TaggedLogger("worker"))
    >>> with job_logger.prepare(job), job_logger.call(job, "default"):
    ...     perform(job)
"""

import functools
import inspect
import time
from collections.abc import Awaitable, Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, Optional, Protocol, TypeVar

import structlog

from jobtrail.common.config import JobLoggingConfig
from jobtrail.core.exceptions import InvalidLogLevelError
from jobtrail.jobs.descriptor import (
    enqueued_time_ms,
    job_level,
    logging_options,
    passthrough_tags,
    worker_class,
)
from jobtrail.jobs.formatter import MessageFormatter
from jobtrail.jobs.registry import WorkerRegistry
from jobtrail.tags.logger import is_tagged_logger, parse_level

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class LifecycleFormatter(Protocol):
    """Interface of the objects building lifecycle messages."""

    def start_job(self, job: Mapping[str, Any]) -> str: ...

    def end_job(self, job: Mapping[str, Any], elapsed_time: float) -> str: ...

    def failed_job(self, job: Mapping[str, Any], error: BaseException, elapsed_time: float) -> str: ...


class JobLogger:
    """Logs job lifecycle events with structured tags.

    Attributes:
        logger: Sink for lifecycle records; tags are only attached when it
            supports scoped tags and tag queries
        config: Job logging settings
        formatter: Builds the lifecycle messages
        prefix: Prefix for every tag derived from the job
    """

    def __init__(
        self,
        logger: Any,
        config: Optional[JobLoggingConfig] = None,
        formatter: Optional[LifecycleFormatter] = None,
        registry: Optional[WorkerRegistry] = None,
    ):
        """
        Initialize the job logger.

        Args:
            logger: TaggedLogger, or any logger with info() and error()
            config: Job logging settings (defaults to all options off)
            formatter: Message formatter (defaults to MessageFormatter)
            registry: Worker registry for argument filtering
        """
        self.logger = logger
        self.config = config or JobLoggingConfig()
        self.formatter = formatter or MessageFormatter(self.config, registry=registry)
        self.prefix = self.config.log_tag_prefix

    @property
    def tagged(self) -> bool:
        """True if the sink supports scoped tags."""
        return is_tagged_logger(self.logger)

    @contextmanager
    def prepare(self, job: Mapping[str, Any]) -> Iterator[None]:
        """Set up the logging context the job runs in.

        Tags the block with the job's class and jid (plus bid, static tags and
        passed-through tags when present) and applies the job's log level.
        Passed-through tags replace derived tags with the same name.
        """
        if not self.tagged:
            yield
            return

        tags = {
            f"{self.prefix}class": worker_class(job),
            f"{self.prefix}jid": job.get("jid"),
        }
        if "bid" in job:
            tags[f"{self.prefix}bid"] = job["bid"]
        if "tags" in job:
            tags[f"{self.prefix}tags"] = job["tags"]

        persisted_tags = passthrough_tags(job)
        if persisted_tags:
            tags.update(persisted_tags)

        with self.logger.tag(tags):
            level = self._job_level(job)
            if level is None:
                yield
            else:
                with self.logger.silence(level):
                    yield

    @contextmanager
    def call(self, job: Mapping[str, Any], queue: Optional[str] = None) -> Iterator[None]:
        """Log the start and the end or failure of the block.

        Exceptions raised in the block, cancellation included, are logged
        and re-raised unchanged.

        Args:
            job: Job descriptor
            queue: Queue the job was fetched from
        """
        enqueued_ms = None if self.skip_enqueued_time_logging else enqueued_time_ms(job)
        start = time.monotonic()
        if not self.skip_start_job_logging(job):
            self._log_start_job(job, queue)

        try:
            yield
        except BaseException as err:
            if not self.skip_logging(job):
                self._log_failed_job(job, queue, err, start, enqueued_ms)
            raise

        if not self.skip_logging(job):
            self._log_end_job(job, queue, start, enqueued_ms)

    def run(
        self,
        job: Mapping[str, Any],
        handler: Callable[..., T],
        queue: Optional[str] = None,
    ) -> T:
        """Run a handler for a job inside the job's logging context."""
        with self.prepare(job), self.call(job, queue):
            return handler(job)

    async def run_async(
        self,
        job: Mapping[str, Any],
        handler: Callable[..., Awaitable[T]],
        queue: Optional[str] = None,
    ) -> T:
        """Await a coroutine handler for a job inside the job's logging context."""
        with self.prepare(job), self.call(job, queue):
            return await handler(job)

    def wrap(self, handler: Callable[..., Any]) -> Callable[..., Any]:
        """Decorate a job handler so every invocation is logged.

        The wrapped handler takes the job descriptor and an optional queue
        name. Coroutine functions get an async wrapper.
        """
        if inspect.iscoroutinefunction(handler):

            @functools.wraps(handler)
            async def async_wrapper(job: Mapping[str, Any], queue: Optional[str] = None) -> Any:
                return await self.run_async(job, handler, queue)

            return async_wrapper

        @functools.wraps(handler)
        def wrapper(job: Mapping[str, Any], queue: Optional[str] = None) -> Any:
            return self.run(job, handler, queue)

        return wrapper

    def skip_start_job_logging(self, job: Mapping[str, Any]) -> bool:
        """True if the start of the job should not be logged."""
        if self.config.skip_start_job_logging:
            return True
        if self.skip_logging(job):
            return True
        return bool(logging_options(job).get("skip_start"))

    def skip_logging(self, job: Mapping[str, Any]) -> bool:
        """True if no lifecycle records should be logged for the job."""
        return bool(logging_options(job).get("skip"))

    @property
    def skip_enqueued_time_logging(self) -> bool:
        return self.config.skip_enqueued_time_logging

    def job_tags(self, job: Mapping[str, Any], queue: Optional[str] = None) -> dict[str, Any]:
        """Tags attached to every lifecycle record of a job.

        Includes the retry count (only for retries), the queue and any
        structlog context variables bound while the job ran. Context variables
        are copied under the tag prefix; when ``setup_logging`` installed
        ``merge_contextvars``, records also carry the unprefixed originals.
        """
        tags: dict[str, Any] = {}

        retry_count = job.get("retry_count")
        if isinstance(retry_count, int) and not isinstance(retry_count, bool) and retry_count > 0:
            tags[f"{self.prefix}retry_count"] = retry_count

        job_queue = job.get("queue") or queue
        if job_queue:
            tags[f"{self.prefix}queue"] = job_queue

        for tag, value in structlog.contextvars.get_contextvars().items():
            tags[f"{self.prefix}{tag}"] = value

        return tags

    def _log_start_job(self, job: Mapping[str, Any], queue: Optional[str]) -> None:
        self._emit("info", lambda: self.formatter.start_job(job), lambda: self.job_tags(job, queue))

    def _log_end_job(
        self,
        job: Mapping[str, Any],
        queue: Optional[str],
        start: float,
        enqueued_ms: Optional[int],
    ) -> None:
        elapsed = self._elapsed_time(start)
        self._emit(
            "info",
            lambda: self.formatter.end_job(job, elapsed),
            lambda: self._timing_tags(job, queue, elapsed, enqueued_ms),
        )

    def _log_failed_job(
        self,
        job: Mapping[str, Any],
        queue: Optional[str],
        err: BaseException,
        start: float,
        enqueued_ms: Optional[int],
    ) -> None:
        elapsed = self._elapsed_time(start)
        self._emit(
            "error",
            lambda: self.formatter.failed_job(job, err, elapsed),
            lambda: self._timing_tags(job, queue, elapsed, enqueued_ms),
        )

    def _emit(
        self,
        method: str,
        message: Callable[[], str],
        tags: Callable[[], dict[str, Any]],
    ) -> None:
        # A broken sink or formatter must not change the outcome of the job
        try:
            if self.tagged:
                getattr(self.logger, method)(message(), **tags())
            else:
                getattr(self.logger, method)(message())
        except Exception as e:
            logger.error("job_lifecycle_log_failed", method=method, error=str(e), exc_info=True)

    def _timing_tags(
        self,
        job: Mapping[str, Any],
        queue: Optional[str],
        elapsed: float,
        enqueued_ms: Optional[int],
    ) -> dict[str, Any]:
        tags = self.job_tags(job, queue)
        tags[f"{self.prefix}duration"] = elapsed
        if enqueued_ms is not None:
            tags[f"{self.prefix}enqueued_ms"] = enqueued_ms
        return tags

    def _elapsed_time(self, start: float) -> float:
        return round(time.monotonic() - start, 6)

    def _job_level(self, job: Mapping[str, Any]) -> Optional[int]:
        level = job_level(job)
        if level is None:
            return None
        try:
            return parse_level(level)
        except InvalidLogLevelError:
            logger.warning("job_log_level_invalid", jid=job.get("jid"), level=repr(level))
            return None
