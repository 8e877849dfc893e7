"""Job lifecycle logging and tag passthrough.

Example:
    >>> from jobtrail.jobs import JobLogger, TagPassthroughMiddleware
    >>> from jobtrail.tags import TaggedLogger
    >>>
    >>> logger = TaggedLogger("jobs")
    >>>
    >>> # Client side: copy user_id and request_id into enqueued jobs
    >>> middleware = TagPassthroughMiddleware("user_id", "request_id", logger=logger)
    >>> job = middleware.before_submit({"class": "ChargeCard", "jid": "abc", "args": [42]})
    >>>
    >>> # Worker side: log the job's lifecycle with its tags restored
    >>> job_logger = JobLogger(logger)
    >>> with job_logger.prepare(job), job_logger.call(job, "default"):
    ...     charge_card(*job["args"])
"""

from jobtrail.jobs.descriptor import JobDescriptor, enqueued_time_ms, worker_class
from jobtrail.jobs.formatter import MessageFormatter, inspect_value
from jobtrail.jobs.job_logger import JobLogger, LifecycleFormatter
from jobtrail.jobs.passthrough import TagPassthroughMiddleware, json_value
from jobtrail.jobs.registry import WorkerRegistry, default_registry, register_worker

__all__ = [
    "JobDescriptor",
    "JobLogger",
    "LifecycleFormatter",
    "MessageFormatter",
    "TagPassthroughMiddleware",
    "WorkerRegistry",
    "default_registry",
    "enqueued_time_ms",
    "inspect_value",
    "json_value",
    "register_worker",
    "worker_class",
]
