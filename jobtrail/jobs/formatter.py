"""Lifecycle messages for jobs.

Out of the box the messages look like:

- Start Sidekiq job MyWorker.perform("foo", 12)
- Finished Sidekiq job MyWorker.perform("foo", 12) in 123.4ms
- Failed Sidekiq job MyWorker.perform("foo", 12) due to RuntimeError in 123.4ms

Which arguments are shown is controlled per job with ``logging.args``:

- ``True`` or absent: every argument
- ``False``: all arguments replaced by ``...``
- a list of parameter names: only those parameters, others shown as ``-``

Argument logging can be disabled globally with the
``skip_logging_job_arguments`` setting. Any object with ``start_job``,
``end_job`` and ``failed_job`` methods can be given to the job logger instead
of this class.
"""

import json
from collections.abc import Mapping
from typing import Any, Optional

import structlog

from jobtrail.common.config import JobLoggingConfig
from jobtrail.core.exceptions import WorkerResolutionError
from jobtrail.jobs.descriptor import job_args, logging_options, target_class, worker_class
from jobtrail.jobs.registry import PERFORM_METHOD, WorkerRegistry, default_registry

logger = structlog.get_logger(__name__)

REDACTED = "..."
FILTERED = "-"


def inspect_value(value: Any) -> str:
    """Render an argument for display.

    JSON notation is used so strings are double quoted and numbers appear as
    literals; values JSON cannot encode fall back to repr().
    """
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        return repr(value)


class MessageFormatter:
    """Builds the human readable lifecycle messages for a job.

    Attributes:
        config: Job logging settings
        registry: Worker registry used to resolve parameter names
    """

    def __init__(
        self,
        config: Optional[JobLoggingConfig] = None,
        registry: Optional[WorkerRegistry] = None,
    ):
        self.config = config or JobLoggingConfig()
        self.registry = registry if registry is not None else default_registry

    def start_job(self, job: Mapping[str, Any]) -> str:
        """Format the start job message.

        Args:
            job: Job descriptor

        Returns:
            Message like ``Start Sidekiq job MyWorker.perform(1, 2)``
        """
        return f"Start {self.config.job_label} job {self.job_info(job)}"

    def end_job(self, job: Mapping[str, Any], elapsed_time: float) -> str:
        """Format the end job message.

        Args:
            job: Job descriptor
            elapsed_time: Execution time in seconds
        """
        return f"Finished {self.config.job_label} job {self.job_info(job)} in {_ms(elapsed_time)}ms"

    def failed_job(self, job: Mapping[str, Any], error: BaseException, elapsed_time: float) -> str:
        """Format the failed job message.

        Args:
            job: Job descriptor
            error: Exception raised by the job
            elapsed_time: Execution time in seconds
        """
        return (
            f"Failed {self.config.job_label} job {self.job_info(job)} "
            f"due to {type(error).__name__} in {_ms(elapsed_time)}ms"
        )

    def job_info(self, job: Mapping[str, Any]) -> str:
        """Worker name with the invocation, or just the name if arguments are skipped."""
        if self.skip_logging_job_arguments:
            return str(self.worker_class(job))

        display_args = self.job_display_args(job)
        return f"{self.worker_class(job)}.{PERFORM_METHOD}({', '.join(display_args)})"

    def job_display_args(self, job: Mapping[str, Any]) -> list[str]:
        """Return the display form of each job argument.

        ``["foo", 12]`` is returned as ``['"foo"', '12']``, subject to the
        job's ``logging.args`` filter.
        """
        if self.skip_logging_job_arguments:
            return []
        if job.get("args") is None:
            return []

        args = job_args(job)
        args_filter = logging_options(job).get("args")

        if args_filter is True or args_filter is None:
            return [inspect_value(arg) for arg in args]
        if isinstance(args_filter, str):
            args_filter = [args_filter]
        if isinstance(args_filter, (list, tuple)):
            return self._filtered_args(job, args, [str(name) for name in args_filter])
        return [REDACTED]

    @property
    def skip_logging_job_arguments(self) -> bool:
        """True if job arguments should never be logged."""
        return self.config.skip_arguments

    def worker_class(self, job: Mapping[str, Any]) -> Optional[str]:
        """Worker name for display (``display_class`` > ``wrapped`` > ``class``)."""
        return worker_class(job)

    def _filtered_args(self, job: Mapping[str, Any], args: list[Any], allowed: list[str]) -> list[str]:
        name = target_class(job)
        try:
            arg_names = self.registry.argument_names(name, len(args))
        except WorkerResolutionError as e:
            logger.debug("job_arguments_redacted", worker=name, reason=str(e))
            return [REDACTED]

        return [
            inspect_value(arg) if arg_name in allowed else FILTERED
            for arg, arg_name in zip(args, arg_names)
        ]


def _ms(elapsed_time: float) -> float:
    return round(elapsed_time * 1000, 1)

