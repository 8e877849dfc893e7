"""Exceptions for job logging."""

from typing import Any, Optional


class JobTrailError(Exception):
    """Base exception for jobtrail errors."""

    pass


class WorkerResolutionError(JobTrailError):
    """Raised when a worker name cannot be resolved to an invocable entry point."""

    def __init__(self, message: str, worker: Optional[str] = None):
        super().__init__(message)
        self.worker = worker


class InvalidLogLevelError(JobTrailError):
    """Raised when a log level name or number is not recognized."""

    def __init__(self, message: str, level: Optional[Any] = None):
        super().__init__(message)
        self.level = level
