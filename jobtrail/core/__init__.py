"""Core exception types shared across jobtrail."""

from .exceptions import InvalidLogLevelError, JobTrailError, WorkerResolutionError

__all__ = [
    "InvalidLogLevelError",
    "JobTrailError",
    "WorkerResolutionError",
]
