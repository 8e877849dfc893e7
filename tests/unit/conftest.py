"""Fixtures specific to unit tests."""

import pytest

from jobtrail.jobs import MessageFormatter, TagPassthroughMiddleware, WorkerRegistry
from jobtrail.common.config import JobLoggingConfig
from jobtrail.tags import TaggedLogger


@pytest.fixture
def formatter(job_config: JobLoggingConfig, registry: WorkerRegistry) -> MessageFormatter:
    """Provide a message formatter with the test workers registered."""
    return MessageFormatter(job_config, registry=registry)


@pytest.fixture
def middleware(tagged_logger: TaggedLogger) -> TagPassthroughMiddleware:
    """Provide a passthrough middleware for user_id and request_id."""
    return TagPassthroughMiddleware("user_id", "request_id", logger=tagged_logger)
