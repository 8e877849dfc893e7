"""Shared pytest fixtures for all tests."""

import logging
import sys

import pytest
import structlog
from structlog.testing import capture_logs

from jobtrail.common.config import JobLoggingConfig
from jobtrail.jobs import JobLogger, WorkerRegistry
from jobtrail.tags import TagContext, TaggedLogger


class MyWorker:
    """Worker used by tests that filter arguments by parameter name."""

    def perform(self, arg1, arg2, arg3):
        pass


class VariadicWorker:
    """Worker taking a variable number of arguments."""

    def perform(self, account, *amounts):
        pass


def charge_card(user_id, amount):
    """Function worker."""


@pytest.fixture(autouse=True)
def reset_structlog():
    """Reset structlog configuration and context variables around each test."""
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def broken_worker_path(tmp_path, monkeypatch):
    """Provide the dotted path of a worker whose module raises at import time."""
    package = tmp_path / "broken_workers"
    package.mkdir()
    (package / "__init__.py").write_text("", encoding="utf-8")
    (package / "charge.py").write_text(
        'raise RuntimeError("worker module failed to import")\n'
        "\n"
        "class ChargeCard:\n"
        "    def perform(self, user_id, amount):\n"
        "        pass\n",
        encoding="utf-8",
    )
    monkeypatch.syspath_prepend(str(tmp_path))
    yield "broken_workers.charge.ChargeCard"
    sys.modules.pop("broken_workers.charge", None)
    sys.modules.pop("broken_workers", None)


@pytest.fixture
def registry() -> WorkerRegistry:
    """Provide a worker registry with the test workers registered."""
    registry = WorkerRegistry()
    registry.register(MyWorker)
    registry.register(VariadicWorker)
    registry.register(charge_card)
    return registry


@pytest.fixture
def tag_context() -> TagContext:
    """Provide an isolated tag context."""
    return TagContext()


@pytest.fixture
def tagged_logger(tag_context: TagContext) -> TaggedLogger:
    """Provide a tagged logger using an isolated tag context."""
    return TaggedLogger("tests", context=tag_context)


@pytest.fixture
def job_config() -> JobLoggingConfig:
    """Provide default job logging settings."""
    return JobLoggingConfig()


@pytest.fixture
def job_logger(
    tagged_logger: TaggedLogger,
    job_config: JobLoggingConfig,
    registry: WorkerRegistry,
) -> JobLogger:
    """Provide a job logger writing to the tagged logger."""
    return JobLogger(tagged_logger, config=job_config, registry=registry)


@pytest.fixture
def job() -> dict:
    """Provide a sample job descriptor."""
    return {"class": "MyWorker", "args": [1, 2, 3], "jid": "12345"}


@pytest.fixture
def log_entries():
    """Capture structlog events emitted during the test."""
    with capture_logs() as entries:
        yield entries


@pytest.fixture
def plain_logger() -> logging.Logger:
    """Provide a standard library logger without tag support."""
    return logging.getLogger("tests.plain")


@pytest.fixture
def lifecycle_records(log_entries):
    """Provide a callable returning the captured job lifecycle records."""

    def records() -> list[dict]:
        return [
            entry
            for entry in log_entries
            if entry["event"].startswith(("Start ", "Finished ", "Failed "))
        ]

    return records
