"""Worker registry used to look up the parameter names of a job's worker.

Workers are registered explicitly, or resolved lazily from a dotted import
path such as ``myapp.workers.ChargeCard``. A worker is either a class with a
``perform`` method or a plain function.

Example:
    >>> from jobtrail.jobs.registry import WorkerRegistry
    >>> registry = WorkerRegistry()
    >>> @registry.register
    ... class ChargeCard:
    ...     def perform(self, user_id, amount):
    ...         ...
    >>> registry.argument_names("ChargeCard", 3)
    ['user_id', 'amount', None]
"""

import importlib
import inspect
from collections.abc import Callable
from typing import Any, Optional

import structlog

from jobtrail.core.exceptions import WorkerResolutionError

logger = structlog.get_logger(__name__)

PERFORM_METHOD = "perform"

_POSITIONAL_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


class WorkerRegistry:
    """Maps worker names to worker classes or functions.

    Attributes:
        workers: Explicitly registered workers by name
        import_paths: Whether unregistered dotted names may be imported
    """

    def __init__(self, import_paths: bool = True) -> None:
        self.workers: dict[str, Any] = {}
        self.import_paths = import_paths

    def register(self, worker: Any = None, *, name: Optional[str] = None) -> Any:
        """Register a worker class or function.

        Can be used directly or as a decorator, with or without a name.

        Args:
            worker: Worker class or function
            name: Name the worker appears under in job descriptors
                (defaults to its ``__name__``)

        Returns:
            The worker, unchanged, or a decorator when called without one
        """
        if worker is None:
            return lambda w: self.register(w, name=name)

        key = name or worker.__name__
        self.workers[key] = worker
        logger.debug("worker_registered", worker=key)
        return worker

    def unregister(self, name: str) -> None:
        """Remove a registered worker, ignoring unknown names."""
        self.workers.pop(name, None)

    def resolve(self, name: Optional[str]) -> Any:
        """Find the worker registered or importable under a name.

        Raises:
            WorkerResolutionError: If the worker cannot be found
        """
        if not name or not isinstance(name, str):
            raise WorkerResolutionError(f"Invalid worker name: {name!r}", worker=name)

        if name in self.workers:
            return self.workers[name]

        module_name, _, attr = name.rpartition(".")
        if not self.import_paths or not module_name:
            raise WorkerResolutionError(f"Unknown worker: {name}", worker=name)

        try:
            module = importlib.import_module(module_name)
            return getattr(module, attr)
        except Exception as e:
            # Worker modules may fail at import time with any error
            raise WorkerResolutionError(f"Cannot import worker {name}: {e}", worker=name) from e

    def perform_callable(self, name: Optional[str]) -> Callable[..., Any]:
        """Return the entry point invoked for a worker, unbound for classes.

        Raises:
            WorkerResolutionError: If the worker cannot be found or has no
                callable ``perform``
        """
        worker = self.resolve(name)

        if inspect.isclass(worker):
            perform = getattr(worker, PERFORM_METHOD, None)
            if not callable(perform):
                raise WorkerResolutionError(
                    f"Worker {name} does not define {PERFORM_METHOD}()", worker=name
                )
            return perform

        if inspect.isfunction(worker) or inspect.ismethod(worker):
            return worker

        raise WorkerResolutionError(f"Worker {name} is not a class or function", worker=name)

    def parameter_names(self, name: Optional[str]) -> tuple[list[str], Optional[str]]:
        """Return the names of the positional parameters of a worker's entry point.

        ``self`` and ``cls`` are excluded.

        Returns:
            Tuple of the named positional parameters and the name of the
            ``*args`` parameter (None if the entry point has none)

        Raises:
            WorkerResolutionError: If the worker cannot be resolved or its
                signature cannot be inspected
        """
        entry_point = self.perform_callable(name)
        worker = self.resolve(name)

        try:
            signature = inspect.signature(entry_point)
        except (TypeError, ValueError) as e:
            raise WorkerResolutionError(
                f"Cannot inspect signature of {name}: {e}", worker=name
            ) from e

        parameters = list(signature.parameters.values())
        # Plain functions defined on a class still take the instance first
        if inspect.isclass(worker) and inspect.isfunction(
            inspect.getattr_static(worker, PERFORM_METHOD, None)
        ):
            parameters = parameters[1:]

        names, variadic = [], None
        for parameter in parameters:
            if parameter.kind in _POSITIONAL_KINDS:
                names.append(parameter.name)
            else:
                if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
                    variadic = parameter.name
                break
        return names, variadic

    def argument_names(self, name: Optional[str], count: int) -> list[Optional[str]]:
        """Name the parameter each of ``count`` positional arguments binds to.

        Arguments past the named parameters bind to ``*args`` when the entry
        point has one, otherwise their name is None.

        Raises:
            WorkerResolutionError: If the worker cannot be resolved
        """
        names, variadic = self.parameter_names(name)
        return [names[index] if index < len(names) else variadic for index in range(count)]


default_registry = WorkerRegistry()


def register_worker(worker: Any = None, *, name: Optional[str] = None) -> Any:
    """Register a worker with the default registry."""
    return default_registry.register(worker, name=name)
