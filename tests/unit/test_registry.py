"""Tests for the worker registry."""

import pytest

from jobtrail.core.exceptions import WorkerResolutionError
from jobtrail.jobs.registry import WorkerRegistry


class StaticWorker:
    @staticmethod
    def perform(user_id, amount):
        pass


class ClassMethodWorker:
    @classmethod
    def perform(cls, user_id):
        pass


class KeywordWorker:
    def perform(self, user_id, *, notify=False):
        pass


class TestRegistration:
    """Tests for registering and resolving workers."""

    def test_resolve_registered_worker(self, registry: WorkerRegistry):
        """Test resolving a worker by its registered name."""
        assert registry.resolve("MyWorker").__name__ == "MyWorker"

    def test_register_as_decorator_with_name(self):
        """Test registering under an explicit name."""
        registry = WorkerRegistry()

        @registry.register(name="billing.Charge")
        class Charge:
            def perform(self, user_id):
                pass

        assert registry.resolve("billing.Charge") is Charge
        assert Charge.__name__ == "Charge"

    def test_unregister(self, registry: WorkerRegistry):
        """Test that unregistered workers can no longer be resolved."""
        registry.unregister("MyWorker")
        registry.unregister("NotRegistered")

        with pytest.raises(WorkerResolutionError) as exc_info:
            registry.resolve("MyWorker")

        assert exc_info.value.worker == "MyWorker"

    def test_resolve_import_path(self, registry: WorkerRegistry):
        """Test resolving an unregistered dotted path by importing it."""
        import json

        assert registry.resolve("json.dumps") is json.dumps

    def test_import_paths_disabled(self):
        """Test that dotted paths are not imported when disabled."""
        registry = WorkerRegistry(import_paths=False)

        with pytest.raises(WorkerResolutionError):
            registry.resolve("json.dumps")

    def test_module_failing_at_import(self, registry: WorkerRegistry, broken_worker_path):
        """Test that any error raised while importing a worker module is wrapped."""
        with pytest.raises(WorkerResolutionError) as exc_info:
            registry.resolve(broken_worker_path)

        assert exc_info.value.worker == broken_worker_path
        assert isinstance(exc_info.value.__cause__, RuntimeError)

        with pytest.raises(WorkerResolutionError):
            registry.argument_names(broken_worker_path, 2)

    @pytest.mark.parametrize(
        "name", ["", None, "Unknown", "no_such_module.Worker", "json.no_such_function"]
    )
    def test_unresolvable_names(self, registry: WorkerRegistry, name):
        """Test that unknown workers raise WorkerResolutionError."""
        with pytest.raises(WorkerResolutionError):
            registry.resolve(name)


class TestParameterNames:
    """Tests for reading the positional parameter names of workers."""

    def test_instance_method(self, registry: WorkerRegistry):
        """Test that self is excluded for perform instance methods."""
        assert registry.parameter_names("MyWorker") == (["arg1", "arg2", "arg3"], None)

    def test_function_worker(self, registry: WorkerRegistry):
        """Test a plain function worker."""
        assert registry.parameter_names("charge_card") == (["user_id", "amount"], None)

    def test_variadic_worker(self, registry: WorkerRegistry):
        """Test that the *args parameter is reported separately."""
        assert registry.parameter_names("VariadicWorker") == (["account"], "amounts")

    def test_static_and_class_methods(self, registry: WorkerRegistry):
        """Test that static and class methods expose only their own parameters."""
        registry.register(StaticWorker)
        registry.register(ClassMethodWorker)

        assert registry.parameter_names("StaticWorker") == (["user_id", "amount"], None)
        assert registry.parameter_names("ClassMethodWorker") == (["user_id"], None)

    def test_keyword_only_parameters_ignored(self, registry: WorkerRegistry):
        """Test that keyword-only parameters never bind positional arguments."""
        registry.register(KeywordWorker)

        assert registry.parameter_names("KeywordWorker") == (["user_id"], None)

    def test_imported_function(self, registry: WorkerRegistry):
        """Test inspecting a function resolved from an import path."""
        assert registry.parameter_names("json.dumps") == (["obj"], None)

    def test_class_without_perform(self, registry: WorkerRegistry):
        """Test that a class without perform cannot be inspected."""
        with pytest.raises(WorkerResolutionError):
            registry.parameter_names("collections.OrderedDict")


class TestArgumentNames:
    """Tests for mapping argument positions to parameter names."""

    def test_extra_arguments_are_unnamed(self, registry: WorkerRegistry):
        """Test that positions past the parameters have no name."""
        assert registry.argument_names("charge_card", 3) == ["user_id", "amount", None]

    def test_fewer_arguments(self, registry: WorkerRegistry):
        """Test that only the given number of positions is named."""
        assert registry.argument_names("MyWorker", 2) == ["arg1", "arg2"]

    def test_variadic_names_remaining_positions(self, registry: WorkerRegistry):
        """Test that *args names every position past the named parameters."""
        assert registry.argument_names("VariadicWorker", 3) == ["account", "amounts", "amounts"]
