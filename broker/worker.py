# ============================================================================
# SERVICE WORKER (FLUENT BUILDER)
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Broker - Fluent command builder for one service
# PURPOSE: Build commands with context/identity/until and dispatch or queue
# CREATED: 19 OCT 2026
# EXPORTS: Worker
# ============================================================================
"""
Service Worker

Fluent builder returned by ServiceBroker.service(name):

    broker.service("Filesystem.File").context("cli").until_true().exec("delete", ["/tmp/x"])
    broker.service("Filesystem.File").queue("copy", {"source": a, "target": b})

Attribute calls are sugar for "run until the first implementation returns
something other than None, and return that value":

    broker.service("User").find_by("email", email="a@b.c")
"""

from collections.abc import Mapping
from typing import Any, Callable, Optional

from core.models.command import Command, normalize_params


def _until_true(response: Any) -> bool:
    return response is True


def _until_false(response: Any) -> bool:
    return response is False


def _first_result(response: Any) -> bool:
    return response is not None


class Worker:
    """Builds and dispatches commands for a single service."""

    def __init__(self, broker, service: str):
        self._broker = broker
        self._service = service
        self._until: Optional[Callable[[Any], Any]] = None
        self._args: Any = None
        self._context: Optional[str] = None
        self._identity: Any = None

    @property
    def service_name(self) -> str:
        return self._service

    def context(self, context) -> "Worker":
        self._context = context
        return self

    def identity(self, identity: Any) -> "Worker":
        self._identity = identity
        return self

    def until(self, callback: Optional[Callable[[Any], Any]]) -> "Worker":
        self._until = callback
        return self

    def until_true(self) -> "Worker":
        """Stop at the first response that is exactly True."""
        return self.until(_until_true)

    def until_false(self) -> "Worker":
        """Stop at the first response that is exactly False."""
        return self.until(_until_false)

    def args(self, args: Any) -> "Worker":
        """Default params used when exec/queue get none."""
        self._args = args
        return self

    def exec(self, operation: str, args: Any = None):
        """Dispatch the operation and return the ResponseCollection."""
        command = self._prepare_command(operation, args)
        return self._broker.dispatch(command, self._until)

    def queue(self, operation: str, args: Any = None, options: Optional[Mapping] = None):
        """Enqueue the operation and return the job handle."""
        command = self._prepare_command(operation, args)
        return self._broker.queue(command, options)

    def call(self, operation: str, *args, **kwargs) -> Any:
        """
        Dispatch and return the first non-None response.

        Positional arguments become index params; keyword arguments are
        merged in by name.
        """
        params = normalize_params(list(args))
        params.update(kwargs)
        command = self._prepare_command(operation, params)
        responses = self._broker.dispatch(command, _first_result)
        return responses.last() if responses.stopped else None

    def __getattr__(self, operation: str):
        if operation.startswith("_"):
            raise AttributeError(operation)

        def invoke(*args, **kwargs):
            return self.call(operation, *args, **kwargs)
        return invoke

    def _prepare_command(self, operation: str, args: Any) -> Command:
        if not args:
            args = self._args
        return Command(
            self._service,
            operation,
            args,
            context=self._context or self._broker.default_context,
            identity=self._identity if self._identity is not None else self._broker.default_identity,
        )


__all__ = ["Worker"]
