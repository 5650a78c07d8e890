# ============================================================================
# SERVICE BROKER
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Broker - Dispatch state machine
# PURPOSE: Run commands through init event, implementation chain, final event
# CREATED: 19 OCT 2026
# EXPORTS: ServiceBroker
# ============================================================================
"""
Service Broker

Dispatch state machine:

    BUILT -> INIT -> EXECUTING -> FINALIZED
                  -> ABORTED    init listener returned False or stopped propagation
    any   -> FAILED             error propagated to the caller

Flow of dispatch(command, until):
    1. Fill context/identity defaults, lock service and operation
    2. Fire init.<service>.<operation>; listeners may rewrite params
    3. Resolve implementations through the loader
    4. Invoke each with the command; stop when until(response) is truthy
    5. Fire final.<service>.<operation> (observation only)
    6. Return the ResponseCollection

The broker never catches implementation, loader or queue errors. It does
not retry; resiliency belongs to the queue side.
"""

from collections.abc import Mapping
from typing import Any, Callable, Dict, Optional

from core.config.defaults import BrokerDefaults, get_defaults
from core.contracts import DispatchState, context_value, event_name
from core.errors import (
    ConfigurationError,
    InvalidServiceError,
    OperationNotFoundError,
    ServiceNotFoundError,
)
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models.command import Command
from core.models.queue_job import ServiceJob
from core.models.responses import ResponseCollection
from broker.events import EventBus, ServiceEvent
from broker.loader import ServiceLoader
from broker.worker import Worker
from messaging.bridge import QueueBridge

logger = get_logger(__name__, ComponentType.BROKER)

UntilPredicate = Callable[[Any], Any]

_OPTION_KEYS = (
    "loader",
    "event_bus",
    "queue_manager",
    "default_context",
    "default_identity",
    "default_queue_name",
)


def _init_stops(response: Any) -> bool:
    return response is False


class ServiceBroker:
    """
    Dispatches commands to every implementation of a service.

    Attributes:
        loader: ServiceLoader resolving service names
        event_bus: EventBus for init/final lifecycle events
        default_context: Applied to commands without a context
        default_identity: Applied to commands without an identity
        queue_manager: Named queue registry used by queue()
        default_queue_name: Queue used when queue() gets no queue_name
    """

    QUEUE_OPTION_NAME = QueueBridge.QUEUE_OPTION_NAME

    def __init__(
        self,
        loader: Optional[ServiceLoader] = None,
        event_bus: Optional[EventBus] = None,
        queue_manager=None,
        default_context: Optional[str] = None,
        default_identity: Any = None,
        default_queue_name: Optional[str] = None,
        defaults: Optional[BrokerDefaults] = None,
    ):
        defaults = defaults or get_defaults().broker
        self.loader = loader or ServiceLoader()
        self.event_bus = event_bus or EventBus()
        self._default_context = context_value(default_context or defaults.default_context)
        self.default_identity = default_identity
        self._bridge = QueueBridge(
            queue_manager=queue_manager,
            default_queue_name=default_queue_name or defaults.default_queue_name,
        )

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    @property
    def default_context(self) -> str:
        return self._default_context

    @default_context.setter
    def default_context(self, value) -> None:
        self._default_context = context_value(value)

    @property
    def bridge(self) -> QueueBridge:
        return self._bridge

    @property
    def queue_manager(self):
        return self._bridge.queue_manager

    @queue_manager.setter
    def queue_manager(self, manager) -> None:
        self._bridge.queue_manager = manager

    @property
    def default_queue_name(self) -> Optional[str]:
        return self._bridge.default_queue_name

    @default_queue_name.setter
    def default_queue_name(self, name: Optional[str]) -> None:
        self._bridge.default_queue_name = name

    def set_options(self, options: Mapping) -> None:
        """
        Set several properties at once.

        Raises:
            ConfigurationError: On unknown keys
        """
        unknown = set(options) - set(_OPTION_KEYS)
        if unknown:
            raise ConfigurationError(
                "Unknown broker options: %KEYS%", {"KEYS": ", ".join(sorted(unknown))}
            )
        for key in _OPTION_KEYS:
            if key in options:
                setattr(self, key, options[key])

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    def exists(self, service: str) -> bool:
        return self.loader.exists(service)

    def service(self, service: str) -> Worker:
        """Fluent builder for one service."""
        return Worker(self, service)

    def execute(
        self,
        service: str,
        operation: str,
        params: Any = None,
        until: Optional[UntilPredicate] = None,
    ) -> ResponseCollection:
        """Dispatch in the default context."""
        return self.execute_in_context(self._default_context, service, operation, params, until)

    def execute_in_context(
        self,
        context: str,
        service: str,
        operation: str,
        params: Any = None,
        until: Optional[UntilPredicate] = None,
    ) -> ResponseCollection:
        """Dispatch in an explicit context, with the default identity."""
        command = Command(service, operation, params, context=context, identity=self.default_identity)
        return self.dispatch(command, until)

    def queue(self, command: Command, options: Optional[Mapping] = None) -> ServiceJob:
        """
        Enqueue a command for asynchronous dispatch.

        Args:
            command: Command to serialize
            options: queue_name (alternative queue), priority

        Returns:
            ServiceJob handle from the queue backend

        Raises:
            ConfigurationError: Without a queue manager or queue name
        """
        self.prepare_command(command)
        return self._bridge.enqueue(command, options)

    enqueue = queue

    def prepare_command(self, command: Command) -> Command:
        """Fill context and identity from broker defaults when missing."""
        if command.context is None:
            command.context = self._default_context
        if command.identity is None:
            command.identity = self.default_identity
        return command

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def dispatch(self, command: Command, until: Optional[UntilPredicate] = None) -> ResponseCollection:
        """
        Run a command through the full dispatch state machine.

        Args:
            command: Command to dispatch
            until: Optional predicate; a truthy result on an implementation's
                response stops the chain and marks the collection stopped

        Returns:
            ResponseCollection in implementation order

        Raises:
            ServiceNotFoundError: No implementation answers the service
            OperationNotFoundError: Command has no operation
            Any error raised by an implementation, unchanged
        """
        if not command.service:
            raise ServiceNotFoundError("Command does not define a service")
        if not command.operation:
            raise OperationNotFoundError(
                "Command for %SERVICE% does not define an operation", {"SERVICE": command.service}
            )

        self.prepare_command(command)
        command.lock()

        with log_context(
            service=command.service,
            operation=command.operation,
            context=command.context,
        ):
            try:
                return self._run(command, until)
            except Exception:
                self._transition(command, DispatchState.FAILED)
                raise

    def _run(self, command: Command, until: Optional[UntilPredicate]) -> ResponseCollection:
        init_name = event_name("init", command.service, command.operation)
        self._transition(command, DispatchState.INIT)

        init_responses = self.event_bus.trigger(
            init_name,
            ServiceEvent(init_name, target=self, command=command),
            until=_init_stops,
        )
        if init_responses.stopped:
            self._transition(command, DispatchState.ABORTED)
            log_checkpoint("dispatch_aborted", {"event": init_name}, logger=logger.logger)
            return ResponseCollection(stopped=True)

        self._transition(command, DispatchState.EXECUTING)
        implementations = self.loader.resolve(command.service)
        if not implementations:
            raise ServiceNotFoundError("Service '%SERVICE%' not found", {"SERVICE": command.service})

        responses = ResponseCollection()
        for implementation in implementations:
            if not callable(implementation):
                raise InvalidServiceError(
                    "Implementation %TYPE% of %SERVICE% is not callable",
                    {"TYPE": type(implementation).__name__, "SERVICE": command.service},
                )
            response = implementation(command)
            responses.push(response)
            if until is not None and until(response):
                responses.set_stopped(True)
                break

        final_name = event_name("final", command.service, command.operation)
        final_event = ServiceEvent(final_name, target=self, command=command)
        final_event.responses = responses
        self.event_bus.trigger(final_name, final_event)

        self._transition(command, DispatchState.FINALIZED)
        logger.debug(
            f"Dispatched to {responses.count()}/{len(implementations)} implementations"
            f"{' (stopped)' if responses.stopped else ''}"
        )
        return responses

    def _transition(self, command: Command, state: DispatchState) -> None:
        logger.debug(f"{command.state.value} -> {state.value}")
        command.state = state

    def describe(self) -> Dict[str, Any]:
        """Summary of broker configuration, for diagnostics."""
        return {
            "default_context": self._default_context,
            "default_queue_name": self.default_queue_name,
            "queues": self.queue_manager.names() if self.queue_manager is not None else [],
            "services": self.loader.service_names(),
        }


__all__ = ["ServiceBroker"]
