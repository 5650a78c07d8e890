# ============================================================================
# LIFECYCLE EVENT BUS
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Broker - Named-topic listener chains
# PURPOSE: Fire init/final lifecycle events and generic listener chains
# CREATED: 19 OCT 2026
# EXPORTS: ServiceEvent, EventBus, ListenerHandle
# ============================================================================
"""
Lifecycle Event Bus

A named-topic publish mechanism. Listeners are attached with a priority
and run sequentially on trigger:

- Priority descending, registration order ascending for ties
- Listeners attached to "*" run for every event name
- Every return value is appended to the ResponseCollection
- The chain stops when a listener stops propagation or its return value
  satisfies the trigger's until-predicate; the collection is then marked
  stopped

Usage:
    bus = EventBus()
    bus.attach("init.valu.test.run", lambda e: e.set_param("level", "none"))
    responses = bus.trigger("init.valu.test.run", ServiceEvent(command=command))
"""

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from core.models.command import Command, ParamKey
from core.models.responses import ResponseCollection

logger = logging.getLogger(__name__)

Listener = Callable[["ServiceEvent"], Any]
UntilPredicate = Callable[[Any], Any]

WILDCARD = "*"


# ============================================================================
# EVENT
# ============================================================================

class ServiceEvent:
    """
    Event passed to listeners.

    Carries the command being dispatched, a target (usually the broker)
    and a response slot filled for final events. Parameter access is
    delegated to the command so listeners can rewrite it in place.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        target: Any = None,
        command: Optional[Command] = None,
        params: Optional[Dict[ParamKey, Any]] = None,
    ):
        self.name = name
        self.target = target
        self.command = command
        self.responses: Optional[ResponseCollection] = None
        self._params: Dict[ParamKey, Any] = dict(params or {})
        self._propagation_stopped = False

    @property
    def params(self) -> Dict[ParamKey, Any]:
        if self.command is not None:
            return self.command.params
        return self._params

    def get_param(self, key: ParamKey, default: Any = None) -> Any:
        return self.params.get(key, default)

    def set_param(self, key: ParamKey, value: Any) -> None:
        self.params[key] = value

    def stop_propagation(self, flag: bool = True) -> None:
        """Abort the remaining listener chain."""
        self._propagation_stopped = bool(flag)

    def propagation_stopped(self) -> bool:
        return self._propagation_stopped

    def __repr__(self) -> str:
        return f"ServiceEvent(name={self.name!r}, command={self.command!r})"


# ============================================================================
# BUS
# ============================================================================

@dataclass(frozen=True)
class ListenerHandle:
    """Returned by attach(); pass to detach() to remove the listener."""
    event_name: str
    listener: Listener
    priority: int
    sequence: int


class EventBus:
    """
    Priority-ordered listener chains keyed by event name.

    Thread-safe for attach/detach; trigger runs listeners on a snapshot
    of the chain, outside the lock.
    """

    def __init__(self):
        self._listeners: Dict[str, List[ListenerHandle]] = {}
        self._sequence = itertools.count()
        self._lock = threading.RLock()

    def attach(self, event_name: str, listener: Listener, priority: int = 1) -> ListenerHandle:
        """
        Attach a listener.

        Args:
            event_name: Event name, or "*" for every event
            listener: Callable receiving the ServiceEvent
            priority: Higher runs earlier

        Returns:
            ListenerHandle for detach()
        """
        if not callable(listener):
            raise TypeError(f"Listener for '{event_name}' is not callable")

        with self._lock:
            handle = ListenerHandle(event_name, listener, priority, next(self._sequence))
            self._listeners.setdefault(event_name, []).append(handle)

        logger.debug(f"Attached listener to {event_name} (priority={priority})")
        return handle

    def detach(self, handle: ListenerHandle) -> bool:
        """Remove a listener. Returns False if it was not attached."""
        with self._lock:
            chain = self._listeners.get(handle.event_name, [])
            if handle not in chain:
                return False
            chain.remove(handle)
            if not chain:
                del self._listeners[handle.event_name]
        return True

    def clear_listeners(self, event_name: str) -> None:
        with self._lock:
            self._listeners.pop(event_name, None)

    def get_events(self) -> List[str]:
        with self._lock:
            return list(self._listeners)

    def get_listeners(self, event_name: str) -> List[ListenerHandle]:
        """Listeners that run for event_name, in execution order."""
        with self._lock:
            chain = list(self._listeners.get(event_name, []))
            if event_name != WILDCARD:
                chain.extend(self._listeners.get(WILDCARD, []))
        return sorted(chain, key=lambda h: (-h.priority, h.sequence))

    def has_listeners(self, event_name: str) -> bool:
        return bool(self.get_listeners(event_name))

    def trigger(
        self,
        event_name: str,
        event: Optional[ServiceEvent] = None,
        until: Optional[UntilPredicate] = None,
    ) -> ResponseCollection:
        """
        Run the listener chain for an event.

        Args:
            event_name: Event name
            event: Event object (created if omitted)
            until: Optional predicate evaluated on each listener response

        Returns:
            ResponseCollection of listener return values
        """
        if event is None:
            event = ServiceEvent()
        event.name = event_name

        responses = ResponseCollection()
        for handle in self.get_listeners(event_name):
            response = handle.listener(event)
            responses.push(response)

            if event.propagation_stopped():
                responses.set_stopped(True)
                break
            if until is not None and until(response):
                responses.set_stopped(True)
                break

        return responses


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ServiceEvent",
    "EventBus",
    "ListenerHandle",
    "WILDCARD",
]
