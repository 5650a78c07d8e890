# ============================================================================
# SERVICE LOADER
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Broker - Registry of implementation descriptors
# PURPOSE: Resolve service names to ordered, lazily built implementations
# CREATED: 19 OCT 2026
# EXPORTS: ServiceLoader
# ============================================================================
"""
Service Loader

Maps service names to ordered implementation descriptors and resolves
them to live instances on demand.

Design:
- Descriptor ids are unique; service names are shared dispatch keys
- Order: priority descending, registration order ascending for ties
- Instances are built lazily and cached per descriptor id (double-checked
  under a lock) unless the descriptor is non-shared
- Descriptors without a source resolve through the container, then peers
- Service names with no local descriptor resolve through peers, tried in
  the order they were added

Usage:
    loader = ServiceLoader()
    loader.register("fs.local", "Filesystem.File", LocalFileService, priority=10)
    loader.register("fs.remote", "Filesystem.File", RemoteFileService)
    implementations = loader.resolve("Filesystem.File")
"""

import itertools
import threading
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional

from core.config.defaults import LoaderDefaults, get_defaults
from core.contracts import is_valid_service_id, is_valid_service_name
from core.errors import (
    ConfigurationError,
    InvalidServiceError,
    NotFoundError,
    ServiceNotFoundError,
)
from core.logging import ComponentType, get_logger
from core.models.descriptor import (
    CREATING_SOURCES,
    ServiceDescriptor,
    coerce_source,
    import_object,
    source_for,
)
from broker.container import ServiceContainer

logger = get_logger(__name__, ComponentType.LOADER)

Initializer = Callable[[Any], None]

# Source keys in registration specs, highest precedence first
_SOURCE_KEYS = ("service", "factory", "class")


class ServiceLoader:
    """
    Registry/Loader for service implementations.

    Peers are any objects exposing load(id), resolve(name) and
    exists(name) with the same case-sensitivity rules.
    """

    def __init__(
        self,
        options: Optional[Mapping] = None,
        defaults: Optional[LoaderDefaults] = None,
    ):
        self._defaults = defaults or get_defaults().loader
        self._descriptors: Dict[str, ServiceDescriptor] = {}
        self._instances: Dict[str, Any] = {}
        self._peers: List[Any] = []
        self._initializers: List[Initializer] = []
        self._container = ServiceContainer()
        self._sequence = itertools.count()
        self._lock = threading.RLock()

        if options:
            self.set_options(options)

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def set_options(self, options: Mapping) -> None:
        """
        Configure the loader from a mapping.

        Keys:
            container: ServiceContainer or container configuration mapping
            services: Registration specs (see register_many)
            peers: List of peer registries (objects or import paths)

        Raises:
            ConfigurationError: On unknown keys
        """
        unknown = set(options) - {"container", "services", "peers"}
        if unknown:
            raise ConfigurationError(
                "Unknown loader options: %KEYS%", {"KEYS": ", ".join(sorted(unknown))}
            )

        container = options.get("container")
        if isinstance(container, ServiceContainer):
            self.set_container(container)
        elif container:
            self.configure_container(container)

        for peer in options.get("peers") or []:
            self.add_peer(import_object(peer) if isinstance(peer, str) else peer)

        if options.get("services"):
            self.register_many(options["services"])

    @property
    def container(self) -> ServiceContainer:
        return self._container

    def set_container(self, container: ServiceContainer) -> None:
        with self._lock:
            self._container = container
            self._drop_sourceless_instances()

    def configure_container(self, config: Mapping) -> None:
        """Apply invokables/factories/services/shared to the container."""
        with self._lock:
            self._container.configure(config)
            self._drop_sourceless_instances()

    def _drop_sourceless_instances(self) -> None:
        for descriptor in self._descriptors.values():
            if descriptor.source is None:
                self._instances.pop(descriptor.id, None)

    def add_peer(self, peer: Any) -> None:
        """
        Append a fallback registry.

        Raises:
            ConfigurationError: If the peer lacks load/resolve/exists
        """
        missing = [m for m in ("load", "resolve", "exists") if not callable(getattr(peer, m, None))]
        if missing:
            raise ConfigurationError(
                "Peer registry %PEER% is missing %METHODS%",
                {"PEER": type(peer).__name__, "METHODS": ", ".join(missing)},
            )
        with self._lock:
            self._peers.append(peer)
        logger.debug(f"Added peer registry {type(peer).__name__}")

    add_peering_registry = add_peer

    @property
    def peers(self) -> List[Any]:
        return list(self._peers)

    def add_initializer(self, initializer: Initializer) -> None:
        """Run initializer on every newly created instance, before caching."""
        if not callable(initializer):
            raise TypeError("Initializer must be callable")
        self._initializers.append(initializer)

    def _initialize(self, instance: Any) -> None:
        for initializer in self._initializers:
            initializer(instance)

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def register(
        self,
        service_id: str,
        name: str,
        source: Any = None,
        options: Optional[Dict[str, Any]] = None,
        priority: Optional[int] = None,
        shared: Optional[bool] = None,
    ) -> ServiceDescriptor:
        """
        Register one implementation.

        Args:
            service_id: Unique descriptor id (case-sensitive)
            name: Service name the implementation answers to
            source: Class, factory source, instance, callable, import path,
                or None to resolve through the container/peers by id
            options: Passed to class constructors and factories
            priority: Higher runs earlier (default 1)
            shared: Cache the built instance (default True)

        Returns:
            The stored ServiceDescriptor

        Raises:
            InvalidServiceError: If id or name is empty or malformed
        """
        if not is_valid_service_id(service_id):
            raise InvalidServiceError("Service ID '%ID%' is not valid", {"ID": service_id})
        if not is_valid_service_name(name):
            raise InvalidServiceError("Service name '%NAME%' is not valid", {"NAME": name})

        if isinstance(source, str):
            source = import_object(source)
        if source is not None:
            source = source_for(source)

        with self._lock:
            existing = self._descriptors.get(service_id)
            sequence = existing.sequence if existing else next(self._sequence)
            descriptor = ServiceDescriptor(
                id=service_id,
                name=name,
                source=source,
                options=dict(options) if options is not None else None,
                priority=self._defaults.default_priority if priority is None else int(priority),
                shared=self._defaults.shared_by_default if shared is None else bool(shared),
                sequence=sequence,
            )
            self._descriptors[service_id] = descriptor
            self._instances.pop(service_id, None)

        logger.debug(
            f"Registered {service_id} for {name} "
            f"(source={descriptor.source_kind}, priority={descriptor.priority})"
        )
        return descriptor

    def register_many(self, services: Mapping) -> List[ServiceDescriptor]:
        """
        Register several implementations.

        Each value is either a bare service name, or a mapping with
        "name" and optionally "service", "factory", "class", "options",
        "priority" and "shared". When several sources are given, service
        wins over factory, factory over class.
        """
        registered = []
        for service_id, entry in services.items():
            if isinstance(entry, str):
                registered.append(self.register(service_id, entry))
                continue

            if not isinstance(entry, Mapping):
                raise InvalidServiceError(
                    "Invalid definition for service '%ID%'", {"ID": service_id}
                )

            source = None
            for key in _SOURCE_KEYS:
                if entry.get(key) is not None:
                    source = coerce_source(key, entry[key])
                    break

            registered.append(self.register(
                service_id,
                entry.get("name", ""),
                source,
                options=entry.get("options"),
                priority=entry.get("priority"),
                shared=entry.get("shared"),
            ))
        return registered

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def get_descriptor(self, service_id: str) -> Optional[ServiceDescriptor]:
        return self._descriptors.get(service_id)

    def get_service_options(self, service_id: str) -> Optional[Dict[str, Any]]:
        descriptor = self._descriptors.get(service_id)
        return descriptor.options if descriptor else None

    def service_ids(self) -> List[str]:
        with self._lock:
            return list(self._descriptors)

    def service_names(self) -> List[str]:
        with self._lock:
            return sorted({d.name for d in self._descriptors.values()})

    def descriptors_for(self, name: str) -> List[ServiceDescriptor]:
        """Local descriptors for a service name, in dispatch order."""
        with self._lock:
            matches = [d for d in self._descriptors.values() if d.name == name]
        return sorted(matches, key=lambda d: d.sort_key)

    # =========================================================================
    # RESOLUTION
    # =========================================================================

    def exists(self, name: str) -> bool:
        """True if resolve(name) would yield at least one implementation."""
        if self.descriptors_for(name):
            return True
        return any(peer.exists(name) for peer in self._peers)

    def load(self, service_id: str) -> Any:
        """
        Get the live instance for a descriptor id.

        Raises:
            ServiceNotFoundError: If the id is unknown locally and no peer
                resolves it (lookup is case-sensitive)
        """
        descriptor = self._descriptors.get(service_id)
        if descriptor is None:
            return self._load_from_peers(service_id)

        # Container and peers own sharing for descriptors without a source
        if descriptor.source is None or not descriptor.shared:
            return self._instantiate(descriptor)

        instance = self._instances.get(service_id)
        if instance is not None:
            return instance

        with self._lock:
            # Double-checked: another thread may have built it
            if service_id in self._instances:
                return self._instances[service_id]
            instance = self._instantiate(descriptor)
            self._instances[service_id] = instance
            return instance

    def resolve(self, name: str) -> List[Any]:
        """
        Get live implementations of a service, in dispatch order.

        Raises:
            ServiceNotFoundError: If no local descriptor or peer answers
        """
        descriptors = self.descriptors_for(name)
        if descriptors:
            return [self.load(d.id) for d in descriptors]

        for peer in self._peers:
            if peer.exists(name):
                implementations = list(peer.resolve(name))
                if implementations:
                    logger.debug(f"Resolved {name} through peer {type(peer).__name__}")
                    return implementations

        raise ServiceNotFoundError("Service '%SERVICE%' not found", {"SERVICE": name})

    def attach_listeners(self, event_bus, name: str) -> list:
        """
        Attach every implementation of a service to an event bus.

        Triggering the event ``name`` then runs the implementations in
        dispatch order. Each listener passes the event's command when one
        is set, else the event itself.

        Returns:
            Listener handles
        """
        handles = []
        descriptors = self.descriptors_for(name)
        if descriptors:
            pairs = [(self.load(d.id), d.priority) for d in descriptors]
        else:
            pairs = [(impl, self._defaults.default_priority) for impl in self.resolve(name)]

        for implementation, priority in pairs:
            handles.append(event_bus.attach(name, _as_listener(implementation), priority))
        return handles

    def _instantiate(self, descriptor: ServiceDescriptor) -> Any:
        source = descriptor.source

        if source is None:
            if self._container.has(descriptor.id):
                return self._container.get(descriptor.id, on_create=self._initialize)
            return self._load_from_peers(descriptor.id)

        instance = source.build(descriptor.options)
        if isinstance(source, CREATING_SOURCES):
            self._initialize(instance)
            logger.debug(f"Instantiated {descriptor.id} ({type(instance).__name__})")
        return instance

    def _load_from_peers(self, service_id: str) -> Any:
        for peer in self._peers:
            try:
                return peer.load(service_id)
            except NotFoundError:
                continue
        raise ServiceNotFoundError("Service '%ID%' not found", {"ID": service_id})


def _as_listener(implementation: Any):
    def listener(event):
        target = event.command if event.command is not None else event
        return implementation(target)
    return listener


__all__ = ["ServiceLoader"]
