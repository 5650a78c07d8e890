# ============================================================================
# SERVICE CONTAINER
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Broker - Dependency-injection fallback keyed by id
# PURPOSE: Build implementations for descriptors registered without a source
# CREATED: 19 OCT 2026
# EXPORTS: ServiceContainer
# ============================================================================
"""
Service Container

Minimal id-keyed container used by the loader when a descriptor has no
explicit source. Configuration shape:

    invokables: {id: class or "module:Class"}
    factories:  {id: callable or "module:callable"}
    services:   {id: instance}
    shared:     {id: bool}

Invokables are instantiated without arguments; factories are called
without arguments. Created instances are cached unless marked non-shared.

A container also satisfies the peering protocol (load/resolve/exists),
answering service names that match its own ids.
"""

import logging
import threading
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional

from core.errors import ConfigurationError, ServiceNotFoundError
from core.models.descriptor import import_object

logger = logging.getLogger(__name__)

_CONFIG_KEYS = ("invokables", "factories", "services", "shared")


class ServiceContainer:
    """Id-keyed object container with shared-instance caching."""

    def __init__(self, config: Optional[Mapping] = None):
        self._invokables: Dict[str, Any] = {}
        self._factories: Dict[str, Any] = {}
        self._services: Dict[str, Any] = {}
        self._shared: Dict[str, bool] = {}
        self._lock = threading.RLock()
        if config:
            self.configure(config)

    def configure(self, config: Mapping) -> None:
        """
        Apply a configuration mapping.

        Raises:
            ConfigurationError: On unknown keys
        """
        unknown = set(config) - set(_CONFIG_KEYS)
        if unknown:
            raise ConfigurationError(
                "Unknown container configuration keys: %KEYS%",
                {"KEYS": ", ".join(sorted(unknown))},
            )

        for service_id, cls in (config.get("invokables") or {}).items():
            self.set_invokable(service_id, cls)
        for service_id, factory in (config.get("factories") or {}).items():
            self.set_factory(service_id, factory)
        for service_id, instance in (config.get("services") or {}).items():
            self.set_service(service_id, instance)
        for service_id, flag in (config.get("shared") or {}).items():
            self.set_shared(service_id, flag)

    def set_invokable(self, service_id: str, cls: Any) -> None:
        with self._lock:
            self._invokables[service_id] = cls
            self._services.pop(service_id, None)

    def set_factory(self, service_id: str, factory: Any) -> None:
        with self._lock:
            self._factories[service_id] = factory
            self._services.pop(service_id, None)

    def set_service(self, service_id: str, instance: Any) -> None:
        with self._lock:
            self._services[service_id] = instance

    def set_shared(self, service_id: str, flag: bool) -> None:
        with self._lock:
            self._shared[service_id] = bool(flag)

    def has(self, service_id: str) -> bool:
        with self._lock:
            return (
                service_id in self._services
                or service_id in self._invokables
                or service_id in self._factories
            )

    def get(
        self,
        service_id: str,
        on_create: Optional[Callable[[Any], None]] = None,
    ) -> Any:
        """
        Get an instance by id.

        Args:
            service_id: Container id (case-sensitive)
            on_create: Called with each newly created instance before caching

        Raises:
            ServiceNotFoundError: If the id is unknown
        """
        with self._lock:
            if service_id in self._services:
                return self._services[service_id]

            instance = self._create(service_id)
            if on_create is not None:
                on_create(instance)

            if self._shared.get(service_id, True):
                self._services[service_id] = instance
            return instance

    def _create(self, service_id: str) -> Any:
        if service_id in self._factories:
            factory = self._factories[service_id]
            if isinstance(factory, str):
                factory = import_object(factory)
            logger.debug(f"Container creating {service_id} via factory")
            return factory()

        if service_id in self._invokables:
            cls = self._invokables[service_id]
            if isinstance(cls, str):
                cls = import_object(cls)
            logger.debug(f"Container creating {service_id} via invokable")
            return cls()

        raise ServiceNotFoundError(
            "Service '%ID%' not found in container", {"ID": service_id}
        )

    # =========================================================================
    # PEERING PROTOCOL
    # =========================================================================

    def load(self, service_id: str) -> Any:
        return self.get(service_id)

    def exists(self, service_name: str) -> bool:
        return self.has(service_name)

    def resolve(self, service_name: str) -> List[Any]:
        if not self.has(service_name):
            return []
        return [self.get(service_name)]


__all__ = ["ServiceContainer"]
