# ============================================================================
# SERVICE DESCRIPTOR MODEL
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Core model - Registered implementation descriptors
# PURPOSE: Describe how one implementation is built and where it sorts
# CREATED: 19 OCT 2026
# EXPORTS: ServiceDescriptor, ClassSource, FactorySource, InstanceSource,
#          CallableSource, coerce_source, import_object
# DEPENDENCIES: importlib
# ============================================================================
"""
Service Descriptor Model

A descriptor binds a unique id to a service name plus a source telling
the loader how to obtain the live implementation:

    ClassSource(cls)        -> cls(options) or cls()
    FactorySource(factory)  -> factory(options) or factory()
    InstanceSource(obj)     -> obj
    CallableSource(fn)      -> fn

A descriptor without a source is resolved by id through the loader's
container, then its peers.
"""

import importlib
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Union

from core.errors import InvalidServiceError


# ============================================================================
# SOURCES
# ============================================================================

@dataclass(frozen=True)
class ClassSource:
    """Instantiate a class, passing options when present."""
    cls: type

    kind = "class"

    def build(self, options: Optional[Dict[str, Any]] = None) -> Any:
        if options:
            return self.cls(options)
        return self.cls()


@dataclass(frozen=True)
class FactorySource:
    """Invoke a factory callable, passing options when present."""
    factory: Callable[..., Any]

    kind = "factory"

    def build(self, options: Optional[Dict[str, Any]] = None) -> Any:
        if options is not None:
            return self.factory(options)
        return self.factory()


@dataclass(frozen=True)
class InstanceSource:
    """Pre-built instance, returned as-is."""
    instance: Any

    kind = "instance"

    def build(self, options: Optional[Dict[str, Any]] = None) -> Any:
        return self.instance


@dataclass(frozen=True)
class CallableSource:
    """Plain callable used directly as the implementation."""
    func: Callable[..., Any]

    kind = "callable"

    def build(self, options: Optional[Dict[str, Any]] = None) -> Any:
        return self.func


Source = Union[ClassSource, FactorySource, InstanceSource, CallableSource]

# Sources that produce a new object on build (initializers apply)
CREATING_SOURCES = (ClassSource, FactorySource)


def import_object(path: str) -> Any:
    """
    Import an object from a dotted path.

    Accepts "package.module:attr" or "package.module.attr".

    Raises:
        InvalidServiceError: If the module or attribute cannot be found
    """
    if ":" in path:
        module_name, _, attr_path = path.partition(":")
    else:
        module_name, _, attr_path = path.rpartition(".")

    if not module_name or not attr_path:
        raise InvalidServiceError("Invalid import path '%PATH%'", {"PATH": path})

    try:
        obj = importlib.import_module(module_name)
    except ImportError as e:
        raise InvalidServiceError(
            "Unable to import module for '%PATH%': %ERROR%",
            {"PATH": path, "ERROR": e},
        ) from e

    for attr in attr_path.split("."):
        try:
            obj = getattr(obj, attr)
        except AttributeError as e:
            raise InvalidServiceError(
                "Object '%PATH%' not found", {"PATH": path}
            ) from e
    return obj


def coerce_source(kind: str, value: Any) -> Source:
    """
    Build a source from a configuration value.

    Args:
        kind: "class", "factory" or "service"
        value: Object or import path string

    Returns:
        Source instance

    Raises:
        InvalidServiceError: If the value does not fit the kind
    """
    if isinstance(value, str):
        value = import_object(value)

    if kind == "class":
        if not inspect.isclass(value):
            raise InvalidServiceError("Class source must be a class, got %TYPE%", {"TYPE": type(value).__name__})
        return ClassSource(value)

    if kind == "factory":
        if not callable(value):
            raise InvalidServiceError("Factory source must be callable, got %TYPE%", {"TYPE": type(value).__name__})
        return FactorySource(value)

    if kind == "service":
        if inspect.isroutine(value):
            return CallableSource(value)
        return InstanceSource(value)

    raise InvalidServiceError("Unknown source kind '%KIND%'", {"KIND": kind})


def source_for(value: Any) -> Source:
    """Infer a source from a raw registration value."""
    if isinstance(value, (ClassSource, FactorySource, InstanceSource, CallableSource)):
        return value
    if inspect.isclass(value):
        return ClassSource(value)
    if inspect.isroutine(value):
        return CallableSource(value)
    return InstanceSource(value)


# ============================================================================
# DESCRIPTOR
# ============================================================================

@dataclass
class ServiceDescriptor:
    """
    One registered implementation.

    Ordering: priority descending, then sequence (registration order)
    ascending.
    """
    id: str
    name: str
    source: Optional[Source] = None
    options: Optional[Dict[str, Any]] = None
    priority: int = 1
    shared: bool = True
    sequence: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def sort_key(self):
        return (-self.priority, self.sequence)

    @property
    def source_kind(self) -> Optional[str]:
        return self.source.kind if self.source is not None else None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ClassSource",
    "FactorySource",
    "InstanceSource",
    "CallableSource",
    "Source",
    "CREATING_SOURCES",
    "ServiceDescriptor",
    "coerce_source",
    "source_for",
    "import_object",
]
