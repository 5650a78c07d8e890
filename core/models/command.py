# ============================================================================
# COMMAND MODEL
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Core model - One requested service operation
# PURPOSE: Value object passed to every implementation in a dispatch chain
# CREATED: 19 OCT 2026
# EXPORTS: Command, normalize_params, flatten_identity
# DEPENDENCIES: core.contracts, core.errors
# ============================================================================
"""
Command Model

A Command describes one requested operation: which service, which
operation, with which parameters, from which context and on behalf of
which identity.

Lifecycle:
    1. Caller (or Worker builder) creates the Command
    2. Broker fills context/identity defaults and locks it
    3. init listeners may mutate params
    4. Each implementation receives the same Command
    5. Optionally serialized to a QueueJob and replayed later

Once locked, service and operation cannot change. Parameters, context and
identity stay mutable so that init listeners can rewrite them.
"""

from collections.abc import Mapping
from typing import Any, Dict, Iterable, Optional, Union

from core.contracts import DispatchState, context_value
from core.errors import CommandLockedError

ParamKey = Union[str, int]


def normalize_params(params: Any) -> Dict[ParamKey, Any]:
    """
    Normalize positional or named parameters to a mapping.

    Lists and tuples become index-keyed mappings ({0: a, 1: b}); mappings
    are copied as-is. None yields an empty mapping.
    """
    if params is None:
        return {}
    if isinstance(params, Mapping):
        return dict(params)
    if isinstance(params, (list, tuple)):
        return {index: value for index, value in enumerate(params)}
    raise TypeError(f"Command params must be a mapping or a sequence, got {type(params).__name__}")


def flatten_identity(identity: Any) -> Dict[str, Any]:
    """
    Flatten an identity object to its plain key-value form.

    Supports mappings, pydantic models (model_dump) and objects exposing
    to_dict(). None yields an empty mapping.
    """
    if identity is None:
        return {}
    if isinstance(identity, Mapping):
        return dict(identity)
    if hasattr(identity, "model_dump"):
        return identity.model_dump()
    if hasattr(identity, "to_dict"):
        return dict(identity.to_dict())
    raise TypeError(f"Identity cannot be flattened: {type(identity).__name__}")


class Command:
    """
    A requested service operation.

    Attributes:
        service: Service name (case-sensitive dispatch key)
        operation: Operation name
        params: Mapping of name or positional index to value
        context: Command context (native, http, http-get, cli, queue, custom)
        identity: Opaque caller identity
        state: Runtime dispatch state (never serialized)
    """

    def __init__(
        self,
        service: Optional[str] = None,
        operation: Optional[str] = None,
        params: Any = None,
        context: Optional[str] = None,
        identity: Any = None,
    ):
        self._service = service
        self._operation = operation
        self._params = normalize_params(params)
        self._context = context_value(context)
        self.identity = identity
        self.state = DispatchState.BUILT
        self._locked = False

    # =========================================================================
    # SERVICE / OPERATION (immutable once locked)
    # =========================================================================

    @property
    def service(self) -> Optional[str]:
        return self._service

    @service.setter
    def service(self, value: str) -> None:
        self._check_unlocked("service")
        self._service = value

    @property
    def operation(self) -> Optional[str]:
        return self._operation

    @operation.setter
    def operation(self, value: str) -> None:
        self._check_unlocked("operation")
        self._operation = value

    @property
    def locked(self) -> bool:
        return self._locked

    def lock(self) -> None:
        """Freeze service and operation. Called when dispatch begins."""
        self._locked = True

    def _check_unlocked(self, field_name: str) -> None:
        if self._locked:
            raise CommandLockedError(
                "Cannot change %FIELD% of a command that is being dispatched",
                {"FIELD": field_name},
            )

    # =========================================================================
    # CONTEXT
    # =========================================================================

    @property
    def context(self) -> Optional[str]:
        return self._context

    @context.setter
    def context(self, value) -> None:
        self._context = context_value(value)

    # =========================================================================
    # PARAMETERS
    # =========================================================================

    @property
    def params(self) -> Dict[ParamKey, Any]:
        """Live parameter mapping. Mutations are visible to later stages."""
        return self._params

    @params.setter
    def params(self, value: Any) -> None:
        self._params = normalize_params(value)

    def get_param(self, key: ParamKey, default: Any = None) -> Any:
        """Get a parameter by name or positional index."""
        return self._params.get(key, default)

    def set_param(self, key: ParamKey, value: Any) -> None:
        """Set a parameter by name or positional index."""
        self._params[key] = value

    def has_param(self, key: ParamKey) -> bool:
        return key in self._params

    def update_params(self, params: Any) -> None:
        """Merge parameters into the current mapping."""
        self._params.update(normalize_params(params))

    def positional_params(self) -> Iterable[Any]:
        """Values with integer keys, in index order."""
        keys = sorted(k for k in self._params if isinstance(k, int))
        return [self._params[k] for k in keys]

    def named_params(self) -> Dict[str, Any]:
        """Values with string keys."""
        return {k: v for k, v in self._params.items() if isinstance(k, str)}

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        """
        Plain form of the five transported fields.

        Runtime-only attributes (state, lock) are not included.
        """
        return {
            "context": self._context,
            "service": self._service,
            "operation": self._operation,
            "params": dict(self._params),
            "identity": flatten_identity(self.identity),
        }

    def __repr__(self) -> str:
        return (
            f"Command(service={self._service!r}, operation={self._operation!r}, "
            f"context={self._context!r}, params={self._params!r})"
        )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "Command",
    "ParamKey",
    "normalize_params",
    "flatten_identity",
]
