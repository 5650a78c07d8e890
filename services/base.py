# ============================================================================
# OPERATION SERVICE
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Services - Base class for service implementations
# PURPOSE: Route a command's operation to a public method
# CREATED: 19 OCT 2026
# ============================================================================
"""
Operation Service

Base class for implementations registered with the loader. The broker
calls an implementation with the Command; OperationService turns that
into a method call:

    class FileService(OperationService):
        def read(self, path, encoding="utf-8"):
            ...

        def find_by(self, field, value, command=None):
            ...

    broker.execute("Filesystem.File", "read", {"path": "/tmp/a"})
    broker.execute("Filesystem.File", "findBy", ["name", "a.txt"])

Operation names map to methods by exact name first, then camelCase to
snake_case (findBy -> find_by). Positional params bind by position,
named params by keyword. A method parameter called "command" receives
the Command itself.
"""

import inspect
import re
from typing import Any, Dict, List, Optional

from core.errors import OperationNotFoundError, ServiceError
from core.logging import ComponentType, get_logger
from core.models.command import Command

logger = get_logger(__name__, ComponentType.SERVICE)

COMMAND_PARAMETER = "command"

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(name: str) -> str:
    """findBy -> find_by"""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


class OperationService:
    """
    Base class dispatching commands to public methods.

    Attributes:
        config: Options passed at construction (descriptor options)
    """

    # Methods of the base class that are never operations
    _reserved = frozenset({"operations"})

    def __init__(self, options: Optional[Dict[str, Any]] = None):
        self.config: Dict[str, Any] = dict(options or {})

    def __call__(self, command: Command) -> Any:
        method = self._find_method(command.operation)
        if method is None:
            raise OperationNotFoundError(
                "Service %SERVICE% does not provide operation %OPERATION%",
                {"SERVICE": command.service, "OPERATION": command.operation},
            )

        args, kwargs = self._bind(method, command)
        logger.debug(f"{type(self).__name__}.{method.__name__} <- {command.operation}")
        return method(*args, **kwargs)

    @classmethod
    def operations(cls) -> List[str]:
        """Public method names that can be called as operations."""
        return sorted(
            name for name, member in inspect.getmembers(cls, inspect.isfunction)
            if cls._is_operation_name(name)
        )

    @classmethod
    def _is_operation_name(cls, name: str) -> bool:
        return not name.startswith("_") and name not in cls._reserved

    def _find_method(self, operation: Optional[str]):
        if not operation:
            return None
        for name in (operation, snake_case(operation)):
            if self._is_operation_name(name):
                method = getattr(self, name, None)
                if callable(method):
                    return method
        return None

    def _bind(self, method, command: Command):
        signature = inspect.signature(method)
        args = list(command.positional_params())
        kwargs = command.named_params()

        if COMMAND_PARAMETER in signature.parameters and COMMAND_PARAMETER not in kwargs:
            kwargs[COMMAND_PARAMETER] = command

        try:
            signature.bind(*args, **kwargs)
        except TypeError as e:
            raise ServiceError(
                "Invalid parameters for %SERVICE%.%OPERATION%: %ERROR%",
                {"SERVICE": command.service, "OPERATION": command.operation, "ERROR": e},
            ) from e
        return args, kwargs


__all__ = [
    "OperationService",
    "snake_case",
]
