# ============================================================================
# SERVICE ERRORS
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Core - Exception taxonomy
# PURPOSE: Errors raised by the loader, broker, bridge and implementations
# CREATED: 19 OCT 2026
# ============================================================================
"""
Service Errors

Every error raised by the broker core derives from ServiceError. Messages
may contain %NAME% placeholders; the raw message and its variables are
kept separately so adapters can return either form.

Example:
    raise ServiceNotFoundError("Service %SERVICE% not found", {"SERVICE": "Valu.Test"})
"""

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base exception for service errors."""

    default_code = 1

    def __init__(
        self,
        message: str = "",
        vars: Optional[Dict[str, Any]] = None,
        code: Optional[int] = None,
    ):
        self.raw_message = message
        self.vars = dict(vars or {})
        self.code = self.default_code if code is None else code
        super().__init__(self.message)

    @property
    def message(self) -> str:
        """Message with %NAME% placeholders substituted."""
        text = self.raw_message
        for name, value in self.vars.items():
            text = text.replace(f"%{name}%", str(value))
        return text

    def __str__(self) -> str:
        return self.message


class InvalidServiceError(ServiceError):
    """Raised when a service name, descriptor id or source is malformed."""
    default_code = 2


class NotFoundError(ServiceError):
    """Base exception for routing misses."""
    default_code = 3


class ServiceNotFoundError(NotFoundError):
    """Raised when no implementation answers a service name or id."""
    default_code = 4


class OperationNotFoundError(NotFoundError):
    """Raised when an operation cannot be determined or is not provided."""
    default_code = 5


class PermissionDeniedError(ServiceError):
    """Raised by implementations when the caller identity is not allowed."""
    default_code = 6


class ConfigurationError(ServiceError):
    """Raised when broker or queue configuration is missing or unusable."""
    default_code = 7


class CommandLockedError(ServiceError):
    """Raised when service or operation is changed after dispatch began."""
    default_code = 8


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ServiceError",
    "InvalidServiceError",
    "NotFoundError",
    "ServiceNotFoundError",
    "OperationNotFoundError",
    "PermissionDeniedError",
    "ConfigurationError",
    "CommandLockedError",
]
