# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Core module initialization
# PURPOSE: Export core contracts, errors and models
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================

from core.contracts import CommandContext, DispatchState
from core.errors import (
    ServiceError,
    InvalidServiceError,
    NotFoundError,
    ServiceNotFoundError,
    OperationNotFoundError,
    PermissionDeniedError,
    ConfigurationError,
    CommandLockedError,
)
from core.models import (
    Command,
    ResponseCollection,
    ServiceDescriptor,
    QueueJob,
    ServiceJob,
)

__all__ = [
    # Enums
    "CommandContext",
    "DispatchState",
    # Errors
    "ServiceError",
    "InvalidServiceError",
    "NotFoundError",
    "ServiceNotFoundError",
    "OperationNotFoundError",
    "PermissionDeniedError",
    "ConfigurationError",
    "CommandLockedError",
    # Models
    "Command",
    "ResponseCollection",
    "ServiceDescriptor",
    "QueueJob",
    "ServiceJob",
]
