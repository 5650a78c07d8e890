# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Foundation - Core enums and naming rules
# PURPOSE: Define command contexts, dispatch states and canonical names
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: CommandContext, DispatchState, SERVICE_NAME_PATTERN, OPERATION_NAME_PATTERN
# DEPENDENCIES: enum, re
# ============================================================================
"""
Base contracts for the service broker.

These are the values that cross every boundary:
- Python (direct broker calls)
- HTTP / console adapters
- Queue jobs (serialized commands)
"""

import re
from enum import Enum
from typing import Optional


# ============================================================================
# STATUS ENUMS
# ============================================================================

class CommandContext(str, Enum):
    """
    Origin of a command.

    Values are opaque to the broker; adapters set them and services may
    read them. Any custom string is also accepted as a context.
    """
    NATIVE = "native"        # Direct Python call
    HTTP = "http"            # HTTP adapter (POST and others)
    HTTP_GET = "http-get"    # HTTP adapter, safe GET request
    CLI = "cli"              # Console adapter
    QUEUE = "queue"          # Replayed from a queue job


class DispatchState(str, Enum):
    """
    Dispatch lifecycle states.

    State transitions:
        BUILT -> INIT -> EXECUTING -> FINALIZED
                      -> ABORTED   (init listener stopped propagation)
        any   -> FAILED            (unrecovered error)
    """
    BUILT = "built"              # Command constructed, not dispatched
    INIT = "init"                # init.<service>.<operation> firing
    EXECUTING = "executing"      # Implementation chain running
    FINALIZED = "finalized"      # final.<service>.<operation> fired
    ABORTED = "aborted"          # Stopped by an init listener
    FAILED = "failed"            # Error propagated to caller

    def is_terminal(self) -> bool:
        """Check if this is a terminal state (no further transitions)."""
        return self in (DispatchState.FINALIZED, DispatchState.ABORTED, DispatchState.FAILED)


def context_value(context) -> Optional[str]:
    """Normalize a CommandContext or custom string to its plain value."""
    if context is None:
        return None
    if isinstance(context, CommandContext):
        return context.value
    return str(context)


# ============================================================================
# CANONICAL NAMES
# ============================================================================

SERVICE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9]+([.\-][a-z0-9]+)*$", re.IGNORECASE)
OPERATION_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9]+(-[a-z0-9]+)*$", re.IGNORECASE)

# Descriptor ids are looser than service names (class paths, underscores)
SERVICE_ID_PATTERN = re.compile(r"^[a-z0-9_][a-z0-9_.\-:\\]*$", re.IGNORECASE)


def is_valid_service_name(name: Optional[str]) -> bool:
    """Check a service name against the canonical pattern."""
    return bool(name) and SERVICE_NAME_PATTERN.match(name) is not None


def is_valid_operation_name(name: Optional[str]) -> bool:
    """Check an operation name against the canonical pattern."""
    return bool(name) and OPERATION_NAME_PATTERN.match(name) is not None


def is_valid_service_id(service_id: Optional[str]) -> bool:
    """Check a descriptor id."""
    return bool(service_id) and SERVICE_ID_PATTERN.match(service_id) is not None


def _camelize(name: str) -> str:
    parts = name.split("-")
    if len(parts) > 1:
        parts = [p.lower() for p in parts]
    return "".join(p[:1].upper() + p[1:] for p in parts)


def canonical_operation_name(name: str) -> str:
    """
    Convert an external operation name to its canonical form.

    Examples:
        "find-by"   -> "findBy"
        "http-GET"  -> "httpGet"
        "find"      -> "find"
    """
    canonical = _camelize(name)
    return canonical[:1].lower() + canonical[1:]


def canonical_service_name(name: str) -> str:
    """
    Convert an external service name to its canonical form.

    Each dot-separated segment is camelized with a leading capital.

    Examples:
        "valu.test"        -> "Valu.Test"
        "filesystem.file"  -> "Filesystem.File"
        "user-admin.role"  -> "UserAdmin.Role"
    """
    return ".".join(_camelize(segment) for segment in name.split("."))


def event_name(prefix: str, service: str, operation: str) -> str:
    """Build a lifecycle event name, e.g. init.valu.test.run."""
    return f"{prefix}.{service.lower()}.{operation.lower()}"


__all__ = [
    "CommandContext",
    "DispatchState",
    "context_value",
    "SERVICE_NAME_PATTERN",
    "OPERATION_NAME_PATTERN",
    "SERVICE_ID_PATTERN",
    "is_valid_service_name",
    "is_valid_operation_name",
    "is_valid_service_id",
    "canonical_operation_name",
    "canonical_service_name",
    "event_name",
]
