# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for broker, loader and queue consumers
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides defaults for the broker, the service loader and queue consumers.
These can be overridden via environment variables or broker configuration.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from core.contracts import CommandContext


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class BrokerDefaults:
    """
    Defaults applied by the broker when a command omits them.

    The default identity is not configurable from the environment; it is
    set through broker options (see broker.factory).
    """
    default_context: str = CommandContext.NATIVE.value
    default_queue_name: Optional[str] = None

    @classmethod
    def from_env(cls) -> "BrokerDefaults":
        """Create from environment variables."""
        return cls(
            default_context=os.getenv("BROKER_DEFAULT_CONTEXT", CommandContext.NATIVE.value),
            default_queue_name=os.getenv("BROKER_DEFAULT_QUEUE") or None,
        )


@dataclass(frozen=True)
class LoaderDefaults:
    """Defaults for descriptor registration."""
    default_priority: int = 1
    shared_by_default: bool = True

    @classmethod
    def from_env(cls) -> "LoaderDefaults":
        """Create from environment variables."""
        return cls(
            default_priority=int(os.getenv("LOADER_DEFAULT_PRIORITY", 1)),
            shared_by_default=_env_bool("LOADER_SHARED_BY_DEFAULT", True),
        )


@dataclass(frozen=True)
class QueueDefaults:
    """
    Defaults for queue consumers.

    Controls polling cadence and failure routing.
    """
    poll_interval_seconds: float = 1.0
    max_jobs_per_poll: int = 10
    dead_letter_queue: Optional[str] = None

    @classmethod
    def from_env(cls) -> "QueueDefaults":
        """Create from environment variables."""
        return cls(
            poll_interval_seconds=float(os.getenv("QUEUE_POLL_INTERVAL", 1.0)),
            max_jobs_per_poll=int(os.getenv("QUEUE_MAX_JOBS_PER_POLL", 10)),
            dead_letter_queue=os.getenv("QUEUE_DEAD_LETTER") or None,
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class Defaults:
    """Container for all default configurations."""
    broker: BrokerDefaults = field(default_factory=BrokerDefaults)
    loader: LoaderDefaults = field(default_factory=LoaderDefaults)
    queue: QueueDefaults = field(default_factory=QueueDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            broker=BrokerDefaults.from_env(),
            loader=LoaderDefaults.from_env(),
            queue=QueueDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "BrokerDefaults",
    "LoaderDefaults",
    "QueueDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
