# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the service broker.
"""

from core.config.defaults import (
    BrokerDefaults,
    LoaderDefaults,
    QueueDefaults,
    Defaults,
    get_defaults,
    reset_defaults,
)

__all__ = [
    "BrokerDefaults",
    "LoaderDefaults",
    "QueueDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
