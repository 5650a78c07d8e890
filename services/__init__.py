# ============================================================================
# SERVICES MODULE
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Services - Implementation base classes
# PURPOSE: Helpers for writing service implementations
# CREATED: 19 OCT 2026
# ============================================================================
"""
Services Module

Usage:
    from services import OperationService

    class EchoService(OperationService):
        def echo(self, message):
            return message
"""

from .base import OperationService, snake_case

__all__ = [
    "OperationService",
    "snake_case",
]
