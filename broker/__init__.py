# ============================================================================
# BROKER MODULE
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Broker - Service registry, event bus and dispatch
# PURPOSE: Resolve service names and dispatch commands to implementations
# CREATED: 19 OCT 2026
# ============================================================================
"""
Broker Module

Usage:
    from broker import ServiceBroker

    broker = ServiceBroker()
    broker.loader.register("echo", "Test.Echo", lambda command: command.params)
    broker.execute("Test.Echo", "run", {"text": "hi"}).first()
"""

from .events import EventBus, ServiceEvent
from .container import ServiceContainer
from .loader import ServiceLoader
from .worker import Worker
from .broker import ServiceBroker
from .factory import create_broker, create_broker_from_file, load_config

__all__ = [
    "EventBus",
    "ServiceEvent",
    "ServiceContainer",
    "ServiceLoader",
    "Worker",
    "ServiceBroker",
    "create_broker",
    "create_broker_from_file",
    "load_config",
]
