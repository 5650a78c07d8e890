# ============================================================================
# MESSAGING MODULE
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Messaging - Async dispatch through named queues
# PURPOSE: Serialize commands onto queues, configure consumers
# CREATED: 19 OCT 2026
# ============================================================================
"""
Messaging Module

Provides the queue bridge, the named queue registry and queue backends.
The Azure Service Bus backend lives in messaging.service_bus and is
imported only when configured.

Usage:
    from messaging import QueueManager, InMemoryQueue

    manager = QueueManager()
    manager.set_queue("jobs", InMemoryQueue("jobs"))
    broker.queue_manager = manager
    broker.default_queue_name = "jobs"
"""

from .bridge import QueueBridge
from .config import MessagingConfig
from .queues import InMemoryQueue, Queue, QueueManager

__all__ = [
    "QueueBridge",
    "MessagingConfig",
    "Queue",
    "InMemoryQueue",
    "QueueManager",
]
