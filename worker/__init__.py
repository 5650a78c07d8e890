# ============================================================================
# WORKER MODULE
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Worker - Queue job replay
# PURPOSE: Consume queued service jobs and dispatch them through the broker
# CREATED: 19 OCT 2026
# ============================================================================
"""
Worker Module

Components for replaying queued commands:
- consumer: Queue consumer (sync drain and async consume loop)
- main: Worker process entry point with health probes
"""

from worker.consumer import (
    QueueConsumer,
    run_consumer,
)

__all__ = [
    "QueueConsumer",
    "run_consumer",
]
