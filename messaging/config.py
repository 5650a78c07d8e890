# ============================================================================
# MESSAGING CONFIGURATION
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Messaging - Queue consumer configuration
# PURPOSE: Centralize worker/consumer configuration
# CREATED: 19 OCT 2026
# ============================================================================
"""
Messaging Configuration

Configuration for queue consumers (worker processes replaying jobs).
Queue backends themselves are declared in the broker configuration.
"""

import os
from dataclasses import dataclass
from typing import Optional

from core.config.defaults import get_defaults


@dataclass
class MessagingConfig:
    """
    Configuration for a queue consumer process.

    Loaded from environment variables.
    """
    worker_id: str = ""

    # Queue to consume (MUST be set explicitly - no default)
    worker_queue: str = ""

    # Where failed jobs go (optional)
    dead_letter_queue: Optional[str] = None

    # Broker configuration file (YAML)
    broker_config_path: Optional[str] = None

    # Timing
    poll_interval_seconds: float = 1.0
    max_jobs_per_poll: int = 10
    shutdown_timeout_seconds: int = 30

    # Health probe
    health_port: int = 8080

    @classmethod
    def from_env(cls) -> "MessagingConfig":
        """
        Load configuration from environment variables.

        Required:
            WORKER_QUEUE: Queue name to consume

        Optional:
            WORKER_ID: Worker identifier (default: hostname-based)
            WORKER_DEAD_LETTER_QUEUE: Queue for failed jobs (default QUEUE_DEAD_LETTER)
            BROKER_CONFIG: Path to broker YAML configuration
            WORKER_POLL_INTERVAL: Seconds between empty polls (default QUEUE_POLL_INTERVAL)
            WORKER_MAX_JOBS_PER_POLL: Jobs replayed per poll (default QUEUE_MAX_JOBS_PER_POLL)
            SHUTDOWN_TIMEOUT: Graceful shutdown seconds (default 30)
            HEALTH_PORT: Health probe port (default 8080)
        """
        worker_queue = os.environ.get("WORKER_QUEUE")
        if not worker_queue:
            raise ValueError(
                "WORKER_QUEUE environment variable is required"
            )

        worker_id = os.environ.get("WORKER_ID") or f"worker-{os.environ.get('HOSTNAME', 'local')}"
        queue_defaults = get_defaults().queue

        return cls(
            worker_id=worker_id,
            worker_queue=worker_queue,
            dead_letter_queue=os.environ.get("WORKER_DEAD_LETTER_QUEUE") or queue_defaults.dead_letter_queue,
            broker_config_path=os.environ.get("BROKER_CONFIG") or None,
            poll_interval_seconds=float(
                os.environ.get("WORKER_POLL_INTERVAL", queue_defaults.poll_interval_seconds)
            ),
            max_jobs_per_poll=int(
                os.environ.get("WORKER_MAX_JOBS_PER_POLL", queue_defaults.max_jobs_per_poll)
            ),
            shutdown_timeout_seconds=int(os.environ.get("SHUTDOWN_TIMEOUT", "30")),
            health_port=int(os.environ.get("HEALTH_PORT", "8080")),
        )

    @property
    def uses_dead_letter(self) -> bool:
        """Whether failed jobs are routed to a dead-letter queue."""
        return self.dead_letter_queue is not None


__all__ = ["MessagingConfig"]
