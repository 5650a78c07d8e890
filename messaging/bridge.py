# ============================================================================
# QUEUE BRIDGE
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Messaging - Command <-> queue job bridge
# PURPOSE: Serialize commands onto named queues and replay popped jobs
# CREATED: 19 OCT 2026
# EXPORTS: QueueBridge
# ============================================================================
"""
Queue Bridge

enqueue(command, options):
    1. Require a queue manager, then a queue name (option or default)
    2. Serialize {context, service, operation, params, identity}
    3. push() to the named backend, return its job handle unchanged

replay(job, broker):
    Rebuild the command from the job content and run it through the
    broker's normal dispatch path (same init/execute/final semantics).
"""

from collections.abc import Mapping
from typing import Any, Callable, Optional

from core.errors import ConfigurationError
from core.logging import ComponentType, get_logger, log_context
from core.models.command import Command
from core.models.queue_job import QueueJob, ServiceJob
from core.models.responses import ResponseCollection
from messaging.queues import QueueManager

logger = get_logger(__name__, ComponentType.MESSAGING)


class QueueBridge:
    """Hands serialized commands to named queue backends."""

    QUEUE_OPTION_NAME = "queue_name"

    def __init__(
        self,
        queue_manager: Optional[QueueManager] = None,
        default_queue_name: Optional[str] = None,
    ):
        self._queue_manager = None
        self.queue_manager = queue_manager
        self.default_queue_name = default_queue_name

    @property
    def queue_manager(self) -> Optional[QueueManager]:
        return self._queue_manager

    @queue_manager.setter
    def queue_manager(self, manager) -> None:
        # A plain mapping of name -> queue is accepted for convenience
        if isinstance(manager, Mapping):
            registry = QueueManager()
            for name, queue in manager.items():
                registry.set_queue(name, queue)
            manager = registry
        self._queue_manager = manager

    def enqueue(self, command: Command, options: Optional[Mapping] = None) -> ServiceJob:
        """
        Push a command onto a queue.

        Args:
            command: Command with context/identity already filled
            options: queue_name selects an alternative queue; remaining
                options (priority, metadata) go to the backend

        Returns:
            ServiceJob handle returned by the backend

        Raises:
            ConfigurationError: No queue manager, no queue name, or unknown queue
        """
        options = dict(options or {})

        if self._queue_manager is None:
            raise ConfigurationError("Queue plugin manager is not set")

        queue_name = options.pop(self.QUEUE_OPTION_NAME, None) or self.default_queue_name
        if not queue_name:
            raise ConfigurationError("Default queue name is not configured")

        queue = self._queue_manager.get(queue_name)
        job = queue.push(self.to_job(command), options)

        logger.info(f"Queued {command.service}:{command.operation} as job {job.job_id} on {queue_name}")
        return job

    @staticmethod
    def to_job(command: Command) -> QueueJob:
        return QueueJob.from_command(command)

    @staticmethod
    def to_command(job) -> Command:
        """Rebuild a command from a ServiceJob or QueueJob."""
        content = job.get_content() if isinstance(job, ServiceJob) else job
        return content.to_command()

    def replay(
        self,
        job: ServiceJob,
        broker,
        until: Optional[Callable[[Any], Any]] = None,
    ) -> ResponseCollection:
        """Dispatch a popped job through the broker."""
        with log_context(job_id=job.job_id, queue_name=job.queue_name):
            logger.debug(f"Replaying job {job.job_id}")
            return job.execute(broker, until)


__all__ = ["QueueBridge"]
