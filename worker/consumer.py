# ============================================================================
# QUEUE CONSUMER
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Worker - Queue job consumer
# PURPOSE: Pop service jobs and replay them through the broker
# CREATED: 19 OCT 2026
# ============================================================================
"""
Queue Consumer

Pops ServiceJobs from a named queue and replays them through the broker's
normal dispatch path.

Features:
- Sync process_one() / drain() for scripts and tests
- Async consume loop (dispatch runs in the default executor)
- Graceful shutdown
- Optional dead-letter queue for failed jobs
"""

import asyncio
import logging
import signal
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.logging import log_checkpoint, log_context
from core.models.queue_job import ServiceJob
from messaging.config import MessagingConfig

logger = logging.getLogger(__name__)


# ============================================================================
# CONSUMER
# ============================================================================

class QueueConsumer:
    """
    Consumes jobs from one queue of a broker's queue manager.

    Failed jobs are logged, counted and, when a dead-letter queue is
    configured, pushed there with the error recorded in job metadata.
    """

    def __init__(
        self,
        broker,
        queue_name: str,
        dead_letter_queue: Optional[str] = None,
        poll_interval_seconds: float = 1.0,
        worker_id: Optional[str] = None,
        max_jobs_per_poll: int = 1,
    ):
        """
        Initialize consumer.

        Args:
            broker: ServiceBroker whose queue manager holds the queues
            queue_name: Queue to consume
            dead_letter_queue: Queue receiving failed jobs (optional)
            poll_interval_seconds: Wait between polls of an empty queue
            worker_id: Identifier used in logs and dead-letter metadata
            max_jobs_per_poll: Jobs replayed per executor round trip
        """
        self.broker = broker
        self.queue_name = queue_name
        self.dead_letter_queue = dead_letter_queue
        self.poll_interval_seconds = poll_interval_seconds
        self.worker_id = worker_id
        self.max_jobs_per_poll = max(1, int(max_jobs_per_poll))

        # State
        self._running = False
        self._shutdown_event = asyncio.Event()

        # Stats
        self._jobs_received = 0
        self._jobs_completed = 0
        self._jobs_failed = 0
        self._jobs_dead_lettered = 0

    @classmethod
    def from_config(cls, broker, config: MessagingConfig) -> "QueueConsumer":
        return cls(
            broker,
            config.worker_queue,
            dead_letter_queue=config.dead_letter_queue,
            poll_interval_seconds=config.poll_interval_seconds,
            worker_id=config.worker_id,
            max_jobs_per_poll=config.max_jobs_per_poll,
        )

    @property
    def running(self) -> bool:
        return self._running

    def stats(self) -> Dict[str, Any]:
        return {
            "jobs_received": self._jobs_received,
            "jobs_completed": self._jobs_completed,
            "jobs_failed": self._jobs_failed,
            "jobs_dead_lettered": self._jobs_dead_lettered,
        }

    # =========================================================================
    # SYNC PROCESSING
    # =========================================================================

    def process_one(self) -> bool:
        """
        Pop and replay one job.

        Returns:
            True if a job was popped (whatever its outcome), False if the
            queue was empty
        """
        queue = self.broker.queue_manager.get(self.queue_name)
        job = queue.pop()
        if job is None:
            return False

        self._jobs_received += 1
        with log_context(job_id=job.job_id, queue_name=self.queue_name, worker_id=self.worker_id):
            try:
                responses = self.broker.bridge.replay(job, self.broker)
            except Exception as e:
                self._jobs_failed += 1
                logger.exception(f"Job {job.job_id} failed: {e}")
                self._dead_letter(job, e)
                return True

            self._jobs_completed += 1
            logger.info(f"Job {job.job_id} processed: {responses.count()} responses")
        return True

    def drain(self, max_jobs: Optional[int] = None) -> int:
        """Process jobs until the queue is empty (or max_jobs reached)."""
        processed = 0
        while max_jobs is None or processed < max_jobs:
            if not self.process_one():
                break
            processed += 1
        return processed

    def _dead_letter(self, job: ServiceJob, error: Exception) -> None:
        if not self.dead_letter_queue:
            return

        metadata = dict(job.metadata)
        metadata.update({
            "error": str(error),
            "error_type": type(error).__name__,
            "original_job_id": job.job_id,
            "original_queue": job.queue_name,
            "worker_id": self.worker_id,
            "failed_at": datetime.now(timezone.utc).isoformat(),
        })

        queue = self.broker.queue_manager.get(self.dead_letter_queue)
        dead = queue.push(job.get_content(), {"priority": job.priority, "metadata": metadata})
        self._jobs_dead_lettered += 1
        logger.warning(f"Dead-lettered job {job.job_id} to {self.dead_letter_queue} as {dead.job_id}")
        log_checkpoint("job_dead_lettered", {"dead_letter_job_id": dead.job_id}, logger=logger)

    # =========================================================================
    # ASYNC LOOP
    # =========================================================================

    async def start(self) -> None:
        """Start the consumer."""
        if self._running:
            logger.warning("Consumer already running")
            return

        logger.info(f"Starting consumer: worker_id={self.worker_id}, queue={self.queue_name}")
        self._running = True
        self._shutdown_event.clear()

    async def stop(self) -> None:
        """Stop the consumer after the job in flight."""
        if not self._running:
            return

        logger.info("Stopping consumer...")
        self._running = False
        self._shutdown_event.set()

        logger.info(
            f"Consumer stopped. Stats: received={self._jobs_received}, "
            f"completed={self._jobs_completed}, failed={self._jobs_failed}"
        )

    async def run(self) -> None:
        """
        Run the consume loop.

        Replays jobs until shutdown is requested.
        """
        await self.start()
        loop = asyncio.get_running_loop()

        try:
            while self._running:
                try:
                    processed = await loop.run_in_executor(
                        None, self.drain, self.max_jobs_per_poll
                    )
                except Exception as e:
                    logger.exception(f"Error in consume loop: {e}")
                    processed = 0

                if not processed:
                    try:
                        await asyncio.wait_for(
                            self._shutdown_event.wait(),
                            timeout=self.poll_interval_seconds,
                        )
                    except asyncio.TimeoutError:
                        pass
        finally:
            await self.stop()


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

async def run_consumer(
    broker,
    config: Optional[MessagingConfig] = None,
    consumer: Optional[QueueConsumer] = None,
) -> QueueConsumer:
    """
    Run a consumer until SIGTERM/SIGINT.

    Args:
        broker: Configured ServiceBroker
        config: Messaging configuration (uses env vars if not provided)
        consumer: Pre-built consumer (built from config if not provided)
    """
    if consumer is None:
        config = config or MessagingConfig.from_env()
        consumer = QueueConsumer.from_config(broker, config)

    loop = asyncio.get_running_loop()

    def shutdown_handler():
        logger.info("Shutdown signal received")
        asyncio.create_task(consumer.stop())

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, shutdown_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await consumer.run()
    return consumer


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "QueueConsumer",
    "run_consumer",
]
