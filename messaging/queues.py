# ============================================================================
# QUEUE BACKENDS
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Messaging - Named queue registry and in-memory backend
# PURPOSE: push/pop contract for serialized commands, selected by name
# CREATED: 19 OCT 2026
# EXPORTS: Queue, InMemoryQueue, QueueManager
# ============================================================================
"""
Queue Backends

The bridge's only contract with a backend is:

    push(content: QueueJob, options) -> ServiceJob
    pop() -> Optional[ServiceJob]

QueueManager is a registry of backends keyed by name, built lazily from
class references (objects or "module:Class" paths) the same way the
loader builds implementations.

InMemoryQueue stores serialized job bodies, so a popped job is a fresh
object decoded from JSON exactly like a job read from a durable backend.
"""

import heapq
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from core.errors import ConfigurationError
from core.models.descriptor import import_object
from core.models.queue_job import QueueJob, ServiceJob

logger = logging.getLogger(__name__)


class Queue(ABC):
    """Base class for queue backends."""

    def __init__(self, name: str, options: Optional[Mapping] = None):
        self.name = name
        self.options = dict(options or {})

    @abstractmethod
    def push(self, content: QueueJob, options: Optional[Mapping] = None) -> ServiceJob:
        """
        Store a job.

        Args:
            content: Serialized command
            options: Backend options (priority, metadata)

        Returns:
            ServiceJob handle
        """

    @abstractmethod
    def pop(self) -> Optional[ServiceJob]:
        """Remove and return the next job, or None when empty."""

    def _make_job(self, content: QueueJob, options: Optional[Mapping]) -> ServiceJob:
        options = options or {}
        return ServiceJob(
            queue_name=self.name,
            priority=int(options.get("priority", 0)),
            content=content,
            metadata=dict(options.get("metadata") or {}),
        )


class InMemoryQueue(Queue):
    """
    Thread-safe in-process queue.

    Pops higher priority first, FIFO within one priority.
    """

    def __init__(self, name: str = "default", options: Optional[Mapping] = None):
        super().__init__(name, options)
        self._heap: List[tuple] = []
        self._sequence = itertools.count()
        self._lock = threading.Lock()

    def push(self, content: QueueJob, options: Optional[Mapping] = None) -> ServiceJob:
        job = self._make_job(content, options)
        with self._lock:
            heapq.heappush(self._heap, (-job.priority, next(self._sequence), job.to_queue_body()))
        logger.debug(f"Pushed job {job.job_id} to {self.name} (priority={job.priority})")
        return job

    def pop(self) -> Optional[ServiceJob]:
        with self._lock:
            if not self._heap:
                return None
            _, _, body = heapq.heappop(self._heap)
        return ServiceJob.from_queue_body(body)

    def clear(self) -> None:
        with self._lock:
            self._heap.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._heap)


# ============================================================================
# QUEUE MANAGER
# ============================================================================

class QueueManager:
    """
    Registry of named queues.

    Queues are either set directly or registered as class + options and
    built on first use.
    """

    def __init__(self, config: Optional[Mapping] = None):
        self._queues: Dict[str, Any] = {}
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        if config:
            self.configure(config)

    def configure(self, config: Mapping) -> None:
        """
        Register queues from a mapping.

        Each value is a "module:Class" path or a mapping with "class" and
        optional "options".
        """
        for name, entry in config.items():
            if isinstance(entry, str):
                self.register(name, entry)
            elif isinstance(entry, Mapping) and entry.get("class"):
                self.register(name, entry["class"], entry.get("options"))
            else:
                raise ConfigurationError(
                    "Queue '%NAME%' needs a class", {"NAME": name}
                )

    def register(self, name: str, queue_class: Any, options: Optional[Mapping] = None) -> None:
        """Register a queue class to build lazily."""
        with self._lock:
            self._entries[name] = {"class": queue_class, "options": dict(options or {})}
            self._queues.pop(name, None)

    def set_queue(self, name: str, queue: Any) -> None:
        """Register a ready queue instance."""
        with self._lock:
            self._queues[name] = queue
            self._entries.pop(name, None)

    def has(self, name: str) -> bool:
        return name in self._queues or name in self._entries

    def names(self) -> List[str]:
        return sorted(set(self._queues) | set(self._entries))

    def get(self, name: str) -> Any:
        """
        Get a queue by name.

        Raises:
            ConfigurationError: If no queue is registered under name
        """
        queue = self._queues.get(name)
        if queue is not None:
            return queue

        with self._lock:
            if name in self._queues:
                return self._queues[name]

            entry = self._entries.get(name)
            if entry is None:
                raise ConfigurationError("Queue '%NAME%' is not configured", {"NAME": name})

            queue_class = entry["class"]
            if isinstance(queue_class, str):
                queue_class = import_object(queue_class)
            queue = queue_class(name, entry["options"])
            self._queues[name] = queue
            logger.info(f"Created queue {name} ({type(queue).__name__})")
            return queue


__all__ = [
    "Queue",
    "InMemoryQueue",
    "QueueManager",
]
