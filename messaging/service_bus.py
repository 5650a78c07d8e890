# ============================================================================
# SERVICE BUS QUEUE BACKEND
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Messaging - Azure Service Bus queue backend
# PURPOSE: push/pop service jobs through an Azure Service Bus queue
# CREATED: 19 OCT 2026
# ============================================================================
"""
Service Bus Queue Backend

Queue backend for QueueManager backed by Azure Service Bus.

Key Design Decisions:
    - Dual auth: connection string OR managed identity
    - One cached sender and receiver per queue
    - Job body is ServiceJob JSON; job_id is the Service Bus message_id
    - Priority is carried as an application property (Service Bus has
      no native priority; ordering is the broker's FIFO)
    - pop() completes the message on receipt (at-most-once from here on;
      failures are routed by the consumer's dead-letter queue)

Configuration (YAML):
    queues:
      jobs:
        class: messaging.service_bus:ServiceBusQueue
        options: {entity: service-jobs, max_wait_time: 5}
"""

import logging
import os
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from azure.identity import DefaultAzureCredential
from azure.servicebus import ServiceBusClient, ServiceBusMessage

from core.errors import ConfigurationError
from core.models.queue_job import QueueJob, ServiceJob
from messaging.queues import Queue

logger = logging.getLogger(__name__)


@dataclass
class ServiceBusConfig:
    """Service Bus connection settings from environment."""

    fully_qualified_namespace: str = ""
    connection_string: Optional[str] = None
    managed_identity_client_id: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ServiceBusConfig":
        """Load configuration from environment variables."""
        return cls(
            fully_qualified_namespace=os.environ.get(
                "SERVICE_BUS_NAMESPACE",
                os.environ.get("SERVICE_BUS_FQDN", "")
            ),
            connection_string=os.environ.get("SERVICE_BUS_CONNECTION_STRING"),
            managed_identity_client_id=os.environ.get("AZURE_CLIENT_ID"),
        )

    @property
    def use_connection_string(self) -> bool:
        return bool(self.connection_string)


class ServiceBusQueue(Queue):
    """
    Queue backend sending and receiving jobs on one Service Bus queue.

    Options:
        entity: Service Bus queue name (defaults to the queue's name)
        max_wait_time: Seconds pop() waits for a message (default 5)
    """

    def __init__(
        self,
        name: str,
        options: Optional[Mapping] = None,
        config: Optional[ServiceBusConfig] = None,
    ):
        super().__init__(name, options)
        self.config = config or ServiceBusConfig.from_env()
        self.entity = self.options.get("entity", name)
        self.max_wait_time = float(self.options.get("max_wait_time", 5))
        self._client: Optional[ServiceBusClient] = None
        self._sender = None
        self._receiver = None
        self._lock = threading.Lock()

    def _connect(self) -> ServiceBusClient:
        if self._client is not None:
            return self._client

        if self.config.use_connection_string:
            logger.info(f"Service Bus queue {self.entity}: connection string authentication")
            self._client = ServiceBusClient.from_connection_string(
                self.config.connection_string,
                retry_total=5,
                retry_backoff_factor=0.5,
                retry_backoff_max=60,
                retry_mode="exponential",
            )
        else:
            if not self.config.fully_qualified_namespace:
                raise ConfigurationError(
                    "SERVICE_BUS_NAMESPACE is required for managed identity authentication"
                )
            logger.info(
                f"Service Bus queue {self.entity}: managed identity for "
                f"{self.config.fully_qualified_namespace}"
            )
            if self.config.managed_identity_client_id:
                credential = DefaultAzureCredential(
                    managed_identity_client_id=self.config.managed_identity_client_id
                )
            else:
                credential = DefaultAzureCredential()
            self._client = ServiceBusClient(
                fully_qualified_namespace=self.config.fully_qualified_namespace,
                credential=credential,
                retry_total=5,
                retry_backoff_factor=0.5,
                retry_backoff_max=60,
                retry_mode="exponential",
            )
        return self._client

    def push(self, content: QueueJob, options: Optional[Mapping] = None) -> ServiceJob:
        job = self._make_job(content, options)
        message = ServiceBusMessage(
            body=job.to_queue_body(),
            content_type="application/json",
            message_id=job.job_id,
            subject=f"{content.service}:{content.operation}",
            application_properties={
                "service": content.service,
                "operation": content.operation,
                "priority": job.priority,
            },
        )

        with self._lock:
            if self._sender is None:
                self._sender = self._connect().get_queue_sender(queue_name=self.entity)
            self._sender.send_messages(message)

        logger.info(f"Sent job {job.job_id} to Service Bus queue {self.entity}")
        return job

    def pop(self) -> Optional[ServiceJob]:
        with self._lock:
            if self._receiver is None:
                self._receiver = self._connect().get_queue_receiver(
                    queue_name=self.entity,
                    max_wait_time=self.max_wait_time,
                )
            messages = self._receiver.receive_messages(
                max_message_count=1,
                max_wait_time=self.max_wait_time,
            )
            if not messages:
                return None

            raw_message = messages[0]
            try:
                job = ServiceJob.from_queue_body(str(raw_message))
            except ValueError as e:
                logger.error(f"Malformed job message {raw_message.message_id}: {e}")
                self._receiver.dead_letter_message(
                    raw_message,
                    reason="ParseError",
                    error_description=str(e),
                )
                return None

            self._receiver.complete_message(raw_message)

        logger.debug(f"Received job {job.job_id} from Service Bus queue {self.entity}")
        return job

    def close(self) -> None:
        """Close sender, receiver and client."""
        with self._lock:
            for handle in (self._sender, self._receiver, self._client):
                if handle is not None:
                    handle.close()
            self._sender = None
            self._receiver = None
            self._client = None
        logger.info(f"Service Bus queue {self.entity} closed")


__all__ = [
    "ServiceBusConfig",
    "ServiceBusQueue",
]
