# ============================================================================
# SERVICE BUS QUEUE TESTS
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Tests - Azure Service Bus queue backend
# PURPOSE: Verify message shape, auth selection and pop acknowledgement
# CREATED: 19 OCT 2026
# ============================================================================
"""
Service Bus Queue Tests

The Azure SDK client is replaced with mocks; no namespace is contacted.

Run with:
    pytest tests/test_service_bus.py -v
"""

import json
import pytest
from unittest.mock import MagicMock, patch

from core.errors import ConfigurationError
from core.models.queue_job import QueueJob, ServiceJob
from messaging.service_bus import ServiceBusConfig, ServiceBusQueue


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def queue(client):
    config = ServiceBusConfig(connection_string="Endpoint=sb://test/;SharedAccessKey=x")
    with patch("messaging.service_bus.ServiceBusClient") as client_cls:
        client_cls.from_connection_string.return_value = client
        yield ServiceBusQueue("jobs", {"entity": "service-jobs", "max_wait_time": 1}, config=config)


def _content():
    return QueueJob(service="Filesystem.File", operation="copy", params={"source": "a"})


# ============================================================================
# PUSH
# ============================================================================

class TestPush:

    def test_sends_job_body(self, queue, client):
        sender = client.get_queue_sender.return_value

        with patch("messaging.service_bus.ServiceBusMessage") as message_cls:
            job = queue.push(_content(), {"priority": 5})

        client.get_queue_sender.assert_called_once_with(queue_name="service-jobs")
        sender.send_messages.assert_called_once_with(message_cls.return_value)
        kwargs = message_cls.call_args.kwargs
        body = json.loads(kwargs["body"])
        assert body["job_id"] == job.job_id
        assert body["queue_name"] == "jobs"
        assert body["priority"] == 5
        assert body["content"]["service"] == "Filesystem.File"
        assert kwargs["message_id"] == job.job_id
        assert kwargs["application_properties"]["operation"] == "copy"

    def test_sender_is_reused(self, queue, client):
        queue.push(_content())
        queue.push(_content())
        assert client.get_queue_sender.call_count == 1


# ============================================================================
# POP
# ============================================================================

class TestPop:

    def test_pop_completes_message(self, queue, client):
        job = ServiceJob(queue_name="jobs", content=_content())
        message = MagicMock()
        message.__str__.return_value = job.to_queue_body()
        receiver = client.get_queue_receiver.return_value
        receiver.receive_messages.return_value = [message]

        popped = queue.pop()

        assert popped.job_id == job.job_id
        assert popped.get_content() == job.get_content()
        receiver.complete_message.assert_called_once_with(message)

    def test_pop_empty(self, queue, client):
        client.get_queue_receiver.return_value.receive_messages.return_value = []
        assert queue.pop() is None

    def test_malformed_message_is_dead_lettered(self, queue, client):
        message = MagicMock()
        message.__str__.return_value = "not json"
        receiver = client.get_queue_receiver.return_value
        receiver.receive_messages.return_value = [message]

        assert queue.pop() is None
        receiver.dead_letter_message.assert_called_once()
        receiver.complete_message.assert_not_called()


# ============================================================================
# CONNECTION
# ============================================================================

class TestConnection:

    def test_managed_identity_requires_namespace(self):
        queue = ServiceBusQueue("jobs", config=ServiceBusConfig())
        with pytest.raises(ConfigurationError):
            queue.push(_content())

    def test_managed_identity(self):
        config = ServiceBusConfig(fully_qualified_namespace="test.servicebus.windows.net",
                                  managed_identity_client_id="client-1")
        with patch("messaging.service_bus.ServiceBusClient") as client_cls, \
                patch("messaging.service_bus.DefaultAzureCredential") as credential_cls:
            ServiceBusQueue("jobs", config=config).push(_content())

        credential_cls.assert_called_once_with(managed_identity_client_id="client-1")
        assert client_cls.call_args.kwargs["fully_qualified_namespace"] == "test.servicebus.windows.net"

    def test_entity_defaults_to_queue_name(self):
        assert ServiceBusQueue("jobs", config=ServiceBusConfig()).entity == "jobs"

    def test_close(self, queue, client):
        queue.push(_content())
        queue.close()
        client.close.assert_called_once()

    def test_config_from_env(self, monkeypatch):
        monkeypatch.setenv("SERVICE_BUS_NAMESPACE", "ns.servicebus.windows.net")
        monkeypatch.delenv("SERVICE_BUS_CONNECTION_STRING", raising=False)

        config = ServiceBusConfig.from_env()

        assert config.fully_qualified_namespace == "ns.servicebus.windows.net"
        assert not config.use_connection_string
