# ============================================================================
# QUEUE BRIDGE TESTS
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Tests - Command serialization and named queues
# PURPOSE: Verify QueueJob wire shape, enqueue rules and job replay
# CREATED: 19 OCT 2026
# ============================================================================
"""
Queue Bridge Tests

Covers:
1. QueueJob wire shape and parameter encoding
2. enqueue configuration errors
3. Default and alternative queues, priority ordering
4. Replay of popped jobs through normal dispatch
5. QueueManager configuration

Run with:
    pytest tests/test_queue_bridge.py -v
"""

import json

import pytest
from pydantic import ValidationError

from broker import ServiceBroker
from core.errors import ConfigurationError, InvalidServiceError
from core.models.command import Command
from core.models.queue_job import QueueJob, ServiceJob, decode_params, encode_params
from messaging.bridge import QueueBridge
from messaging.queues import InMemoryQueue, QueueManager


# ============================================================================
# FIXTURES
# ============================================================================

class Recorder:
    def __init__(self, value="done"):
        self.value = value
        self.commands = []

    def __call__(self, command):
        self.commands.append(command)
        return self.value


@pytest.fixture
def queues():
    return {"jobs": InMemoryQueue("jobs"), "urgent": InMemoryQueue("urgent")}


@pytest.fixture
def broker(queues):
    return ServiceBroker(
        queue_manager=queues,
        default_queue_name="jobs",
        default_identity={"username": "system"},
    )


# ============================================================================
# WIRE SHAPE
# ============================================================================

class TestQueueJob:

    def test_from_command(self):
        command = Command("Filesystem.File", "copy", {"source": "a"}, context="cli",
                          identity={"username": "alice"})

        job = QueueJob.from_command(command)

        assert json.loads(job.model_dump_json()) == {
            "context": "cli",
            "service": "Filesystem.File",
            "operation": "copy",
            "params": {"source": "a"},
            "identity": {"username": "alice"},
        }

    def test_positional_params_as_list(self):
        job = QueueJob.from_command(Command("Test.Service", "run", ["a", "b"]))
        assert job.params == ["a", "b"]
        assert job.to_command().params == {0: "a", 1: "b"}

    def test_mixed_params_as_object(self):
        job = QueueJob.from_command(Command("Test.Service", "run", {0: "a", "level": 1}))
        assert job.params == {"0": "a", "level": 1}
        assert job.to_command().params == {0: "a", "level": 1}

    def test_encode_decode_helpers(self):
        assert encode_params(None) == {}
        assert encode_params({1: "b", 0: "a"}) == {"1": "b", "0": "a"}
        assert decode_params(["x"]) == {0: "x"}
        assert decode_params({"01": "kept", "-2": "int"}) == {"01": "kept", -2: "int"}

    def test_missing_context_survives_conversion(self):
        command = Command("Test.Service", "run", {"path": "/tmp"})
        assert QueueJob.from_command(command).to_command().context is None

    def test_service_required(self):
        with pytest.raises(ValidationError):
            QueueJob(service="", operation="run")

    def test_service_job_body(self):
        job = ServiceJob(queue_name="jobs", priority=3,
                         content=QueueJob(service="Test.Service", operation="run"))

        restored = ServiceJob.from_queue_body(job.to_queue_body())

        assert restored.job_id == job.job_id
        assert restored.priority == 3
        assert restored.get_content() == job.get_content()


# ============================================================================
# ENQUEUE
# ============================================================================

class TestEnqueue:

    def test_requires_queue_manager(self):
        broker = ServiceBroker(default_queue_name="jobs")
        with pytest.raises(ConfigurationError, match="Queue plugin manager is not set"):
            broker.queue(Command("Test.Service", "run"))

    def test_requires_queue_name(self, queues):
        broker = ServiceBroker(queue_manager=queues)
        with pytest.raises(ConfigurationError, match="Default queue name is not configured"):
            broker.queue(Command("Test.Service", "run"))

    def test_unknown_queue(self, broker):
        with pytest.raises(ConfigurationError):
            broker.queue(Command("Test.Service", "run"), {"queue_name": "missing"})

    def test_default_queue(self, broker, queues):
        job = broker.queue(Command("Test.Service", "run", {"a": 1}))

        assert job.queue_name == "jobs"
        assert len(queues["jobs"]) == 1
        assert len(queues["urgent"]) == 0

    def test_alternative_queue(self, broker, queues):
        job = broker.queue(Command("Test.Service", "run"), {"queue_name": "urgent"})

        assert job.queue_name == "urgent"
        assert len(queues["urgent"]) == 1

    def test_defaults_filled_before_serialization(self, broker):
        job = broker.queue(Command("Test.Service", "run"))

        assert job.content.context == "native"
        assert job.content.identity == {"username": "system"}

    def test_popped_content_matches_handle(self, broker, queues):
        handle = broker.queue(Command("Test.Service", "run", ["x"]))
        popped = queues["jobs"].pop()

        assert popped.job_id == handle.job_id
        assert popped.get_content() == handle.get_content()
        assert queues["jobs"].pop() is None

    def test_priority_order(self, broker, queues):
        broker.queue(Command("Test.Service", "low"))
        broker.queue(Command("Test.Service", "high"), {"priority": 10})
        broker.queue(Command("Test.Service", "low-2"))

        operations = [queues["jobs"].pop().content.operation for _ in range(3)]

        assert operations == ["high", "low", "low-2"]

    def test_metadata_option(self, broker, queues):
        broker.queue(Command("Test.Service", "run"), {"metadata": {"trace": "t-1"}})
        assert queues["jobs"].pop().metadata == {"trace": "t-1"}


# ============================================================================
# REPLAY
# ============================================================================

class TestReplay:

    def test_replay_dispatches_through_broker(self, broker, queues):
        impl = Recorder()
        broker.loader.register("s1", "Test.Service", impl)
        fired = []
        broker.event_bus.attach("init.test.service.run", lambda event: fired.append(event.name))

        broker.queue(Command("Test.Service", "run", {"path": "/tmp"}, context="cli"))
        job = queues["jobs"].pop()
        responses = broker.bridge.replay(job, broker)

        assert responses.to_list() == ["done"]
        assert fired == ["init.test.service.run"]
        command = impl.commands[0]
        assert command.context == "cli"
        assert command.params == {"path": "/tmp"}
        assert command.identity == {"username": "system"}

    def test_execute_with_until(self, broker, queues):
        broker.loader.register("s1", "Test.Service", Recorder(True))
        broker.loader.register("s2", "Test.Service", Recorder("never"))

        job = broker.queue(Command("Test.Service", "run"))
        responses = job.execute(broker, until=lambda r: r is True)

        assert responses.to_list() == [True]

    def test_job_without_context_runs_in_queue_context(self, broker):
        impl = Recorder()
        broker.loader.register("s1", "Test.Service", impl)
        job = ServiceJob(content=QueueJob(service="Test.Service", operation="run"))

        broker.bridge.replay(job, broker)

        assert impl.commands[0].context == "queue"

    def test_to_command(self):
        job = ServiceJob(content=QueueJob(service="Test.Service", operation="run", params=["a"]))
        assert QueueBridge.to_command(job).params == {0: "a"}
        assert QueueBridge.to_command(job.content).service == "Test.Service"


# ============================================================================
# QUEUE MANAGER
# ============================================================================

class TestQueueManager:

    def test_configure_from_paths(self):
        manager = QueueManager({
            "jobs": "messaging.queues:InMemoryQueue",
            "urgent": {"class": InMemoryQueue, "options": {"note": "x"}},
        })

        assert manager.names() == ["jobs", "urgent"]
        jobs = manager.get("jobs")
        assert isinstance(jobs, InMemoryQueue)
        assert jobs.name == "jobs"
        assert manager.get("jobs") is jobs
        assert manager.get("urgent").options == {"note": "x"}

    def test_missing_class(self):
        with pytest.raises(ConfigurationError):
            QueueManager({"jobs": {"options": {}}})

    def test_bad_class_path(self):
        manager = QueueManager({"jobs": "no_such_module:Queue"})
        with pytest.raises(InvalidServiceError):
            manager.get("jobs")

    def test_unknown_queue(self):
        with pytest.raises(ConfigurationError, match="Queue 'x' is not configured"):
            QueueManager().get("x")
