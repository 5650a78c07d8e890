# ============================================================================
# QUEUE CONSUMER TESTS
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Tests - Worker-side job replay
# PURPOSE: Verify drain, dead-lettering, async loop and messaging config
# CREATED: 19 OCT 2026
# ============================================================================
"""
Queue Consumer Tests

Uses InMemoryQueue backends and asyncio.run for the consume loop.

Run with:
    pytest tests/test_consumer.py -v
"""

import asyncio

import pytest

from broker import ServiceBroker
from core.config import reset_defaults
from core.models.command import Command
from messaging.config import MessagingConfig
from messaging.queues import InMemoryQueue
from worker.consumer import QueueConsumer


# ============================================================================
# FIXTURES
# ============================================================================

class Recorder:
    def __init__(self):
        self.commands = []

    def __call__(self, command):
        self.commands.append(command)
        if command.get_param("fail"):
            raise RuntimeError("job failed")
        return "ok"


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def broker(recorder):
    broker = ServiceBroker(
        queue_manager={"jobs": InMemoryQueue("jobs"), "dead": InMemoryQueue("dead")},
        default_queue_name="jobs",
    )
    broker.loader.register("s1", "Test.Service", recorder)
    return broker


def _enqueue(broker, count=1, **params):
    for _ in range(count):
        broker.queue(Command("Test.Service", "run", params))


# ============================================================================
# SYNC PROCESSING
# ============================================================================

class TestProcessing:

    def test_process_one(self, broker, recorder):
        _enqueue(broker)
        consumer = QueueConsumer(broker, "jobs")

        assert consumer.process_one() is True
        assert consumer.process_one() is False
        assert len(recorder.commands) == 1
        assert consumer.stats()["jobs_completed"] == 1

    def test_drain(self, broker, recorder):
        _enqueue(broker, count=3)
        consumer = QueueConsumer(broker, "jobs")

        assert consumer.drain() == 3
        assert len(recorder.commands) == 3

    def test_drain_limit(self, broker):
        _enqueue(broker, count=3)
        consumer = QueueConsumer(broker, "jobs")

        assert consumer.drain(max_jobs=2) == 2
        assert len(broker.queue_manager.get("jobs")) == 1

    def test_failed_job_is_dead_lettered(self, broker):
        _enqueue(broker, fail=True)
        consumer = QueueConsumer(broker, "jobs", dead_letter_queue="dead", worker_id="w-1")

        assert consumer.process_one() is True

        dead = broker.queue_manager.get("dead").pop()
        assert dead.content.service == "Test.Service"
        assert dead.content.params == {"fail": True}
        assert dead.metadata["error"] == "job failed"
        assert dead.metadata["error_type"] == "RuntimeError"
        assert dead.metadata["worker_id"] == "w-1"
        assert consumer.stats() == {
            "jobs_received": 1,
            "jobs_completed": 0,
            "jobs_failed": 1,
            "jobs_dead_lettered": 1,
        }

    def test_failed_job_without_dead_letter(self, broker):
        _enqueue(broker, fail=True)
        consumer = QueueConsumer(broker, "jobs")

        assert consumer.process_one() is True
        assert consumer.stats()["jobs_failed"] == 1
        assert len(broker.queue_manager.get("dead")) == 0

    def test_replayed_jobs_keep_context(self, broker, recorder):
        broker.queue(Command("Test.Service", "run", context="cli"))
        QueueConsumer(broker, "jobs").drain()
        assert recorder.commands[0].context == "cli"


# ============================================================================
# ASYNC LOOP
# ============================================================================

class TestAsyncLoop:

    def test_run_until_stopped(self, broker, recorder):
        _enqueue(broker, count=2)
        consumer = QueueConsumer(broker, "jobs", poll_interval_seconds=0.01, max_jobs_per_poll=5)

        async def scenario():
            task = asyncio.create_task(consumer.run())
            for _ in range(100):
                if len(recorder.commands) == 2:
                    break
                await asyncio.sleep(0.01)
            await consumer.stop()
            await asyncio.wait_for(task, timeout=1)

        asyncio.run(scenario())

        assert len(recorder.commands) == 2
        assert not consumer.running

    def test_stop_when_not_running(self, broker):
        consumer = QueueConsumer(broker, "jobs")
        asyncio.run(consumer.stop())
        assert not consumer.running


# ============================================================================
# CONFIG
# ============================================================================

class TestMessagingConfig:

    def test_requires_worker_queue(self, monkeypatch):
        monkeypatch.delenv("WORKER_QUEUE", raising=False)
        with pytest.raises(ValueError):
            MessagingConfig.from_env()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("WORKER_QUEUE", "jobs")
        monkeypatch.setenv("WORKER_ID", "w-7")
        monkeypatch.setenv("WORKER_DEAD_LETTER_QUEUE", "dead")
        monkeypatch.setenv("WORKER_POLL_INTERVAL", "0.5")

        config = MessagingConfig.from_env()

        assert config.worker_queue == "jobs"
        assert config.worker_id == "w-7"
        assert config.dead_letter_queue == "dead"
        assert config.poll_interval_seconds == 0.5
        assert config.uses_dead_letter

    def test_queue_defaults_apply(self, monkeypatch):
        monkeypatch.setenv("WORKER_QUEUE", "jobs")
        monkeypatch.delenv("WORKER_DEAD_LETTER_QUEUE", raising=False)
        monkeypatch.delenv("WORKER_MAX_JOBS_PER_POLL", raising=False)
        monkeypatch.setenv("QUEUE_DEAD_LETTER", "fallback-dead")
        monkeypatch.setenv("QUEUE_MAX_JOBS_PER_POLL", "4")
        reset_defaults()
        try:
            config = MessagingConfig.from_env()
        finally:
            reset_defaults()

        assert config.dead_letter_queue == "fallback-dead"
        assert config.max_jobs_per_poll == 4

    def test_consumer_from_config(self, broker):
        config = MessagingConfig(worker_id="w-1", worker_queue="jobs", dead_letter_queue="dead",
                                 poll_interval_seconds=2.0, max_jobs_per_poll=3)

        consumer = QueueConsumer.from_config(broker, config)

        assert consumer.queue_name == "jobs"
        assert consumer.dead_letter_queue == "dead"
        assert consumer.poll_interval_seconds == 2.0
        assert consumer.max_jobs_per_poll == 3
