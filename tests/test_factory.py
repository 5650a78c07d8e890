# ============================================================================
# BROKER FACTORY TESTS
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Tests - Broker construction from configuration
# PURPOSE: Verify YAML loading and wiring of loader, container, peers, queues
# CREATED: 19 OCT 2026
# ============================================================================
"""
Broker Factory Tests

Run with:
    pytest tests/test_factory.py -v
"""

import pytest

from broker import ServiceBroker, create_broker, create_broker_from_file, load_config
from core.errors import ConfigurationError, InvalidServiceError
from core.models.command import Command
from messaging.queues import InMemoryQueue
from services import OperationService


# ============================================================================
# FIXTURES
# ============================================================================

class EchoService(OperationService):
    def echo(self, message):
        return f"{self.config.get('prefix', '')}{message}"


class LegacyRegistry:
    """Peer registry importable by path."""

    def exists(self, name):
        return name == "Legacy.Service"

    def resolve(self, name):
        return [lambda command: "legacy"] if self.exists(name) else []

    def load(self, service_id):
        raise ConfigurationError("not used")


legacy_registry = LegacyRegistry()


BROKER_YAML = """
service_broker:
  default_context: cli
  default_identity:
    username: system
  default_queue: jobs
  queues:
    jobs:
      class: messaging.queues:InMemoryQueue
  container:
    invokables:
      echo.plain: test_factory:EchoService
  peers:
    - test_factory:legacy_registry
  services:
    echo.plain: Test.Echo
    echo.loud:
      name: Test.Echo
      class: test_factory:EchoService
      options:
        prefix: "! "
      priority: 10
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "broker.yaml"
    path.write_text(BROKER_YAML)
    return path


# ============================================================================
# LOAD CONFIG
# ============================================================================

class TestLoadConfig:

    def test_load(self, config_file):
        config = load_config(config_file)
        assert config["service_broker"]["default_queue"] == "jobs"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("services: [unclosed")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == {}


# ============================================================================
# CREATE BROKER
# ============================================================================

class TestCreateBroker:

    def test_from_file(self, config_file):
        broker = create_broker_from_file(config_file)

        assert isinstance(broker, ServiceBroker)
        assert broker.default_context == "cli"
        assert broker.default_identity == {"username": "system"}
        assert broker.default_queue_name == "jobs"
        assert broker.queue_manager.names() == ["jobs"]

    def test_services_in_priority_order(self, config_file):
        broker = create_broker_from_file(config_file)

        responses = broker.execute("Test.Echo", "echo", {"message": "hi"})

        assert responses.to_list() == ["! hi", "hi"]

    def test_peer_from_import_path(self, config_file):
        broker = create_broker_from_file(config_file)
        assert broker.execute("Legacy.Service", "run").first() == "legacy"

    def test_queue_from_config(self, config_file):
        broker = create_broker_from_file(config_file)

        job = broker.queue(Command("Test.Echo", "echo", {"message": "later"}))

        queue = broker.queue_manager.get("jobs")
        assert isinstance(queue, InMemoryQueue)
        assert job.content.context == "cli"
        assert len(queue) == 1

    def test_unwrapped_config(self):
        broker = create_broker({"services": {"e": {"name": "Test.Echo", "class": EchoService}}})
        assert broker.execute("Test.Echo", "echo", ["x"]).first() == "x"

    def test_container_shared_false(self):
        broker = create_broker({
            "container": {
                "invokables": {"echo.plain": EchoService},
                "shared": {"echo.plain": False},
            },
            "services": {"echo.plain": "Test.Echo"},
        })

        first = broker.loader.resolve("Test.Echo")[0]
        second = broker.loader.resolve("Test.Echo")[0]

        assert isinstance(first, EchoService)
        assert first is not second

    def test_empty_config(self):
        broker = create_broker()
        assert broker.queue_manager is None
        assert broker.loader.service_ids() == []

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError):
            create_broker({"servics": {}})

    def test_bad_service_entry(self):
        with pytest.raises(InvalidServiceError):
            create_broker({"services": {"e": {"name": "Test.Echo", "class": "no_such:Thing"}}})
