# ============================================================================
# BROKER FACTORY
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Broker - Construction from configuration
# PURPOSE: Build a wired ServiceBroker from a mapping or YAML file
# CREATED: 19 OCT 2026
# EXPORTS: create_broker, load_config, create_broker_from_file
# DEPENDENCIES: pyyaml
# ============================================================================
"""
Broker Factory

Configuration scheme:

    default_context: native
    default_identity: {username: system}
    default_queue: jobs
    queues:
      jobs: {class: messaging.queues:InMemoryQueue}
    container:
      invokables: {files.local: myapp.files:LocalFileService}
      factories:  {files.remote: myapp.files:remote_factory}
      shared:     {files.remote: false}
    peers: [myapp.legacy:registry]
    services:
      files.local: Filesystem.File          # bare name, built by the container
      files.remote:
        name: Filesystem.File
        priority: 10

A top-level "service_broker" key is unwrapped, so the broker section can
live inside a larger application config file.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from core.errors import ConfigurationError
from broker.broker import ServiceBroker
from broker.loader import ServiceLoader
from messaging.queues import QueueManager

logger = logging.getLogger(__name__)

CONFIG_SECTION = "service_broker"

_KNOWN_KEYS = {
    "default_context",
    "default_identity",
    "default_queue",
    "queues",
    "container",
    "peers",
    "services",
}


def load_config(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load broker configuration from a YAML file.

    Raises:
        ConfigurationError: If the file is missing or not a mapping
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError("Broker configuration not found: %PATH%", {"PATH": path})

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                "Invalid YAML in %PATH%: %ERROR%", {"PATH": path, "ERROR": e}
            ) from e

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigurationError("Broker configuration in %PATH% must be a mapping", {"PATH": path})

    logger.info(f"Loaded broker configuration from {path}")
    return dict(data)


def create_broker(config: Optional[Mapping] = None) -> ServiceBroker:
    """
    Build a broker with loader, container, peers and queues wired.

    Args:
        config: Configuration mapping (see module docstring)

    Returns:
        Configured ServiceBroker

    Raises:
        ConfigurationError: On unknown keys or unusable queue config
        InvalidServiceError: On malformed service registrations
    """
    config = dict(config or {})
    if CONFIG_SECTION in config:
        config = dict(config[CONFIG_SECTION] or {})

    unknown = set(config) - _KNOWN_KEYS
    if unknown:
        raise ConfigurationError(
            "Unknown broker configuration keys: %KEYS%",
            {"KEYS": ", ".join(sorted(unknown))},
        )

    loader_options = {
        key: config[key]
        for key in ("container", "peers", "services")
        if config.get(key)
    }
    loader = ServiceLoader(loader_options)

    queue_manager = QueueManager(config["queues"]) if config.get("queues") else None

    broker = ServiceBroker(
        loader=loader,
        queue_manager=queue_manager,
        default_context=config.get("default_context"),
        default_identity=config.get("default_identity"),
        default_queue_name=config.get("default_queue"),
    )

    logger.info(
        f"Broker created: {len(loader.service_ids())} implementations, "
        f"{len(queue_manager.names()) if queue_manager else 0} queues"
    )
    return broker


def create_broker_from_file(path: Union[str, Path]) -> ServiceBroker:
    """Load a YAML configuration file and build the broker."""
    return create_broker(load_config(path))


__all__ = [
    "create_broker",
    "load_config",
    "create_broker_from_file",
    "CONFIG_SECTION",
]
