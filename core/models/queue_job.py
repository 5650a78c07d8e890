# ============================================================================
# QUEUE JOB MODELS
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Core model - Serialized commands for async dispatch
# PURPOSE: Wire shape of a command plus the job handle that carries it
# CREATED: 19 OCT 2026
# EXPORTS: QueueJob, ServiceJob, encode_params, decode_params
# DEPENDENCIES: pydantic
# ============================================================================
"""
Queue Job Models

QueueJob is the stable wire shape of a Command:

    {"context": str, "service": str, "operation": str,
     "params": mapping | list, "identity": mapping}

ServiceJob is the handle a queue backend hands out on push and pop. It
wraps the QueueJob content with queue metadata (id, queue name, priority).

Parameter encoding:
- Index keys 0..n-1 in order are sent as a JSON list
- Any other mapping is sent as a JSON object with string keys
- On decode, lists become index keys and decimal string keys become ints

Key Design:
- Only the five command fields cross the boundary
- Runtime-only command state (dispatch state, lock) is dropped
- Explicit serialization via to_queue_body() / from_queue_body()
"""

import re
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from core.contracts import CommandContext
from core.models.command import Command, flatten_identity
from core.models.responses import ResponseCollection

_INDEX_KEY = re.compile(r"^(0|-?[1-9][0-9]*)$")


def encode_params(params: Any) -> Union[List[Any], Dict[str, Any]]:
    """Convert command params to their JSON wire form."""
    if params is None:
        return {}
    if isinstance(params, (list, tuple)):
        return list(params)
    keys = list(params.keys())
    if keys and keys == list(range(len(keys))):
        return [params[k] for k in keys]
    return {str(k): v for k, v in params.items()}


def decode_params(params: Any) -> Dict[Union[str, int], Any]:
    """Convert wire params back to a command parameter mapping."""
    if params is None:
        return {}
    if isinstance(params, (list, tuple)):
        return {index: value for index, value in enumerate(params)}
    decoded: Dict[Union[str, int], Any] = {}
    for key, value in params.items():
        if isinstance(key, str) and _INDEX_KEY.match(key):
            decoded[int(key)] = value
        else:
            decoded[key] = value
    return decoded


class QueueJob(BaseModel):
    """
    Serialized command.

    Round-trip Command -> QueueJob -> Command preserves context, service,
    operation, params and flattened identity.
    """

    context: Optional[str] = Field(
        default=None,
        description="Command context (native, http, http-get, cli, queue or custom)"
    )
    service: str = Field(
        ...,
        min_length=1,
        description="Service name to dispatch to"
    )
    operation: str = Field(
        ...,
        min_length=1,
        description="Operation name"
    )
    params: Union[List[Any], Dict[str, Any]] = Field(
        default_factory=dict,
        description="Named (object) or positional (list) parameters"
    )
    identity: Dict[str, Any] = Field(
        default_factory=dict,
        description="Flattened caller identity"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "context": "native",
                "service": "Filesystem.File",
                "operation": "copy",
                "params": {"source": "/tmp/a", "target": "/tmp/b"},
                "identity": {"username": "system"}
            }
        }
    }

    @field_validator("params", mode="before")
    @classmethod
    def _encode_params(cls, value):
        if isinstance(value, Mapping):
            return encode_params(value)
        return value

    @field_validator("identity", mode="before")
    @classmethod
    def _flatten_identity(cls, value):
        return flatten_identity(value)

    # =========================================================================
    # COMMAND CONVERSION
    # =========================================================================

    @classmethod
    def from_command(cls, command: Command) -> "QueueJob":
        """Serialize the five transported command fields."""
        return cls(**command.to_dict())

    def to_command(self) -> Command:
        """Rebuild a Command from the job content, context included as sent."""
        return Command(
            service=self.service,
            operation=self.operation,
            params=decode_params(self.params),
            context=self.context,
            identity=dict(self.identity),
        )


class ServiceJob(BaseModel):
    """
    Job handle returned by queue push and pop.

    Lifecycle:
        1. QueueBridge builds the QueueJob from a Command
        2. Queue backend wraps it in a ServiceJob and stores it
        3. Consumer pops the ServiceJob
        4. execute(broker) replays the command through normal dispatch
    """

    job_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique job id assigned on push"
    )
    queue_name: Optional[str] = Field(
        default=None,
        description="Queue the job was pushed to"
    )
    priority: int = Field(
        default=0,
        description="Priority (higher pops first)"
    )
    content: QueueJob = Field(
        ...,
        description="Serialized command"
    )
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Backend or consumer metadata (e.g. last error)"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the job was pushed"
    )

    def get_content(self) -> QueueJob:
        return self.content

    def to_command(self) -> Command:
        return self.content.to_command()

    def execute(self, broker, until=None) -> ResponseCollection:
        """
        Replay the job through the broker's normal dispatch path.

        Args:
            broker: ServiceBroker to dispatch with; a job sent without a
                context runs in the queue context
            until: Optional early-termination predicate

        Returns:
            ResponseCollection from dispatch
        """
        command = self.to_command()
        if command.context is None:
            command.context = CommandContext.QUEUE.value
        return broker.dispatch(command, until)

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def to_queue_body(self) -> str:
        """Serialize to a JSON string for queue storage."""
        return self.model_dump_json()

    @classmethod
    def from_queue_body(cls, body: Union[str, bytes]) -> "ServiceJob":
        """Deserialize from queue storage."""
        return cls.model_validate_json(body)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "QueueJob",
    "ServiceJob",
    "encode_params",
    "decode_params",
]
