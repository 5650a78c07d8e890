# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Model exports
# PURPOSE: Central export point for broker value objects and wire models
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

Value objects passed through dispatch (Command, ResponseCollection,
ServiceDescriptor) and the pydantic wire models used by the queue bridge
(QueueJob, ServiceJob).
"""

from core.models.command import Command, flatten_identity, normalize_params
from core.models.descriptor import (
    CallableSource,
    ClassSource,
    FactorySource,
    InstanceSource,
    ServiceDescriptor,
    coerce_source,
    import_object,
    source_for,
)
from core.models.queue_job import QueueJob, ServiceJob, decode_params, encode_params
from core.models.responses import ResponseCollection

__all__ = [
    # Command
    "Command",
    "flatten_identity",
    "normalize_params",
    # Descriptors
    "ServiceDescriptor",
    "ClassSource",
    "FactorySource",
    "InstanceSource",
    "CallableSource",
    "coerce_source",
    "source_for",
    "import_object",
    # Responses
    "ResponseCollection",
    # Queue
    "QueueJob",
    "ServiceJob",
    "encode_params",
    "decode_params",
]
