# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Core - Structured logging with dispatch context
# PURPOSE: Consistent, queryable logging across broker, bridge and adapters
# CREATED: 19 OCT 2026
# ============================================================================
"""
Structured Logging

Every log line emitted while a command is being dispatched carries the
service, operation and command context it belongs to. Queue replays add
the job id, queue name and worker id.

Context lives in a ContextVar rather than thread-local storage: HTTP
dispatch runs on the FastAPI threadpool (which copies the caller's
context) and queue consumption runs inside an asyncio loop, where several
jobs may share one thread.

Usage:
    from core.logging import get_logger, log_context, ComponentType

    logger = get_logger(__name__, ComponentType.BROKER)

    with log_context(service="Valu.Test", operation="run"):
        logger.info("Dispatching", extra={"implementations": 2})

Environment:
    LOG_LEVEL   DEBUG / INFO / WARNING / ERROR (default INFO)
    LOG_FORMAT  "json" for StructuredFormatter, anything else for HumanFormatter
"""

import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Union


class ComponentType(str, Enum):
    """Which part of the dispatch pipeline emitted a record."""
    BROKER = "broker"
    LOADER = "loader"
    EVENTS = "events"
    MESSAGING = "messaging"
    WORKER = "worker"
    API = "api"
    CONSOLE = "console"
    SERVICE = "service"


# Third-party loggers that are noisy at INFO
_QUIET_LOGGERS = (
    "azure.core.pipeline.policies.http_logging_policy",
    "azure.servicebus",
    "azure.identity",
    "uamqp",
)


# ============================================================================
# DISPATCH CONTEXT
# ============================================================================

@dataclass(frozen=True)
class LogContext:
    """Fields describing the dispatch currently in progress."""
    service: Optional[str] = None
    operation: Optional[str] = None
    context: Optional[str] = None
    job_id: Optional[str] = None
    queue_name: Optional[str] = None
    worker_id: Optional[str] = None
    correlation_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def merged(self, **values: Any) -> "LogContext":
        """Copy with the named fields replaced; unknown keys land in extra."""
        known = {f.name for f in fields(self)} - {"extra"}
        updates = {k: values.pop(k) for k in list(values) if k in known}
        extra = {**self.extra, **values.pop("extra", {}), **values}
        return replace(self, extra=extra, **updates)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "extra" and getattr(self, f.name) is not None
        }
        result.update(self.extra)
        return result


_current: ContextVar[LogContext] = ContextVar("dispatch_log_context", default=LogContext())


def get_current_context() -> LogContext:
    return _current.get()


@contextmanager
def log_context(**values: Any) -> Iterator[LogContext]:
    """
    Layer dispatch fields over the enclosing context for the duration of
    the block. Fields not given are inherited from the enclosing block.

    Example:
        with log_context(job_id=job.job_id, queue_name="jobs"):
            broker.execute(job.service, job.operation, job.params)
    """
    token = _current.set(_current.get().merged(**values))
    try:
        yield _current.get()
    finally:
        _current.reset(token)


# ============================================================================
# FORMATTERS
# ============================================================================

def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation."""

    def __init__(self, include_source: bool = True):
        super().__init__()
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": _utc_timestamp(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        component = getattr(record, "component", None)
        if component:
            payload["component"] = component

        dispatch = get_current_context().to_dict()
        if dispatch:
            payload["context"] = dispatch

        data = getattr(record, "data", None)
        if data:
            payload["data"] = data

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        if self.include_source:
            payload["source"] = f"{record.pathname}:{record.lineno} ({record.funcName})"

        return json.dumps(payload, default=str)


class HumanFormatter(logging.Formatter):
    """
    Single-line format for terminals:

        2026-10-19 12:00:00 INFO     broker.broker [Valu.Test:run, ctx=cli]: Dispatched
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        line = f"{timestamp} {record.levelname:<8} {record.name}{self._dispatch_tag()}: {record.getMessage()}"

        data = getattr(record, "data", None)
        if data:
            line += f" {data}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line

    @staticmethod
    def _dispatch_tag() -> str:
        current = get_current_context()
        parts = []
        if current.service:
            parts.append(f"{current.service}:{current.operation}" if current.operation else current.service)
        if current.context:
            parts.append(f"ctx={current.context}")
        if current.job_id:
            parts.append(f"job={current.job_id}")
        if current.queue_name:
            parts.append(f"queue={current.queue_name}")
        return f" [{', '.join(parts)}]" if parts else ""


# ============================================================================
# LOGGERS
# ============================================================================

class ContextLogger(logging.LoggerAdapter):
    """
    Tags each record with its component and moves caller-supplied
    ``extra`` under a single ``data`` attribute, so arbitrary keys never
    collide with LogRecord attributes.
    """

    def process(self, msg, kwargs):
        kwargs["extra"] = {
            "component": self.extra.get("component"),
            "data": dict(kwargs.get("extra") or {}),
        }
        return msg, kwargs


def get_logger(name: str, component: Optional[ComponentType] = None) -> ContextLogger:
    """Context-aware logger for ``name``, tagged with ``component``."""
    value = component.value if isinstance(component, ComponentType) else component
    return ContextLogger(logging.getLogger(name), {"component": value})


def configure_logging(
    level: Union[str, int, None] = None,
    json_output: Optional[bool] = None,
    include_source: bool = True,
) -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Log level; defaults to LOG_LEVEL or INFO
        json_output: JSON records; defaults to LOG_FORMAT == "json"
        include_source: Include file/line in JSON records
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    if json_output is None:
        json_output = os.environ.get("LOG_FORMAT", "").lower() == "json"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        StructuredFormatter(include_source=include_source) if json_output else HumanFormatter()
    )

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def log_checkpoint(
    name: str,
    data: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Record a named dispatch milestone ("dispatch_aborted", "job_dead_lettered")
    together with the current dispatch context.
    """
    target = logger or logging.getLogger("checkpoint")
    payload = {"checkpoint": name, **get_current_context().to_dict(), **(data or {})}
    target.info(f"CHECKPOINT: {name}", extra={"data": payload})


__all__ = [
    "ComponentType",
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
    "log_checkpoint",
]
