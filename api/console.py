#!/usr/bin/env python3
# ============================================================================
# CONSOLE ADAPTER
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: API - Command line adapter for the service broker
# PURPOSE: Run one service operation from the shell and print the result
# CREATED: 19 OCT 2026
# ============================================================================
"""
Console Adapter

Runs a single operation in the "cli" context and prints the first
response.

Usage:
    python -m api.console filesystem.file read '{"path": "/tmp/a.txt"}'
    python -m api.console user find-by '["email", "a@b.c"]' --config broker.yaml
    python -m api.console cache clear -s

Output:
    dict / list   pretty-printed JSON
    scalar        str(value)
    error         "Error: <message>" (with file:line when --verbose),
                  exit code taken from the error code

Environment Variables:
    BROKER_CONFIG: Broker configuration file when --config is not given
"""

import argparse
import json
import os
import sys
import traceback
from typing import Any, List, Optional, TextIO

from broker import ServiceBroker, create_broker_from_file
from core.contracts import (
    CommandContext,
    canonical_operation_name,
    canonical_service_name,
    is_valid_operation_name,
    is_valid_service_name,
)
from core.errors import OperationNotFoundError, ServiceError, ServiceNotFoundError
from core.logging import ComponentType, get_logger

logger = get_logger(__name__, ComponentType.CONSOLE)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run a service operation through the broker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("service", help="Service name (e.g. filesystem.file)")
    parser.add_argument("operation", help="Operation name (e.g. find-by)")
    parser.add_argument("query", nargs="?", default=None, help="JSON encoded params")
    parser.add_argument("-v", "--verbose", action="store_true", help="Include error location")
    parser.add_argument("-s", "--silent", action="store_true", help="Print nothing")
    parser.add_argument("--config", default=None, help="Broker configuration file (YAML)")
    return parser


def format_data(data: Any) -> str:
    """Render a response for the terminal."""
    if isinstance(data, (dict, list, tuple)):
        return json.dumps(data, indent=4, default=str) + "\n"
    if data is None:
        return ""
    return f"{data}\n"


def format_error(exception: BaseException, verbose: bool = False) -> str:
    message = str(exception)
    if verbose and exception.__traceback__ is not None:
        frame = traceback.extract_tb(exception.__traceback__)[-1]
        message = f"{message} ({frame.filename}:{frame.lineno})"
    return f"Error: {message}\n"


def exit_code(exception: BaseException) -> int:
    """Error code as process exit status; 1 when there is none."""
    code = getattr(exception, "code", None)
    if isinstance(code, int) and code > 0:
        return code
    return 1


def execute(broker, service: str, operation: str, query: Optional[str]) -> Any:
    """Canonicalize names, decode params and run the operation."""
    service_name = canonical_service_name(service)
    if not is_valid_service_name(service_name):
        raise ServiceNotFoundError("Invalid service name %SERVICE%", {"SERVICE": service})

    operation_name = canonical_operation_name(operation)
    if not is_valid_operation_name(operation_name):
        raise OperationNotFoundError("Invalid operation name %OPERATION%", {"OPERATION": operation})

    params = None
    if query:
        try:
            params = json.loads(query)
        except ValueError as e:
            raise ServiceError("Query is not valid JSON: %ERROR%", {"ERROR": e}) from e

    return (
        broker.service(service_name)
        .context(CommandContext.CLI.value)
        .until(lambda response: True)
        .exec(operation_name, params)
        .first()
    )


def run_console(
    argv: Optional[List[str]] = None,
    broker=None,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
) -> int:
    """
    Run the console adapter.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])
        broker: Broker to use; built from --config / BROKER_CONFIG when None
        stdout: Output stream for results
        stderr: Output stream for errors

    Returns:
        Process exit code
    """
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    args = build_parser().parse_args(argv)

    try:
        if broker is None:
            broker = _build_broker(args.config)
        data = execute(broker, args.service, args.operation, args.query)
    except Exception as e:
        logger.debug(f"{args.service}.{args.operation} failed: {type(e).__name__}: {e}")
        if not args.silent:
            stderr.write(format_error(e, args.verbose))
        return exit_code(e)

    if not args.silent:
        stdout.write(format_data(data))
    return 0


def _build_broker(config_path: Optional[str]) -> ServiceBroker:
    path = config_path or os.environ.get("BROKER_CONFIG")
    if path:
        return create_broker_from_file(path)
    return ServiceBroker()


def main() -> None:
    sys.exit(run_console())


__all__ = [
    "build_parser",
    "execute",
    "exit_code",
    "format_data",
    "format_error",
    "run_console",
]


if __name__ == "__main__":
    main()
