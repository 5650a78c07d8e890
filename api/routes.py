# ============================================================================
# API ROUTES
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: API - HTTP adapter for the service broker
# PURPOSE: Translate HTTP requests into broker calls and responses
# CREATED: 19 OCT 2026
# ============================================================================
"""
API Routes

RPC-style routes over the broker:

    {METHOD} /{service}                      operation from X-Service-Operation,
                                             or "http-<method>"
    {METHOD} /{service}/{operation}
    {METHOD} /{service}/{operation}/{path}   path segments appended as
                                             positional params

Names are converted to canonical form (valu.test -> Valu.Test,
find-by -> findBy) and validated. Params come from the query string (GET)
or the JSON / form body (other methods); a "q" parameter holding JSON
replaces them. The operation runs until the first implementation returns
and the first response is sent back in the {"d", "e"} envelope.

Errors map to statuses:
    PermissionDeniedError -> 403
    NotFoundError         -> 404
    other ServiceError    -> 500 (message)
    anything else         -> 500 ("Unknown exception")
A truthy "debug" query parameter re-raises instead.
"""

import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl

from fastapi import APIRouter, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from core.contracts import (
    CommandContext,
    canonical_operation_name,
    canonical_service_name,
    is_valid_operation_name,
    is_valid_service_name,
)
from core.errors import (
    NotFoundError,
    OperationNotFoundError,
    PermissionDeniedError,
    ServiceError,
    ServiceNotFoundError,
)
from core.models.command import normalize_params
from .schemas import ErrorDetail, ServiceResponse

logger = logging.getLogger(__name__)

router = APIRouter()

HEADER_OPERATION = "X-Service-Operation"
HEADER_ERRORS = "X-Service-Errors"
HEADER_ERRORS_VERBOSE = "verbose"

STATUS_SUCCESS = 200
STATUS_PERMISSION_DENIED = 403
STATUS_NOT_FOUND = 404
STATUS_UNKNOWN_EXCEPTION = 500

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "2000-01-01 00:00:00",
}

HTTP_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================
# Set by the main app at startup

_broker = None


def set_broker(broker) -> None:
    """Set the broker instance for dependency injection."""
    global _broker
    _broker = broker


def get_broker():
    if _broker is None:
        raise HTTPException(500, "Service broker not initialized")
    return _broker


# ============================================================================
# REQUEST PARSING
# ============================================================================

def fetch_service(raw: Optional[str]) -> str:
    """Canonical service name from the route, or ServiceNotFoundError."""
    if raw:
        service = canonical_service_name(raw)
        if is_valid_service_name(service):
            return service
    raise ServiceNotFoundError("Route doesn't contain service information")


def fetch_operation(request: Request, raw: Optional[str]) -> str:
    """Canonical operation name from route, header or HTTP method."""
    if raw is None:
        raw = request.headers.get(HEADER_OPERATION) or f"http-{request.method.lower()}"

    operation = canonical_operation_name(raw)
    if is_valid_operation_name(operation):
        return operation
    raise OperationNotFoundError("Route doesn't contain operation information")


async def fetch_params(request: Request, path: Optional[str]) -> Dict[Any, Any]:
    """Collect params from query/body, "q" override and extra path segments."""
    if request.method == "GET":
        params: Dict[Any, Any] = dict(request.query_params)
    else:
        params = await _read_body(request)
    params.pop("debug", None)

    if "q" in params:
        try:
            return normalize_params(json.loads(params["q"]))
        except (TypeError, ValueError) as e:
            raise ServiceError("Parameter q is not valid JSON: %ERROR%", {"ERROR": e}) from e

    if path:
        segments = [segment for segment in path.split("/") if segment]
        index = sum(1 for key in params if isinstance(key, int))
        for segment in segments:
            params[index] = segment
            index += 1

    return params


async def _read_body(request: Request) -> Dict[Any, Any]:
    content_type = request.headers.get("content-type", "")
    body = await request.body()
    if not body:
        return {}

    if content_type.startswith("application/json"):
        try:
            data = json.loads(body)
        except ValueError as e:
            raise ServiceError("Request body is not valid JSON: %ERROR%", {"ERROR": e}) from e
        return normalize_params(data)

    if content_type.startswith("application/x-www-form-urlencoded"):
        return dict(parse_qsl(body.decode("utf-8"), keep_blank_values=True))

    return {}


def _break(response: Any) -> bool:
    return True


def _execute(broker, service: str, operation: str, params: Dict[Any, Any], context: str) -> Any:
    return (
        broker.service(service)
        .context(context)
        .until(_break)
        .exec(operation, params)
        .first()
    )


# ============================================================================
# RESPONSE
# ============================================================================

def classify_exception(exception: Exception) -> int:
    """HTTP status for an exception raised during dispatch."""
    if isinstance(exception, PermissionDeniedError):
        return STATUS_PERMISSION_DENIED
    if isinstance(exception, NotFoundError):
        return STATUS_NOT_FOUND
    return STATUS_UNKNOWN_EXCEPTION


def build_error(exception: Exception, verbose: bool) -> ErrorDetail:
    """Error part of the envelope."""
    if isinstance(exception, ServiceError):
        if verbose:
            return ErrorDetail(m=exception.raw_message, c=exception.code, a=jsonable_encoder(exception.vars))
        return ErrorDetail(m=exception.message, c=exception.code)

    code = getattr(exception, "code", 0)
    return ErrorDetail(m="Unknown exception", c=code if isinstance(code, int) else 0)


def build_response(
    data: Any,
    status: int,
    exception: Optional[Exception] = None,
    verbose: bool = False,
) -> JSONResponse:
    envelope = ServiceResponse(
        d=jsonable_encoder(data),
        e=build_error(exception, verbose) if exception is not None else None,
    )
    return JSONResponse(
        content=envelope.to_body(),
        status_code=status,
        headers=NO_CACHE_HEADERS,
    )


# ============================================================================
# ROUTES
# ============================================================================

async def _handle(request: Request, service: str, operation: Optional[str], path: Optional[str]):
    broker = get_broker()
    debug = request.query_params.get("debug", "").lower() in ("1", "true", "yes")
    verbose = request.headers.get(HEADER_ERRORS, "").lower() == HEADER_ERRORS_VERBOSE

    status = STATUS_SUCCESS
    data = None
    exception: Optional[Exception] = None

    try:
        service_name = fetch_service(service)
        operation_name = fetch_operation(request, operation)
        params = await fetch_params(request, path)
        context = CommandContext.HTTP_GET if request.method == "GET" else CommandContext.HTTP

        data = await run_in_threadpool(
            _execute, broker, service_name, operation_name, params, context.value
        )
    except Exception as e:
        exception = e
        status = classify_exception(e)
        logger.error(f"{request.method} {request.url.path} failed: {type(e).__name__}: {e}")
        if debug:
            raise

    return build_response(data, status, exception, verbose)


@router.api_route("/{service}", methods=HTTP_METHODS, tags=["Services"])
async def call_service(request: Request, service: str):
    """Call a service; operation from header or HTTP method."""
    return await _handle(request, service, None, None)


@router.api_route("/{service}/{operation}", methods=HTTP_METHODS, tags=["Services"])
async def call_operation(request: Request, service: str, operation: str):
    """Call a service operation."""
    return await _handle(request, service, operation, None)


@router.api_route("/{service}/{operation}/{path:path}", methods=HTTP_METHODS, tags=["Services"])
async def call_operation_with_path(request: Request, service: str, operation: str, path: str):
    """Call a service operation with positional params in the path."""
    return await _handle(request, service, operation, path)


__all__ = [
    "router",
    "set_broker",
    "get_broker",
    "fetch_service",
    "fetch_operation",
    "fetch_params",
    "build_response",
    "classify_exception",
]
