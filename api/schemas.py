# ============================================================================
# API SCHEMAS
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: API - Response envelope
# PURPOSE: Pydantic models for the HTTP adapter response body
# CREATED: 19 OCT 2026
# ============================================================================
"""
API Schemas

Every HTTP response carries the same envelope:

    {"d": <data>}                                   success
    {"d": null, "e": {"m": message, "c": code}}      error
    {"d": null, "e": {"m": raw, "c": code, "a": {}}} error, verbose header
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Error part of the envelope."""
    m: str = Field(..., description="Error message (raw template when verbose)")
    c: int = Field(0, description="Error code")
    a: Optional[Dict[str, Any]] = Field(
        None,
        description="Template variables (verbose errors only)"
    )


class ServiceResponse(BaseModel):
    """Response envelope of the HTTP adapter."""
    d: Any = Field(None, description="First response of the dispatched operation")
    e: Optional[ErrorDetail] = Field(None, description="Error, when the call failed")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"d": {"id": "abc", "name": "report.pdf"}},
                {"d": None, "e": {"m": "Service 'Valu.Test' not found", "c": 4}},
            ]
        }
    }

    def to_body(self) -> Dict[str, Any]:
        """Envelope as a plain dict; "e" and "a" only when set."""
        body: Dict[str, Any] = {"d": self.d}
        if self.e is not None:
            body["e"] = self.e.model_dump(exclude_none=True)
        return body


__all__ = [
    "ErrorDetail",
    "ServiceResponse",
]
