# ============================================================================
# API MODULE
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: API - Transport adapters
# PURPOSE: HTTP and console adapters over the service broker
# CREATED: 19 OCT 2026
# ============================================================================
"""
API Module

Thin translation layers between wire requests and broker calls:
- routes: FastAPI router with the {"d", "e"} response envelope
- console: argparse command line adapter
"""

from .routes import router, set_broker
from .schemas import ErrorDetail, ServiceResponse

__all__ = [
    "router",
    "set_broker",
    "ErrorDetail",
    "ServiceResponse",
]
