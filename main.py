# ============================================================================
# SERVICE BROKER - MAIN APPLICATION
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Core - FastAPI application entry point
# PURPOSE: Serve broker operations over HTTP
# CREATED: 19 OCT 2026
# ============================================================================
"""
Service Broker Main Application

FastAPI application that:
1. Builds the broker from BROKER_CONFIG at startup
2. Exposes every service operation under /api
3. Reports broker configuration on /health

Usage:
    BROKER_CONFIG=broker.yaml uvicorn main:app --host 0.0.0.0 --port 8000
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from __version__ import __version__, BUILD_DATE, EPOCH
from api.routes import router, set_broker, get_broker
from broker import ServiceBroker, create_broker_from_file
from core.logging import configure_logging, get_logger, ComponentType

configure_logging()
logger = get_logger(__name__, ComponentType.API)


def load_broker() -> ServiceBroker:
    """Broker from BROKER_CONFIG, or an empty one."""
    config_path = os.environ.get("BROKER_CONFIG")
    if config_path:
        logger.info(f"Loading broker configuration from {config_path}")
        return create_broker_from_file(config_path)
    logger.warning("BROKER_CONFIG not set - starting with an empty broker")
    return ServiceBroker()


def create_app(broker: Optional[ServiceBroker] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        broker: Broker to serve; loaded at startup when None
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting Service Broker v{__version__} (Epoch {EPOCH}, Build {BUILD_DATE})")
        set_broker(broker if broker is not None else load_broker())
        logger.info(f"Services: {', '.join(get_broker().loader.service_names()) or 'none'}")

        yield

        set_broker(None)
        logger.info("Service Broker stopped")

    app = FastAPI(
        title="Service Broker",
        description=f"Epoch {EPOCH} service dispatch broker",
        version=__version__,
        lifespan=lifespan,
    )

    @app.get("/health", tags=["Health"])
    async def health():
        """Version and broker configuration."""
        return {
            "status": "healthy",
            "version": __version__,
            "build_date": BUILD_DATE,
            "broker": get_broker().describe(),
        }

    app.include_router(router, prefix="/api")
    return app


app = create_app()


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )
