# ============================================================================
# WORKER MAIN ENTRY POINT
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Worker - Queue worker process entry point
# PURPOSE: Replay queued service jobs in a standalone process
# CREATED: 19 OCT 2026
# ============================================================================
"""
Worker Main Entry Point

Starts a queue worker process that:
1. Builds the broker from its YAML configuration
2. Serves health probes
3. Replays jobs from WORKER_QUEUE until shutdown

Usage:
    WORKER_QUEUE=jobs BROKER_CONFIG=broker.yaml python -m worker.main

Environment Variables:
    WORKER_ID: Unique worker identifier
    WORKER_QUEUE: Queue name to consume (required)
    WORKER_DEAD_LETTER_QUEUE: Queue for failed jobs
    BROKER_CONFIG: Broker configuration file (YAML)
    WORKER_POLL_INTERVAL: Seconds between polls of an empty queue
    HEALTH_PORT: Health probe port
    LOG_LEVEL / LOG_FORMAT: Logging level and format ("json")
"""

import asyncio
import sys
from typing import Optional

from aiohttp import web

from broker import ServiceBroker, create_broker_from_file
from core.errors import ServiceError
from core.logging import configure_logging, get_logger, ComponentType
from messaging.config import MessagingConfig
from worker.consumer import QueueConsumer, run_consumer
from __version__ import __version__, BUILD_DATE

logger = get_logger(__name__, ComponentType.WORKER)

# Worker state for health checks
_worker_healthy = True
_worker_status = "starting"
_worker_config: Optional[MessagingConfig] = None
_consumer: Optional[QueueConsumer] = None


# ============================================================================
# HEALTH SERVER
# ============================================================================

async def health_handler(request):
    """
    Health check endpoint.

    Returns version, queue configuration and consumer stats.
    """
    response_data = {
        "status": "healthy" if _worker_healthy else "unhealthy",
        "worker_status": _worker_status,
        "version": __version__,
        "build_date": BUILD_DATE,
        "queue": _worker_config.worker_queue if _worker_config else "unknown",
        "worker_id": _worker_config.worker_id if _worker_config else "unknown",
        "consuming": _consumer.running if _consumer else False,
    }

    if _consumer:
        response_data["stats"] = _consumer.stats()

    if _worker_healthy:
        return web.json_response(response_data)
    return web.json_response(response_data, status=503)


def create_health_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/", health_handler)
    app.router.add_get("/health", health_handler)
    app.router.add_get("/livez", health_handler)
    app.router.add_get("/readyz", health_handler)
    return app


async def start_health_server(port: int = 8080) -> web.AppRunner:
    """Start minimal HTTP server for health probes."""
    runner = web.AppRunner(create_health_app())
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", port)
    await site.start()
    logger.info(f"Health server started on port {port}")
    return runner


# ============================================================================
# MAIN
# ============================================================================

def build_broker(config: MessagingConfig) -> ServiceBroker:
    """Build the broker from BROKER_CONFIG, or an empty one."""
    if config.broker_config_path:
        return create_broker_from_file(config.broker_config_path)
    logger.warning("BROKER_CONFIG not set - starting with an empty broker")
    return ServiceBroker()


async def main() -> None:
    """Main entry point."""
    global _worker_healthy, _worker_status, _worker_config, _consumer

    configure_logging()

    logger.info("=" * 60)
    logger.info(f"Service Worker Starting v{__version__}")
    logger.info("=" * 60)

    config = MessagingConfig.from_env()
    _worker_config = config
    logger.info(f"Worker ID: {config.worker_id}")
    logger.info(f"Queue: {config.worker_queue}")
    logger.info(f"Dead-letter queue: {config.dead_letter_queue or 'none'}")

    health_runner = await start_health_server(config.health_port)

    try:
        broker = build_broker(config)
        if broker.queue_manager is None or not broker.queue_manager.has(config.worker_queue):
            raise ServiceError("Queue %NAME% is not configured", {"NAME": config.worker_queue})
    except ServiceError as e:
        logger.error(f"Broker configuration failed: {e}")
        _worker_healthy = False
        _worker_status = "misconfigured"
        await health_runner.cleanup()
        sys.exit(1)

    _worker_status = "running"
    _consumer = QueueConsumer.from_config(broker, config)

    try:
        await run_consumer(broker, config, consumer=_consumer)
    except Exception as e:
        logger.exception(f"Worker failed: {e}")
        _worker_healthy = False
        _worker_status = f"error: {str(e)[:100]}"
        sys.exit(1)
    finally:
        await health_runner.cleanup()

    logger.info("Service Worker stopped")


def run() -> None:
    """Synchronous entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
