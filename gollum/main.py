"""
Main entry point for the Gollum bridge.
"""

from __future__ import annotations

import asyncio

import structlog
import uvicorn

from gollum.backend import BackendClient
from gollum.config import Configuration
from gollum.gateway import GatewayConfig, OriginPolicy, TransportGateway
from gollum.logging_utils import configure_logging

logger = structlog.get_logger(__name__)


def create_gateway(config: Configuration, backend: BackendClient) -> TransportGateway:
    """Create the transport gateway from configuration."""
    websocket_config = config.get_websocket_config()
    gateway_config = GatewayConfig(
        origin_policy=OriginPolicy(websocket_config["allowed_origins"]),
        websocket_path=websocket_config["path"],
        error_message=websocket_config["error_message"],
    )
    return TransportGateway(gateway_config, backend)


async def main() -> None:
    """Run the HTTP/WebSocket server until shutdown."""
    config = Configuration()
    logging_config = config.get_logging_config()
    configure_logging(logging_config["level"])

    server_config = config.get_server_config()
    backend_config = config.get_backend_config()

    logger.info(
        "Backend configured",
        url=backend_config["url"],
        model=backend_config["model"],
        fragment_delay=backend_config["fragment_delay"],
        timeout=backend_config["timeout"],
    )

    async with BackendClient(backend_config) as backend:
        gateway = create_gateway(config, backend)
        server = uvicorn.Server(
            uvicorn.Config(
                gateway.app,
                host=server_config["host"],
                port=server_config["port"],
                log_level=logging_config["level"].lower(),
            )
        )

        logger.info(
            "Starting Gollum server",
            host=server_config["host"],
            port=server_config["port"],
        )
        logger.info(f"Open http://localhost:{server_config['port']} in your browser")

        try:
            await server.serve()
        finally:
            logger.info("Application shutdown complete")


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
