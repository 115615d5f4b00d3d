"""PoolCare server entry point: ``python -m poolcare.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from poolcare.core.config.settings import get_settings
from poolcare.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host in {"localhost"}:
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the PoolCare MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.pool_log_level.upper(), logging.INFO))

    logger = logging.getLogger(__name__)
    if not settings.pool_allow_insecure_bind and not _is_loopback_host(settings.pool_host):
        raise RuntimeError(
            "Refusing to bind PoolCare server to a non-loopback host without an auth layer. "
            "Set POOL_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info(
        "Starting PoolCare server on %s:%d",
        settings.pool_host,
        settings.pool_port,
    )

    mcp = create_app()
    mcp.run(
        transport="streamable-http",
        host=settings.pool_host,
        port=settings.pool_port,
    )


if __name__ == "__main__":
    run()
