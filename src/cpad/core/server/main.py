"""Server entry point: ``python -m cpad.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from cpad.core.config.settings import get_settings
from cpad.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the padding MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.cpad_log_level.upper(), logging.INFO))

    logger = logging.getLogger(__name__)
    if not settings.cpad_allow_insecure_bind and not _is_loopback_host(settings.cpad_host):
        raise RuntimeError(
            "Refusing to bind the padding server to a non-loopback host without an auth layer. "
            "Set CPAD_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info("Starting Contextual Padding server on %s:%d", settings.cpad_host, settings.cpad_port)

    mcp = create_app()
    mcp.run(
        transport="streamable-http",
        host=settings.cpad_host,
        port=settings.cpad_port,
    )


if __name__ == "__main__":
    run()
