"""MCP Server entry point for article sync.

Runs FastMCP with Streamable HTTP transport so MCP clients can trigger
refreshes and push status changes via HTTP POST to /mcp.
"""

import asyncio
import logging
import signal
import sys

from fastmcp import FastMCP

from .articles_zone import ArticlesZone
from .config import load_config
from .remote_changes import ArticlesZoneDelegate, InMemoryArticleStore, LocalArticleStore
from .tools import register_tools
from .zone import CloudSession

logging.basicConfig(
    stream=sys.stderr,
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)


def build_zone(session: CloudSession, store: LocalArticleStore) -> ArticlesZone:
    """Articles zone whose fetched changes are applied to the given store."""
    return ArticlesZone(session, ArticlesZoneDelegate(store))


def main() -> None:
    """Run the article sync MCP server."""
    config = load_config()
    # The zone only holds a weak reference; this scope keeps the session alive.
    session = CloudSession(config)
    zone = build_zone(session, InMemoryArticleStore())

    mcp = FastMCP("articlesync")
    register_tools(mcp, zone)

    def handle_shutdown(signum: int, frame: object) -> None:
        logger.info("Received shutdown signal, closing connections...")
        asyncio.run(session.aclose())
        sys.exit(0)

    signal.signal(signal.SIGTERM, handle_shutdown)
    signal.signal(signal.SIGINT, handle_shutdown)

    logger.info(
        "Starting article sync MCP server on %s:%d (streamable-http), container %s",
        config.server_host,
        config.server_port,
        config.cloudkit_container,
    )
    mcp.run(
        transport="streamable-http",
        host=config.server_host,
        port=config.server_port,
    )


if __name__ == "__main__":
    main()
