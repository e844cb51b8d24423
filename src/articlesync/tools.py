"""MCP tool definitions for article sync.

Each tool does exactly one thing. All exceptions are caught at the
tool boundary and returned as "Error: ..." strings so the MCP protocol
never sees an uncaught exception.
"""

import logging

from fastmcp import FastMCP

from .articles_zone import ArticlesZone
from .models import StatusArticle, StatusKey, SyncStatus

logger = logging.getLogger(__name__)


def _status_changes(article_ids: list[str], key: StatusKey, flag: bool) -> list[StatusArticle]:
    """Status-only changes: no article content is sent."""
    return [StatusArticle(SyncStatus(article_id, key, flag)) for article_id in article_ids]


def register_tools(mcp: FastMCP, zone: ArticlesZone) -> None:
    """Register all sync tools on the given MCP server instance."""

    async def _apply(name: str, article_ids: list[str], key: StatusKey, flag: bool) -> str:
        try:
            if not article_ids:
                return "OK"
            await zone.modify_articles(_status_changes(article_ids, key, flag))
            return "OK"
        except Exception as e:
            logger.error("%s failed: %s", name, e, exc_info=True)
            return f"Error: {e}"

    @mcp.tool()
    async def refresh_articles() -> str:
        """Pull outstanding article changes from the Articles zone.

        Returns "OK" on success or an error message.
        """
        try:
            await zone.refresh_articles()
            return "OK"
        except Exception as e:
            logger.error("refresh_articles failed: %s", e, exc_info=True)
            return f"Error: {e}"

    @mcp.tool()
    async def mark_as_read(article_ids: list[str]) -> str:
        """Mark articles as read.

        Args:
            article_ids: List of article IDs to mark as read.

        Returns "OK" on success or an error message.
        """
        return await _apply("mark_as_read", article_ids, StatusKey.READ, True)

    @mcp.tool()
    async def mark_as_unread(article_ids: list[str]) -> str:
        """Mark articles as unread.

        Args:
            article_ids: List of article IDs to mark as unread.

        Returns "OK" on success or an error message.
        """
        return await _apply("mark_as_unread", article_ids, StatusKey.READ, False)

    @mcp.tool()
    async def star_articles(article_ids: list[str]) -> str:
        """Star articles.

        Args:
            article_ids: List of article IDs to star.

        Returns "OK" on success or an error message.
        """
        return await _apply("star_articles", article_ids, StatusKey.STARRED, True)

    @mcp.tool()
    async def unstar_articles(article_ids: list[str]) -> str:
        """Remove the star from articles.

        Args:
            article_ids: List of article IDs to unstar.

        Returns "OK" on success or an error message.
        """
        return await _apply("unstar_articles", article_ids, StatusKey.STARRED, False)

    @mcp.tool()
    async def delete_feed_articles(feed_external_id: str) -> str:
        """Delete every synced article of a feed.

        Args:
            feed_external_id: External ID of the removed feed.

        Returns "OK" on success or an error message.
        """
        try:
            await zone.delete_articles(feed_external_id)
            return "OK"
        except Exception as e:
            logger.error("delete_feed_articles failed: %s", e, exc_info=True)
            return f"Error: {e}"
