"""Sidebar row view-model.

A row shows the feed icon once it has loaded, the display name, and an
unread badge when there is anything unread. Compact layouts add trailing
spacing after feed rows.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol
from urllib.parse import urljoin

import httpx

from .models import WebFeed

logger = logging.getLogger(__name__)

ICON_SIZE = 20
TRAILING_SPACING = 16


class RepresentedType(str, Enum):
    WEB_FEED = "webFeed"
    PSEUDO_FEED = "pseudoFeed"
    FOLDER = "folder"
    ACCOUNT = "account"
    UNKNOWN = "unknown"


@dataclass
class SidebarItem:
    """One entry in the sidebar."""

    name_for_display: str
    unread_count: int = 0
    represented_type: RepresentedType = RepresentedType.UNKNOWN
    feed: WebFeed | None = None


@dataclass(frozen=True)
class IconImage:
    data: bytes
    content_type: str


@dataclass(frozen=True)
class SidebarRow:
    """Rendered content of one sidebar row."""

    name: str
    icon: IconImage | None = None
    unread_count: int | None = None
    trailing_spacing: int = 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "has_icon": self.icon is not None,
            "unread_count": self.unread_count,
            "trailing_spacing": self.trailing_spacing,
        }


@dataclass(frozen=True)
class ContextMenuEntry:
    identifier: str
    title: str


INSPECTOR_ENTRY = ContextMenuEntry("inspector", "Inspector")


@dataclass(frozen=True)
class InspectorPanel:
    name: str
    represented_type: RepresentedType
    unread_count: int
    feed_url: str | None = None
    home_page_url: str | None = None


class IconDownloader(Protocol):
    async def icon_for(self, feed: WebFeed) -> IconImage | None:
        """Return the feed's icon, or None if there is none."""


def favicon_url(feed: WebFeed) -> str | None:
    """Icon URL for a feed: its declared icon, else the home page favicon."""
    if feed.icon_url:
        return feed.icon_url
    if feed.home_page_url:
        return urljoin(feed.home_page_url, "/favicon.ico")
    return None


class HTTPIconDownloader:
    """Downloads feed icons over HTTP."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 10.0):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def icon_for(self, feed: WebFeed) -> IconImage | None:
        url = favicon_url(feed)
        if url is None:
            return None

        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.debug("Icon download failed for %s: %s", url, e)
            return None

        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        if not content_type.startswith("image/"):
            logger.debug("Ignoring non-image icon response from %s (%s)", url, content_type)
            return None
        return IconImage(data=response.content, content_type=content_type)

    async def aclose(self) -> None:
        """Close the HTTP client if this downloader created it."""
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()


class FeedIconImageLoader:
    """Loads one feed icon in the background and notifies listeners when it arrives."""

    def __init__(self, downloader: IconDownloader):
        self._downloader = downloader
        self._listeners: list[Callable[[], None]] = []
        self._tasks: set[asyncio.Task] = set()
        self.image: IconImage | None = None

    def add_listener(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def load_image(self, feed: WebFeed) -> asyncio.Task:
        """Start loading the icon. Must be called from a running event loop."""
        task = asyncio.get_running_loop().create_task(self._load(feed))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _load(self, feed: WebFeed) -> None:
        try:
            image = await self._downloader.icon_for(feed)
        except Exception as e:
            logger.debug("Failed to load icon for %s: %s", feed.url, e)
            return
        if image is None:
            return

        self.image = image
        for listener in self._listeners:
            listener()


class SidebarItemView:
    """View-model for one sidebar row, its context menu and its inspector."""

    def __init__(
        self,
        item: SidebarItem,
        icon_loader: FeedIconImageLoader,
        compact_spacing: bool = False,
    ):
        self.item = item
        self.icon_loader = icon_loader
        self.compact_spacing = compact_spacing
        self.show_inspector = False

    def on_appear(self) -> asyncio.Task | None:
        if self.item.feed is None:
            return None
        return self.icon_loader.load_image(self.item.feed)

    def render(self) -> SidebarRow:
        item = self.item
        trailing = 0
        if self.compact_spacing and item.represented_type in (
            RepresentedType.WEB_FEED,
            RepresentedType.PSEUDO_FEED,
        ):
            trailing = TRAILING_SPACING

        return SidebarRow(
            name=item.name_for_display,
            icon=self.icon_loader.image,
            unread_count=item.unread_count if item.unread_count > 0 else None,
            trailing_spacing=trailing,
        )

    def context_menu(self) -> list[ContextMenuEntry]:
        return [INSPECTOR_ENTRY]

    def select_menu_entry(self, identifier: str) -> None:
        if identifier != INSPECTOR_ENTRY.identifier:
            raise ValueError(f"Unknown menu entry: {identifier}")
        self.show_inspector = True

    def dismiss_inspector(self) -> None:
        self.show_inspector = False

    def inspector(self) -> InspectorPanel | None:
        if not self.show_inspector:
            return None
        feed = self.item.feed
        return InspectorPanel(
            name=self.item.name_for_display,
            represented_type=self.item.represented_type,
            unread_count=self.item.unread_count,
            feed_url=feed.url if feed else None,
            home_page_url=feed.home_page_url if feed else None,
        )
