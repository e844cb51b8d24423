"""articlesync — mirror feed-reader article state into a hosted record zone."""

from .articles_zone import ArticlesZone
from .models import Article, ArticleStatus, Author, StatusArticle, StatusKey, SyncStatus, WebFeed
from .remote_changes import ArticleChanges, ArticlesZoneDelegate, InMemoryArticleStore
from .server import main
from .sidebar import SidebarItem, SidebarItemView
from .zone import CloudSession, CloudZoneError, UserDeletedZoneError

__all__ = [
    "main",
    "ArticlesZone",
    "ArticlesZoneDelegate",
    "ArticleChanges",
    "InMemoryArticleStore",
    "CloudSession",
    "CloudZoneError",
    "UserDeletedZoneError",
    "Article",
    "ArticleStatus",
    "Author",
    "StatusArticle",
    "StatusKey",
    "SyncStatus",
    "WebFeed",
    "SidebarItem",
    "SidebarItemView",
]

__version__ = "0.1.0"
