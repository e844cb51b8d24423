"""Data models for articlesync."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NamedTuple


@dataclass(frozen=True)
class Author:
    """An article author. Every field is optional."""

    name: str | None = None
    url: str | None = None
    avatar_url: str | None = None
    email_address: str | None = None

    def to_dict(self) -> dict:
        values = {
            "name": self.name,
            "url": self.url,
            "avatarURL": self.avatar_url,
            "emailAddress": self.email_address,
        }
        return {key: value for key, value in values.items() if value is not None}

    def to_json(self) -> str:
        """Compact JSON form used in the parsedAuthors record field."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json(cls, text: str) -> "Author":
        data = json.loads(text)
        return cls(
            name=data.get("name"),
            url=data.get("url"),
            avatar_url=data.get("avatarURL"),
            email_address=data.get("emailAddress"),
        )


@dataclass(frozen=True)
class WebFeed:
    """A subscribed web feed."""

    url: str
    external_id: str | None = None
    name: str | None = None
    icon_url: str | None = None
    home_page_url: str | None = None


@dataclass
class ArticleStatus:
    """Local read/starred state of one article."""

    read: bool = False
    starred: bool = False


@dataclass(frozen=True, eq=False)
class Article:
    """An article and its content. Identity is the article ID."""

    article_id: str
    web_feed: WebFeed | None = None
    unique_id: str | None = None
    title: str | None = None
    content_html: str | None = None
    content_text: str | None = None
    url: str | None = None
    external_url: str | None = None
    summary: str | None = None
    image_url: str | None = None
    date_published: datetime | None = None
    date_modified: datetime | None = None
    authors: tuple[Author, ...] | None = None
    status: ArticleStatus = field(default_factory=ArticleStatus)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Article):
            return NotImplemented
        return self.article_id == other.article_id

    def __hash__(self) -> int:
        return hash(self.article_id)

    @property
    def is_worth_syncing(self) -> bool:
        """Read and unstarred articles are not kept remotely."""
        return not self.status.read or self.status.starred


class StatusKey(str, Enum):
    NEW = "new"
    READ = "read"
    STARRED = "starred"
    DELETED = "deleted"


@dataclass(frozen=True)
class SyncStatus:
    """A pending status change for one article."""

    article_id: str
    key: StatusKey
    flag: bool = True

    def to_dict(self) -> dict:
        return {
            "article_id": self.article_id,
            "key": self.key.value,
            "flag": self.flag,
        }


class StatusArticle(NamedTuple):
    """A status change, optionally paired with the article it belongs to."""

    status: SyncStatus
    article: Article | None = None
