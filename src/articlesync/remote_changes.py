"""Translate changes fetched from the Articles zone back into local updates."""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from .articles_zone import ArticleFields, StatusFields
from .models import Article, ArticleStatus, Author, WebFeed
from .records import Record, RecordID

logger = logging.getLogger(__name__)


@dataclass
class ArticleChanges:
    """Remote changes grouped by what the local store must do with them."""

    read_ids: set[str] = field(default_factory=set)
    unread_ids: set[str] = field(default_factory=set)
    starred_ids: set[str] = field(default_factory=set)
    unstarred_ids: set[str] = field(default_factory=set)
    deleted_ids: set[str] = field(default_factory=set)
    articles: list[Article] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.read_ids
            or self.unread_ids
            or self.starred_ids
            or self.unstarred_ids
            or self.deleted_ids
            or self.articles
        )


class LocalArticleStore(Protocol):
    async def apply_remote_changes(self, changes: ArticleChanges) -> None:
        """Apply remote status and content changes to local storage."""


class InMemoryArticleStore:
    """Process-local store of synced articles and their statuses."""

    def __init__(self):
        self.articles: dict[str, Article] = {}
        self.statuses: dict[str, ArticleStatus] = {}

    async def apply_remote_changes(self, changes: ArticleChanges) -> None:
        for article in changes.articles:
            self.articles[article.article_id] = article
            self.statuses[article.article_id] = article.status

        for article_id in changes.read_ids:
            self.statuses.setdefault(article_id, ArticleStatus()).read = True
        for article_id in changes.unread_ids:
            self.statuses.setdefault(article_id, ArticleStatus()).read = False
        for article_id in changes.starred_ids:
            self.statuses.setdefault(article_id, ArticleStatus()).starred = True
        for article_id in changes.unstarred_ids:
            self.statuses.setdefault(article_id, ArticleStatus()).starred = False

        for article_id in changes.deleted_ids:
            self.articles.pop(article_id, None)
            self.statuses.pop(article_id, None)

        logger.info(
            "Applied remote changes: %d articles stored, %d statuses tracked",
            len(self.articles),
            len(self.statuses),
        )

    def status_for(self, article_id: str) -> ArticleStatus | None:
        return self.statuses.get(article_id)


def article_id_from_record_name(record_name: str) -> str | None:
    """Strip the ``s|`` / ``a|`` prefix from a record name."""
    prefix, separator, article_id = record_name.partition("|")
    if not separator or prefix not in ("s", "a"):
        return None
    return article_id


class ArticlesZoneDelegate:
    """Zone delegate that feeds fetched Articles zone records to a local store."""

    def __init__(self, store: LocalArticleStore):
        self.store = store

    async def cloudkit_did_modify(self, changed: list[Record], deleted: list[RecordID]) -> None:
        changes = self.collect_changes(changed, deleted)
        if changes.is_empty:
            return
        await self.store.apply_remote_changes(changes)

    def collect_changes(self, changed: list[Record], deleted: list[RecordID]) -> ArticleChanges:
        changes = ArticleChanges()
        statuses: dict[str, ArticleStatus] = {}

        for record in changed:
            if record.record_type != StatusFields.RECORD_TYPE:
                continue
            article_id = article_id_from_record_name(record.record_name)
            if article_id is None:
                continue
            status = ArticleStatus(
                read=record.get(StatusFields.READ) == "1",
                starred=record.get(StatusFields.STARRED) == "1",
            )
            statuses[article_id] = status
            if StatusFields.READ in record:
                (changes.read_ids if status.read else changes.unread_ids).add(article_id)
            if StatusFields.STARRED in record:
                (changes.starred_ids if status.starred else changes.unstarred_ids).add(article_id)

        for record in changed:
            if record.record_type != ArticleFields.RECORD_TYPE:
                continue
            article_id = article_id_from_record_name(record.record_name)
            if article_id is None:
                continue
            changes.articles.append(
                article_from_record(record, article_id, statuses.get(article_id))
            )

        for record_id in deleted:
            article_id = article_id_from_record_name(record_id.record_name)
            if article_id is not None:
                changes.deleted_ids.add(article_id)

        logger.debug(
            "Collected %d articles and %d deletions from remote changes",
            len(changes.articles),
            len(changes.deleted_ids),
        )
        return changes


def article_from_record(
    record: Record, article_id: str, status: ArticleStatus | None = None
) -> Article:
    """Decode an Article record. Missing fields stay None."""
    web_feed_url = record.get(ArticleFields.WEB_FEED_URL)
    parsed_authors = record.get(ArticleFields.PARSED_AUTHORS)
    authors = tuple(Author.from_json(text) for text in parsed_authors) if parsed_authors else None

    return Article(
        article_id=article_id,
        web_feed=WebFeed(url=web_feed_url) if web_feed_url else None,
        unique_id=record.get(ArticleFields.UNIQUE_ID),
        title=record.get(ArticleFields.TITLE),
        content_html=record.get(ArticleFields.CONTENT_HTML),
        content_text=record.get(ArticleFields.CONTENT_TEXT),
        url=record.get(ArticleFields.URL),
        external_url=record.get(ArticleFields.EXTERNAL_URL),
        summary=record.get(ArticleFields.SUMMARY),
        image_url=record.get(ArticleFields.IMAGE_URL),
        date_published=record.get(ArticleFields.DATE_PUBLISHED),
        date_modified=record.get(ArticleFields.DATE_MODIFIED),
        authors=authors,
        status=status if status is not None else ArticleStatus(),
    )
