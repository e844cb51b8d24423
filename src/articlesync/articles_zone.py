"""Mirror of local article content and read/starred status in the Articles zone.

Each synced article is stored as two records: an ``ArticleStatus`` record
keyed ``s|<articleID>`` and an ``Article`` record keyed ``a|<articleID>``.
The article record references its status record with DELETE_SELF, so
deleting a status record removes the article record too.
"""

import logging
from collections.abc import Iterable, Sequence

from .models import Article, StatusArticle, StatusKey, SyncStatus
from .records import Query, Record, RecordID, Reference, ReferenceAction, ZoneID
from .zone import CloudSession, CloudZone, UserDeletedZoneError, ZoneDelegate

logger = logging.getLogger(__name__)

ZONE_ID = ZoneID("Articles")


class ArticleFields:
    RECORD_TYPE = "Article"

    ARTICLE_STATUS = "articleStatus"
    WEB_FEED_URL = "webFeedURL"
    UNIQUE_ID = "uniqueID"
    TITLE = "title"
    CONTENT_HTML = "contentHTML"
    CONTENT_TEXT = "contentText"
    URL = "url"
    EXTERNAL_URL = "externalURL"
    SUMMARY = "summary"
    IMAGE_URL = "imageURL"
    DATE_PUBLISHED = "datePublished"
    DATE_MODIFIED = "dateModified"
    PARSED_AUTHORS = "parsedAuthors"


class StatusFields:
    RECORD_TYPE = "ArticleStatus"

    WEB_FEED_EXTERNAL_ID = "webFeedExternalID"
    READ = "read"
    STARRED = "starred"


def status_record_name(article_id: str) -> str:
    return f"s|{article_id}"


def article_record_name(article_id: str) -> str:
    return f"a|{article_id}"


def _flag(value: bool) -> str:
    return "1" if value else "0"


class ArticlesZone(CloudZone):
    """Sync adapter between local articles and the Articles zone."""

    def __init__(self, session: CloudSession, delegate: ZoneDelegate | None = None):
        super().__init__(session, ZONE_ID, delegate)

    async def refresh_articles(self) -> None:
        """Pull outstanding remote changes into the delegate.

        If the zone was deleted by the user, it is recreated and the fetch
        retried once. The retry's outcome is the result.
        """
        try:
            await self.fetch_changes_in_zone()
        except UserDeletedZoneError:
            logger.info("Articles zone was deleted, recreating before refresh")
            await self.create_zone_record()
            await self.fetch_changes_in_zone()

    async def save_new_articles(self, articles: Iterable[Article]) -> None:
        """Create records for new articles that are unread or starred."""
        records: list[Record] = []
        for article in articles:
            if not article.is_worth_syncing:
                continue
            status = SyncStatus(article.article_id, StatusKey.NEW, True)
            records.append(self._make_status_record(StatusArticle(status, article)))
            records.extend(self._make_article_records(article))

        if not records:
            return
        await self.save_if_new(records)

    async def delete_articles(self, web_feed_external_id: str) -> None:
        """Delete all status records of one feed; article records follow by cascade."""
        query = Query(
            StatusFields.RECORD_TYPE,
            {StatusFields.WEB_FEED_EXTERNAL_ID: web_feed_external_id},
        )
        await self.delete(query)

    async def modify_articles(self, status_articles: Sequence[StatusArticle]) -> None:
        """Reconcile pending status changes with the zone.

        New statuses are created, starred and unread statuses are updated,
        deleted statuses are removed. Anything else (marking read, unstarring)
        both updates the status record and queues it for deletion.
        """
        await self._modify_articles(status_articles, retry_on_deleted_zone=True)

    async def _modify_articles(
        self,
        status_articles: Sequence[StatusArticle],
        retry_on_deleted_zone: bool,
    ) -> None:
        if not status_articles:
            return

        new_records, modify_records, delete_record_ids = self._classify(status_articles)

        try:
            await self.save_if_new(new_records)
        except UserDeletedZoneError:
            if not retry_on_deleted_zone:
                raise
            logger.info("Articles zone was deleted, recreating before modify")
            await self.create_zone_record()
            await self._modify_articles(status_articles, retry_on_deleted_zone=False)
            return

        await self.modify(modify_records, delete_record_ids)

    def _classify(
        self, status_articles: Sequence[StatusArticle]
    ) -> tuple[list[Record], list[Record], list[RecordID]]:
        new_records: list[Record] = []
        modify_records: list[Record] = []
        delete_record_ids: list[RecordID] = []

        for status_article in status_articles:
            status, article = status_article
            match (status.key, status.flag):
                case (StatusKey.NEW, True):
                    new_records.append(self._make_status_record(status_article))
                    if article is not None:
                        new_records.extend(self._make_article_records(article))
                case (StatusKey.STARRED, True) | (StatusKey.READ, False):
                    modify_records.append(self._make_status_record(status_article))
                    if article is not None:
                        modify_records.extend(self._make_article_records(article))
                case (StatusKey.DELETED, True):
                    delete_record_ids.append(self._status_record_id(status.article_id))
                case _:
                    modify_records.append(self._make_status_record(status_article))
                    delete_record_ids.append(self._status_record_id(status.article_id))

        return new_records, modify_records, delete_record_ids

    def _status_record_id(self, article_id: str) -> RecordID:
        return RecordID(status_record_name(article_id), self.zone_id)

    def _make_status_record(self, status_article: StatusArticle) -> Record:
        status, article = status_article
        record = Record(StatusFields.RECORD_TYPE, self._status_record_id(status.article_id))

        if article is not None and article.web_feed is not None:
            record[StatusFields.WEB_FEED_EXTERNAL_ID] = article.web_feed.external_id

        if article is not None:
            record[StatusFields.READ] = _flag(article.status.read)
            record[StatusFields.STARRED] = _flag(article.status.starred)
        elif status.key == StatusKey.READ:
            record[StatusFields.READ] = _flag(status.flag)
        elif status.key == StatusKey.STARRED:
            record[StatusFields.STARRED] = _flag(status.flag)

        return record

    def _make_article_records(self, article: Article) -> list[Record]:
        record_id = RecordID(article_record_name(article.article_id), self.zone_id)
        record = Record(ArticleFields.RECORD_TYPE, record_id)

        record[ArticleFields.ARTICLE_STATUS] = Reference(
            self._status_record_id(article.article_id), ReferenceAction.DELETE_SELF
        )
        record[ArticleFields.WEB_FEED_URL] = article.web_feed.url if article.web_feed else None
        record[ArticleFields.UNIQUE_ID] = article.unique_id
        record[ArticleFields.TITLE] = article.title
        record[ArticleFields.CONTENT_HTML] = article.content_html
        record[ArticleFields.CONTENT_TEXT] = article.content_text
        record[ArticleFields.URL] = article.url
        record[ArticleFields.EXTERNAL_URL] = article.external_url
        record[ArticleFields.SUMMARY] = article.summary
        record[ArticleFields.IMAGE_URL] = article.image_url
        record[ArticleFields.DATE_PUBLISHED] = article.date_published
        record[ArticleFields.DATE_MODIFIED] = article.date_modified

        if article.authors:
            record[ArticleFields.PARSED_AUTHORS] = [author.to_json() for author in article.authors]

        return [record]
