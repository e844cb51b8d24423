"""Tests for remote_changes.py — applying fetched zone changes locally."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from articlesync.models import ArticleStatus, Author
from articlesync.records import Record, RecordID, Reference, ReferenceAction, ZoneID
from articlesync.remote_changes import (
    ArticleChanges,
    ArticlesZoneDelegate,
    InMemoryArticleStore,
    article_from_record,
    article_id_from_record_name,
)

ZONE_ID = ZoneID("Articles")


def status_record(article_id, read=None, starred=None):
    record = Record("ArticleStatus", RecordID(f"s|{article_id}", ZONE_ID))
    record["read"] = read
    record["starred"] = starred
    return record


def article_record(article_id, **fields):
    record = Record("Article", RecordID(f"a|{article_id}", ZONE_ID))
    record["articleStatus"] = Reference(
        RecordID(f"s|{article_id}", ZONE_ID), ReferenceAction.DELETE_SELF
    )
    for key, value in fields.items():
        record[key] = value
    return record


@pytest.fixture
def store():
    store = MagicMock()
    store.apply_remote_changes = AsyncMock()
    return store


@pytest.fixture
def delegate(store):
    return ArticlesZoneDelegate(store)


class TestRecordNames:
    def test_status_prefix(self):
        assert article_id_from_record_name("s|abc") == "abc"

    def test_article_prefix(self):
        assert article_id_from_record_name("a|abc") == "abc"

    def test_id_containing_separator(self):
        assert article_id_from_record_name("s|feed|42") == "feed|42"

    def test_unknown_prefix(self):
        assert article_id_from_record_name("x|abc") is None
        assert article_id_from_record_name("plain") is None


class TestCollectChanges:
    def test_status_flags(self, delegate):
        changes = delegate.collect_changes(
            [
                status_record("1", read="1", starred="0"),
                status_record("2", read="0"),
                status_record("3", starred="1"),
            ],
            [],
        )

        assert changes.read_ids == {"1"}
        assert changes.unread_ids == {"2"}
        assert changes.starred_ids == {"3"}
        assert changes.unstarred_ids == {"1"}

    def test_article_takes_status_from_same_batch(self, delegate):
        changes = delegate.collect_changes(
            [article_record("1", title="Hello"), status_record("1", read="0", starred="1")],
            [],
        )

        assert len(changes.articles) == 1
        article = changes.articles[0]
        assert article.article_id == "1"
        assert article.title == "Hello"
        assert article.status == ArticleStatus(read=False, starred=True)

    def test_deleted_records(self, delegate):
        changes = delegate.collect_changes(
            [], [RecordID("s|1", ZONE_ID), RecordID("a|1", ZONE_ID), RecordID("s|2", ZONE_ID)]
        )
        assert changes.deleted_ids == {"1", "2"}

    def test_unknown_record_types_are_ignored(self, delegate):
        other = Record("Feed", RecordID("f|1", ZONE_ID))
        assert delegate.collect_changes([other], []).is_empty


class TestDelegate:
    @pytest.mark.asyncio
    async def test_passes_changes_to_store(self, delegate, store):
        await delegate.cloudkit_did_modify([status_record("1", read="1")], [])

        changes = store.apply_remote_changes.call_args[0][0]
        assert isinstance(changes, ArticleChanges)
        assert changes.read_ids == {"1"}

    @pytest.mark.asyncio
    async def test_nothing_to_apply(self, delegate, store):
        await delegate.cloudkit_did_modify([], [])
        store.apply_remote_changes.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_errors_propagate(self, delegate, store):
        store.apply_remote_changes.side_effect = RuntimeError("disk full")
        with pytest.raises(RuntimeError, match="disk full"):
            await delegate.cloudkit_did_modify([status_record("1", read="1")], [])


class TestArticleFromRecord:
    def test_decodes_fields(self):
        published = datetime(2024, 1, 1, tzinfo=timezone.utc)
        record = article_record(
            "1",
            webFeedURL="https://example.com/feed.xml",
            uniqueID="guid-1",
            contentHTML="<p>x</p>",
            datePublished=published,
            parsedAuthors=['{"name":"Ada","emailAddress":"ada@example.com"}'],
        )

        article = article_from_record(record, "1")

        assert article.web_feed.url == "https://example.com/feed.xml"
        assert article.unique_id == "guid-1"
        assert article.content_html == "<p>x</p>"
        assert article.date_published == published
        assert article.authors == (Author(name="Ada", email_address="ada@example.com"),)
        assert article.status == ArticleStatus()

    def test_missing_optional_fields(self):
        article = article_from_record(article_record("1"), "1")
        assert article.web_feed is None
        assert article.authors is None
        assert article.title is None


class TestInMemoryArticleStore:
    @pytest.mark.asyncio
    async def test_applies_status_flags(self):
        store = InMemoryArticleStore()
        await store.apply_remote_changes(
            ArticleChanges(read_ids={"1"}, starred_ids={"1"}, unread_ids={"2"})
        )

        assert store.status_for("1") == ArticleStatus(read=True, starred=True)
        assert store.status_for("2") == ArticleStatus(read=False, starred=False)

    @pytest.mark.asyncio
    async def test_stores_articles_with_their_status(self, delegate):
        store = InMemoryArticleStore()
        changes = delegate.collect_changes(
            [article_record("1", title="Hello"), status_record("1", read="1", starred="0")],
            [],
        )

        await store.apply_remote_changes(changes)

        assert store.articles["1"].title == "Hello"
        assert store.status_for("1") == ArticleStatus(read=True, starred=False)

    @pytest.mark.asyncio
    async def test_deletions_remove_article_and_status(self):
        store = InMemoryArticleStore()
        await store.apply_remote_changes(ArticleChanges(read_ids={"1"}))
        await store.apply_remote_changes(ArticleChanges(deleted_ids={"1", "missing"}))

        assert store.status_for("1") is None
        assert "1" not in store.articles
