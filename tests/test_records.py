"""Tests for records.py — wire encoding of record fields."""

from datetime import datetime, timezone

import pytest

from articlesync.records import (
    Query,
    Record,
    RecordID,
    Reference,
    ReferenceAction,
    ZoneID,
    encode_field,
)

ZONE_ID = ZoneID("Articles")


class TestZoneID:
    def test_current_user_owner_is_omitted(self):
        assert ZONE_ID.to_dict() == {"zoneName": "Articles"}

    def test_other_owner_is_sent(self):
        zone_id = ZoneID("Articles", owner_name="_abc")
        assert zone_id.to_dict() == {"zoneName": "Articles", "ownerRecordName": "_abc"}


class TestEncodeField:
    def test_string(self):
        assert encode_field("1") == {"value": "1", "type": "STRING"}

    def test_string_list(self):
        assert encode_field(["a", "b"]) == {"value": ["a", "b"], "type": "STRING_LIST"}

    def test_timestamp_in_milliseconds(self):
        value = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert encode_field(value) == {"value": 1704067200000, "type": "TIMESTAMP"}

    def test_naive_timestamp_treated_as_utc(self):
        assert encode_field(datetime(2024, 1, 1))["value"] == 1704067200000

    def test_reference(self):
        reference = Reference(RecordID("s|1", ZONE_ID), ReferenceAction.DELETE_SELF)
        assert encode_field(reference) == {
            "value": {
                "recordName": "s|1",
                "zoneID": {"zoneName": "Articles"},
                "action": "DELETE_SELF",
            },
            "type": "REFERENCE",
        }

    def test_integer(self):
        assert encode_field(5) == {"value": 5, "type": "INT64"}

    def test_booleans_are_rejected(self):
        with pytest.raises(TypeError):
            encode_field(True)

    def test_unsupported_value(self):
        with pytest.raises(TypeError):
            encode_field({"a": 1})


class TestRecord:
    def test_assigning_none_omits_field(self):
        record = Record("Article", RecordID("a|1", ZONE_ID))
        record["title"] = "Title"
        record["summary"] = None
        assert "title" in record
        assert "summary" not in record

    def test_assigning_none_removes_existing_field(self):
        record = Record("Article", RecordID("a|1", ZONE_ID))
        record["title"] = "Title"
        record["title"] = None
        assert record.get("title") is None

    def test_to_dict(self):
        record = Record("ArticleStatus", RecordID("s|1", ZONE_ID))
        record["read"] = "1"
        assert record.to_dict() == {
            "recordName": "s|1",
            "recordType": "ArticleStatus",
            "fields": {"read": {"value": "1", "type": "STRING"}},
        }

    def test_from_dict_decodes_typed_fields(self):
        record = Record.from_dict(
            {
                "recordName": "a|1",
                "recordType": "Article",
                "fields": {
                    "title": {"value": "Hello", "type": "STRING"},
                    "datePublished": {"value": 1704067200000, "type": "TIMESTAMP"},
                    "parsedAuthors": {"value": ['{"name":"Ada"}'], "type": "STRING_LIST"},
                    "articleStatus": {
                        "value": {"recordName": "s|1", "action": "DELETE_SELF"},
                        "type": "REFERENCE",
                    },
                },
            },
            ZONE_ID,
        )

        assert record.record_id == RecordID("a|1", ZONE_ID)
        assert record["title"] == "Hello"
        assert record["datePublished"] == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert record["parsedAuthors"] == ['{"name":"Ada"}']
        assert record["articleStatus"] == Reference(
            RecordID("s|1", ZONE_ID), ReferenceAction.DELETE_SELF
        )


class TestQuery:
    def test_equals_filter(self):
        query = Query("ArticleStatus", {"webFeedExternalID": "feed-1"})
        assert query.to_dict()["filterBy"] == [
            {
                "fieldName": "webFeedExternalID",
                "comparator": "EQUALS",
                "fieldValue": {"value": "feed-1", "type": "STRING"},
            }
        ]
