"""
Tests for models.entry

Schema validation of webhook payloads and the content eligibility gate.
"""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from models.entry import Entry, EntryBatch, queue_key
from tests.helpers import make_entry


MINIFLUX_PAYLOAD = {
    "event_type": "new_entries",
    "feed": {"id": 7, "title": "Example Feed", "site_url": "https://example.com"},
    "entries": [
        {
            "id": 1001,
            "user_id": 1,
            "feed_id": 7,
            "status": "unread",
            "hash": "abc",
            "title": "First post",
            "url": "https://example.com/1",
            "published_at": "2024-01-01T00:00:00Z",
            "content": "<p>Hello</p>",
            "tags": ["a"],
        },
        {
            "id": 1002,
            "feed_id": 7,
            "title": "Second post",
            "url": "https://example.com/2",
            "content": "",
        },
    ],
}


class TestEntryBatch:
    def test_parses_miniflux_payload_and_ignores_extras(self):
        batch = EntryBatch.model_validate_json(json.dumps(MINIFLUX_PAYLOAD))

        assert batch.event_type == "new_entries"
        assert [e.id for e in batch.entries] == [1001, 1002]
        assert batch.entries[0].title == "First post"
        assert "user_id" not in batch.entries[0].model_dump()

    def test_missing_entries_is_rejected(self):
        with pytest.raises(ValidationError):
            EntryBatch.model_validate_json('{"event_type": "new_entries"}')

    def test_entry_missing_required_field_is_rejected(self):
        payload = {"entries": [{"id": 1, "title": "t", "url": "u", "feed_id": 1}]}
        with pytest.raises(ValidationError):
            EntryBatch.model_validate_json(json.dumps(payload))

    @pytest.mark.parametrize("field", ["id", "feed_id"])
    @pytest.mark.parametrize("value", ["abc", "42", 1.5, True, -1])
    def test_non_integer_id_is_rejected(self, field, value):
        entry = {"id": 1, "title": "t", "url": "u", "content": "c", "feed_id": 1}
        entry[field] = value
        with pytest.raises(ValidationError):
            EntryBatch.model_validate_json(json.dumps({"entries": [entry]}))

    def test_zero_ids_are_accepted(self):
        payload = {"entries": [{"id": 0, "title": "t", "url": "u", "content": "c", "feed_id": 0}]}

        entry = EntryBatch.model_validate_json(json.dumps(payload)).entries[0]

        assert (entry.id, entry.feed_id) == (0, 0)

    def test_invalid_json_is_rejected(self):
        with pytest.raises(ValidationError):
            EntryBatch.model_validate_json(b"{not json")

    def test_empty_batch_is_valid(self):
        assert EntryBatch.model_validate_json('{"entries": []}').entries == []


class TestEntry:
    def test_queue_key(self):
        assert make_entry(42).queue_key == "entry:42"
        assert queue_key(42) == "entry:42"

    def test_round_trips_through_json(self):
        entry = make_entry(5)
        assert Entry.model_validate_json(entry.model_dump_json()) == entry

    @pytest.mark.parametrize(
        "content, eligible",
        [
            ("", False),
            ("   \n\t  ", False),
            ("x" * 499, False),
            ("x" * 500, True),
            ("   " + "x" * 499 + "   ", False),
            ("\n" + "x" * 500 + "\n", True),
        ],
    )
    def test_is_eligible(self, content, eligible):
        assert make_entry(1, content=content).is_eligible(500) is eligible

    def test_zero_threshold_still_requires_content(self):
        assert make_entry(1, content="  ").is_eligible(0) is False
        assert make_entry(1, content="x").is_eligible(0) is True
