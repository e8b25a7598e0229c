"""Tests for the Supabase-backed ContentStore (mocked client)."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from weave.engine import RelevanceEngine
from weave.protocols import InvalidInputError, NotFoundError, StorageError
from weave.storage.supabase_store import (
    SupabaseContentStore,
    SupabaseStorageError,
    item_fields_to_columns,
    row_to_item,
)
from weave.types import ContentKind, ExperimentStatus


def _query(rows=None):
    """A query builder whose filter methods chain back to itself."""
    query = MagicMock()
    for name in ("select", "eq", "order", "limit", "update", "upsert"):
        getattr(query, name).return_value = query
    result = MagicMock()
    result.data = rows
    query.execute.return_value = result
    return query


def _store(rows=None):
    query = _query(rows)
    db = MagicMock()
    db.table.return_value = query
    return SupabaseContentStore(db), db, query


class TestRowMapping:
    def test_insight_row(self):
        item = row_to_item(
            ContentKind.INSIGHT,
            {
                "id": "i-1",
                "user_id": "user-1",
                "title": "Wind down",
                "content": "Read before bed",
                "source": "voice",
                "created_at": "2025-03-01T08:00:00Z",
                "last_accessed": "2025-03-05T08:00:00+00:00",
                "access_count": 3,
                "relevance_score": 0.7,
            },
        )
        assert item.body == "Read before bed"
        assert item.source_tag == "voice"
        assert item.created_at == datetime(2025, 3, 1, 8, tzinfo=timezone.utc)
        assert item.last_accessed_at.day == 5
        assert item.access_count == 3
        assert item.relevance_score == 0.7

    def test_document_prefers_summary(self):
        row = {"id": "d-1", "summary": "", "extracted_content": "Full text"}
        assert row_to_item(ContentKind.DOCUMENT, row).body == "Full text"

    def test_unscored_row_defaults_to_one(self):
        item = row_to_item(ContentKind.INSIGHT, {"id": "i-1", "created_at": "garbage"})
        assert item.relevance_score == 1.0
        assert item.last_accessed_at is None
        assert item.source_tag == "manual"

    def test_field_columns(self):
        when = datetime(2025, 3, 1, tzinfo=timezone.utc)
        assert item_fields_to_columns({"last_accessed_at": when, "access_count": 2}) == {
            "last_accessed": when.isoformat(),
            "access_count": 2,
        }

    def test_unknown_field(self):
        with pytest.raises(InvalidInputError):
            item_fields_to_columns({"content": "overwrite"})


class TestQueries:
    def test_get_item_scoped_to_owner(self):
        store, db, query = _store([{"id": "i-1", "user_id": "user-1", "content": "x"}])
        item = store.get_item("user-1", ContentKind.INSIGHT, "i-1")
        assert item.id == "i-1"
        db.table.assert_called_with("insights")
        query.eq.assert_any_call("id", "i-1")
        query.eq.assert_any_call("user_id", "user-1")

    def test_get_item_missing(self):
        store, _, _ = _store([])
        assert store.get_item("user-1", ContentKind.DOCUMENT, "d-1") is None

    def test_list_items_by_score(self):
        store, db, query = _store([{"id": "d-1"}, {"id": "d-2"}])
        items = store.list_items("user-1", "document", order_by="relevance_score", limit=25)
        assert [i.id for i in items] == ["d-1", "d-2"]
        db.table.assert_called_with("documents")
        query.order.assert_called_with("relevance_score", desc=True)
        query.limit.assert_called_with(25)

    def test_update_item(self):
        store, _, query = _store([{"id": "i-1"}])
        assert store.update_item("user-1", ContentKind.INSIGHT, "i-1", {"relevance_score": 0.4})
        query.update.assert_called_with({"relevance_score": 0.4})
        query.eq.assert_any_call("user_id", "user-1")

    def test_update_no_rows(self):
        store, _, _ = _store([])
        assert store.update_item("user-1", ContentKind.INSIGHT, "i-1", {"access_count": 1}) is False

    def test_experiments_legacy_status(self):
        store, _, _ = _store(
            [
                {"id": "e-1", "title": "Sleep", "status": "running"},
                {"id": "e-2", "title": "Run", "status": "failed"},
                {"id": "e-3", "title": "Read", "status": "planning"},
            ]
        )
        active = store.list_experiments("user-1", status=ExperimentStatus.IN_PROGRESS)
        assert [e.id for e in active] == ["e-1"]

    def test_experiments_active_status(self):
        store, _, _ = _store(
            [
                {"id": "e-1", "title": "Sleep", "status": "active"},
                {"id": "e-2", "title": "Read", "status": "planned"},
            ]
        )
        experiments = store.list_experiments("user-1")
        assert [e.status for e in experiments] == [
            ExperimentStatus.IN_PROGRESS,
            ExperimentStatus.PLANNING,
        ]
        assert experiments[0].is_active

    def test_experiment_rows_are_not_updated(self):
        store, db, query = _store([{"id": "e-1"}])
        with pytest.raises(InvalidInputError):
            store.update_item("user-1", ContentKind.EXPERIMENT, "e-1", {"access_count": 1})
        db.table.assert_not_called()
        query.update.assert_not_called()

    def test_identity_splits_values(self):
        store, _, _ = _store([{"content": "Calm writer", "core_values": "honesty, craft ,"}])
        identity = store.get_identity("user-1")
        assert identity.narrative_text == "Calm writer"
        assert identity.core_values == ["honesty", "craft"]

    def test_actions_default_limit(self):
        store, _, query = _store(
            [{"id": 7, "action_text": "Ran 5k", "pillar": "Body", "action_date": "2025-03-02"}]
        )
        actions = store.list_actions("user-1")
        assert actions[0].id == "7"
        assert actions[0].action_date.isoformat() == "2025-03-02"
        query.limit.assert_called_with(200)

    def test_set_preference_upserts(self, now):
        store, db, query = _store([{"key": "resurface_seen"}])
        store.set_preference("user-1", "resurface_seen", now)
        db.table.assert_called_with("user_preferences")
        query.upsert.assert_called_with(
            {"user_id": "user-1", "key": "resurface_seen", "updated_at": now.isoformat()},
            on_conflict="user_id,key",
        )

    def test_get_preference(self, now):
        store, _, _ = _store([{"key": "resurface_seen", "updated_at": now.isoformat()}])
        assert store.get_preference("user-1", "resurface_seen").updated_at == now


class TestErrors:
    def test_query_failure_is_wrapped(self):
        store, _, query = _store()
        query.execute.side_effect = ConnectionError("connection reset")
        with pytest.raises(SupabaseStorageError) as exc_info:
            store.list_topics("user-1")
        assert exc_info.value.table == "topics"
        assert isinstance(exc_info.value, StorageError)
        assert "connection reset" in str(exc_info.value)

    def test_malformed_id_reads_as_missing(self):
        store, _, query = _store()
        error = Exception('invalid input syntax for type uuid: "not-a-uuid"')
        error.code = "22P02"
        query.execute.side_effect = error
        assert store.get_item("user-1", ContentKind.INSIGHT, "not-a-uuid") is None
        with pytest.raises(NotFoundError):
            RelevanceEngine(store).record_access("user-1", "insight", "not-a-uuid")

    def test_get_item_outage_still_raises(self):
        store, _, query = _store()
        query.execute.side_effect = ConnectionError("connection reset")
        with pytest.raises(SupabaseStorageError):
            store.get_item("user-1", ContentKind.INSIGHT, "i-1")

    def test_none_data_is_empty(self):
        store, _, _ = _store(None)
        assert store.list_topics("user-1") == []
