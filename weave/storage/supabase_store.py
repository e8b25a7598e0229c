"""Supabase-backed ContentStore.

Maps the journal's Postgres tables onto engine records. Every query is
filtered by ``user_id`` so one owner can never read or write another's
rows, even with a service-role client.

Table layout:

    insights        title, content, source, topic_id, relevance_score,
                    last_accessed, access_count
    documents       title, summary, extracted_content, topic_id, ...
    experiments     title, description, identity_shift_target, status
    topics          name, description
    identity_seeds  content, core_values (comma-separated), weekly_focus,
                    year_note
    action_history  action_text, pillar, action_date
    user_preferences  user_id, key, updated_at  (unique on user_id, key)
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from weave.protocols import InvalidInputError, StorageError
from weave.types import (
    ActionRecord,
    ContentItem,
    ContentKind,
    ExperimentRecord,
    ExperimentStatus,
    IdentityProfile,
    Preference,
    SCORED_KINDS,
    Topic,
    parse_datetime,
    utc_now,
)

logger = logging.getLogger(__name__)

INSIGHTS_TABLE = "insights"
DOCUMENTS_TABLE = "documents"
EXPERIMENTS_TABLE = "experiments"
TOPICS_TABLE = "topics"
IDENTITY_TABLE = "identity_seeds"
ACTIONS_TABLE = "action_history"
PREFERENCES_TABLE = "user_preferences"

DEFAULT_ACTION_LIMIT = 200

_KIND_TABLES = {
    ContentKind.INSIGHT: INSIGHTS_TABLE,
    ContentKind.DOCUMENT: DOCUMENTS_TABLE,
    ContentKind.EXPERIMENT: EXPERIMENTS_TABLE,
}

# Engine field name -> column name
_COLUMN_NAMES = {
    "relevance_score": "relevance_score",
    "topic_id": "topic_id",
    "last_accessed_at": "last_accessed",
    "access_count": "access_count",
}

# Older rows and clients use these status values
_STATUS_ALIASES = {
    "active": ExperimentStatus.IN_PROGRESS,
    "running": ExperimentStatus.IN_PROGRESS,
    "planned": ExperimentStatus.PLANNING,
    "failed": ExperimentStatus.COMPLETED,
}

# Postgres invalid_text_representation, raised for a malformed uuid
INVALID_ID_CODE = "22P02"


class SupabaseStorageError(StorageError):
    """A Supabase query failed."""

    def __init__(self, table: str, operation: str, cause: Exception) -> None:
        super().__init__(f"{operation} on {table} failed: {cause}")
        self.table = table
        self.operation = operation
        self.cause = cause


def _datetime(value: Any) -> Optional[datetime]:
    parsed = parse_datetime(value)
    if isinstance(parsed, ValueError):
        logger.debug("Ignoring unparseable timestamp %r", value)
        return None
    return parsed


def _date(value: Any) -> Optional[date]:
    parsed = _datetime(value)
    return parsed.date() if parsed else None


def _status(value: Any) -> ExperimentStatus:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _STATUS_ALIASES:
            return _STATUS_ALIASES[lowered]
        try:
            return ExperimentStatus(lowered)
        except ValueError:
            pass
    return ExperimentStatus.PLANNING


def _is_invalid_id(exc: Exception) -> bool:
    code = getattr(exc, "code", None)
    if code == INVALID_ID_CODE:
        return True
    return "invalid input syntax" in str(exc)


def _split_values(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return []


def _row_body(kind: ContentKind, row: Dict[str, Any]) -> str:
    if kind == ContentKind.INSIGHT:
        return row.get("content") or ""
    if kind == ContentKind.DOCUMENT:
        return row.get("summary") or row.get("extracted_content") or ""
    return row.get("description") or row.get("hypothesis") or ""


def row_to_item(kind: ContentKind, row: Dict[str, Any]) -> ContentItem:
    score = row.get("relevance_score")
    return ContentItem(
        id=str(row["id"]),
        owner_id=str(row.get("user_id") or ""),
        kind=kind,
        title=row.get("title") or "",
        body=_row_body(kind, row),
        source_tag=row.get("source") or "manual",
        topic_id=row.get("topic_id"),
        created_at=_datetime(row.get("created_at")) or utc_now(),
        last_accessed_at=_datetime(row.get("last_accessed")),
        access_count=int(row.get("access_count") or 0),
        relevance_score=float(score) if score is not None else 1.0,
    )


def item_fields_to_columns(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Translate engine field names and values into a column payload."""
    columns: Dict[str, Any] = {}
    for name, value in fields.items():
        column = _COLUMN_NAMES.get(name)
        if column is None:
            raise InvalidInputError(f"Cannot update field: {name}")
        columns[column] = value.isoformat() if isinstance(value, datetime) else value
    return columns


class SupabaseContentStore:
    """ContentStore over a ``supabase.Client``."""

    def __init__(self, client: Any) -> None:
        self._db = client

    def _execute(self, table: str, operation: str, query: Any) -> List[Dict[str, Any]]:
        try:
            result = query.execute()
        except Exception as exc:
            logger.error("Supabase %s on %s failed: %s", operation, table, exc)
            raise SupabaseStorageError(table, operation, exc) from exc
        return result.data or []

    # ---- Content items ----

    def get_item(self, owner_id: str, kind: ContentKind, item_id: str) -> Optional[ContentItem]:
        kind = ContentKind(kind)
        table = _KIND_TABLES[kind]
        query = self._db.table(table).select("*").eq("id", item_id).eq("user_id", owner_id).limit(1)
        try:
            rows = self._execute(table, "select", query)
        except SupabaseStorageError as exc:
            if not _is_invalid_id(exc.cause):
                raise
            logger.debug("Treating malformed %s id %r as missing", kind.value, item_id)
            return None
        return row_to_item(kind, rows[0]) if rows else None

    def list_items(
        self,
        owner_id: str,
        kind: ContentKind,
        *,
        order_by: str = "created_at",
        limit: Optional[int] = None,
    ) -> List[ContentItem]:
        if order_by not in ("created_at", "relevance_score"):
            raise InvalidInputError(f"Unsupported ordering: {order_by}")
        kind = ContentKind(kind)
        table = _KIND_TABLES[kind]
        query = self._db.table(table).select("*").eq("user_id", owner_id).order(order_by, desc=True)
        if limit is not None:
            query = query.limit(limit)
        return [row_to_item(kind, row) for row in self._execute(table, "select", query)]

    def update_item(
        self,
        owner_id: str,
        kind: ContentKind,
        item_id: str,
        fields: Dict[str, Any],
    ) -> bool:
        kind = ContentKind(kind)
        if kind not in SCORED_KINDS:
            raise InvalidInputError(f"{kind.value} rows have no relevance fields")
        table = _KIND_TABLES[kind]
        columns = item_fields_to_columns(fields)
        rows = self._execute(
            table,
            "update",
            self._db.table(table).update(columns).eq("id", item_id).eq("user_id", owner_id),
        )
        return bool(rows)

    # ---- Context records ----

    def list_topics(self, owner_id: str) -> List[Topic]:
        rows = self._execute(
            TOPICS_TABLE,
            "select",
            self._db.table(TOPICS_TABLE).select("id, name, description").eq("user_id", owner_id),
        )
        return [
            Topic(id=str(r["id"]), name=r.get("name") or "", description=r.get("description"))
            for r in rows
        ]

    def list_actions(self, owner_id: str, *, limit: Optional[int] = None) -> List[ActionRecord]:
        query = (
            self._db.table(ACTIONS_TABLE)
            .select("id, action_text, pillar, action_date")
            .eq("user_id", owner_id)
            .order("action_date", desc=True)
            .limit(limit or DEFAULT_ACTION_LIMIT)
        )
        return [
            ActionRecord(
                id=str(r["id"]),
                owner_id=owner_id,
                text=r.get("action_text") or "",
                pillar=r.get("pillar"),
                action_date=_date(r.get("action_date")),
            )
            for r in self._execute(ACTIONS_TABLE, "select", query)
        ]

    def list_experiments(
        self,
        owner_id: str,
        *,
        status: Optional[ExperimentStatus] = None,
        limit: Optional[int] = None,
    ) -> List[ExperimentRecord]:
        query = (
            self._db.table(EXPERIMENTS_TABLE)
            .select("id, title, identity_shift_target, status")
            .eq("user_id", owner_id)
            .order("created_at", desc=True)
        )
        if limit is not None:
            query = query.limit(limit)
        experiments = [
            ExperimentRecord(
                id=str(r["id"]),
                owner_id=owner_id,
                title=r.get("title") or "",
                identity_shift_target=r.get("identity_shift_target"),
                status=_status(r.get("status")),
            )
            for r in self._execute(EXPERIMENTS_TABLE, "select", query)
        ]
        # Filter after mapping so legacy status aliases are honoured
        if status is not None:
            experiments = [e for e in experiments if e.status == status]
        return experiments

    def get_identity(self, owner_id: str) -> Optional[IdentityProfile]:
        rows = self._execute(
            IDENTITY_TABLE,
            "select",
            self._db.table(IDENTITY_TABLE)
            .select("content, core_values, weekly_focus, year_note")
            .eq("user_id", owner_id)
            .limit(1),
        )
        if not rows:
            return None
        row = rows[0]
        return IdentityProfile(
            owner_id=owner_id,
            narrative_text=row.get("content") or "",
            core_values=_split_values(row.get("core_values")),
            weekly_focus=row.get("weekly_focus"),
            year_note=row.get("year_note"),
        )

    # ---- Preferences ----

    def get_preference(self, owner_id: str, key: str) -> Optional[Preference]:
        rows = self._execute(
            PREFERENCES_TABLE,
            "select",
            self._db.table(PREFERENCES_TABLE)
            .select("key, updated_at")
            .eq("user_id", owner_id)
            .eq("key", key)
            .limit(1),
        )
        if not rows:
            return None
        updated_at = _datetime(rows[0].get("updated_at"))
        if updated_at is None:
            return None
        return Preference(owner_id=owner_id, key=key, updated_at=updated_at)

    def set_preference(self, owner_id: str, key: str, when: datetime) -> Preference:
        self._execute(
            PREFERENCES_TABLE,
            "upsert",
            self._db.table(PREFERENCES_TABLE).upsert(
                {"user_id": owner_id, "key": key, "updated_at": when.isoformat()},
                on_conflict="user_id,key",
            ),
        )
        return Preference(owner_id=owner_id, key=key, updated_at=when)
