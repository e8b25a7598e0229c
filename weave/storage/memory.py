"""In-memory ContentStore.

Used by the test suite and for local experiments. Rows are kept as
dataclass copies so callers never mutate stored state by accident.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from weave.protocols import InvalidInputError
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
)

logger = logging.getLogger(__name__)

# Fields the engine is allowed to write back
UPDATABLE_FIELDS = ("relevance_score", "topic_id", "last_accessed_at", "access_count")

_ORDERINGS = ("created_at", "relevance_score")


class InMemoryContentStore:
    """Owner-scoped dictionary store implementing ContentStore."""

    def __init__(self) -> None:
        self._items: Dict[Tuple[str, ContentKind, str], ContentItem] = {}
        self._topics: Dict[str, List[Topic]] = {}
        self._actions: Dict[str, List[ActionRecord]] = {}
        self._experiments: Dict[str, List[ExperimentRecord]] = {}
        self._identities: Dict[str, IdentityProfile] = {}
        self._preferences: Dict[Tuple[str, str], Preference] = {}

    # ---- Seeding ----

    def add_item(self, item: ContentItem) -> ContentItem:
        self._items[(item.owner_id, item.kind, item.id)] = replace(item)
        return item

    def add_topic(self, owner_id: str, topic: Topic) -> Topic:
        self._topics.setdefault(owner_id, []).append(topic)
        return topic

    def add_action(self, action: ActionRecord) -> ActionRecord:
        self._actions.setdefault(action.owner_id, []).append(action)
        return action

    def add_experiment(self, experiment: ExperimentRecord) -> ExperimentRecord:
        self._experiments.setdefault(experiment.owner_id, []).append(experiment)
        return experiment

    def set_identity(self, identity: IdentityProfile) -> IdentityProfile:
        self._identities[identity.owner_id] = identity
        return identity

    # ---- ContentStore ----

    def get_item(self, owner_id: str, kind: ContentKind, item_id: str) -> Optional[ContentItem]:
        item = self._items.get((owner_id, ContentKind(kind), item_id))
        return replace(item) if item else None

    def list_items(
        self,
        owner_id: str,
        kind: ContentKind,
        *,
        order_by: str = "created_at",
        limit: Optional[int] = None,
    ) -> List[ContentItem]:
        if order_by not in _ORDERINGS:
            raise InvalidInputError(f"Unsupported ordering: {order_by}")
        kind = ContentKind(kind)
        items = [
            replace(item)
            for (owner, item_kind, _), item in self._items.items()
            if owner == owner_id and item_kind == kind
        ]
        items.sort(key=lambda item: getattr(item, order_by), reverse=True)
        return items[:limit] if limit is not None else items

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
        key = (owner_id, kind, item_id)
        item = self._items.get(key)
        if item is None:
            return False
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise InvalidInputError(f"Cannot update fields: {sorted(unknown)}")
        self._items[key] = replace(item, **fields)
        return True

    def list_topics(self, owner_id: str) -> List[Topic]:
        return list(self._topics.get(owner_id, []))

    def list_actions(self, owner_id: str, *, limit: Optional[int] = None) -> List[ActionRecord]:
        actions = list(self._actions.get(owner_id, []))
        return actions[:limit] if limit is not None else actions

    def list_experiments(
        self,
        owner_id: str,
        *,
        status: Optional[ExperimentStatus] = None,
        limit: Optional[int] = None,
    ) -> List[ExperimentRecord]:
        experiments = [
            e for e in self._experiments.get(owner_id, []) if status is None or e.status == status
        ]
        return experiments[:limit] if limit is not None else experiments

    def get_identity(self, owner_id: str) -> Optional[IdentityProfile]:
        return self._identities.get(owner_id)

    def get_preference(self, owner_id: str, key: str) -> Optional[Preference]:
        return self._preferences.get((owner_id, key))

    def set_preference(self, owner_id: str, key: str, when: datetime) -> Preference:
        pref = Preference(owner_id=owner_id, key=key, updated_at=when)
        self._preferences[(owner_id, key)] = pref
        return pref
