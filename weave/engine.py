"""RelevanceEngine: owner-scoped entry points over a store and an oracle.

Every public method takes the owner id first and refuses to do anything
without one. The engine holds no per-call state; each call reads what it
needs from the store, runs one feature, and writes single rows back.
"""

from __future__ import annotations

import logging
import random
from typing import Callable, List, Optional

from weave.features.classifier import Classifier
from weave.features.clustering import MAX_DOCUMENTS, MAX_INSIGHTS, ClusterConsolidator
from weave.features.patterns import PatternMiner
from weave.features.relevance import dynamic_relevance, should_write, static_relevance_for
from weave.features.resurfacing import DEFAULT_LIMIT as RESURFACE_DEFAULT_LIMIT
from weave.features.resurfacing import InsightSpotlight, resurface_message, select_forgotten
from weave.features.surfacing import (
    DOCUMENT_CANDIDATES,
    INSIGHT_CANDIDATES,
    QuerySurfacer,
    clamp_limit,
    validate_query,
)
from weave.logging_config import log_classify, log_engine_event, log_rank, log_surface
from weave.protocols import (
    ContentStore,
    InvalidInputError,
    NotFoundError,
    SemanticOracle,
    UnauthorizedError,
)
from weave.types import (
    Classification,
    ClusterResult,
    ContentItem,
    ContentKind,
    ExperimentStatus,
    MiningResult,
    RankSummary,
    ResurfaceResult,
    SCORED_KINDS,
    SurfaceOneResult,
    SurfaceResult,
    utc_now,
)

logger = logging.getLogger(__name__)

RESURFACE_SEEN_KEY = "resurface_seen"
MINING_INSIGHT_LIMIT = 200


def _require_owner(owner_id: Optional[str]) -> str:
    if not owner_id or not str(owner_id).strip():
        raise UnauthorizedError("An authenticated owner is required")
    return str(owner_id)


def _content_kind(kind) -> ContentKind:
    try:
        return ContentKind(kind)
    except ValueError:
        raise InvalidInputError(f"Unknown content kind: {kind!r}") from None


def _scored_kind(kind) -> ContentKind:
    kind = _content_kind(kind)
    if kind not in SCORED_KINDS:
        raise InvalidInputError(f"{kind.value} items are not scored")
    return kind


def _require_item_id(item_id: Optional[str]) -> str:
    if not item_id or not str(item_id).strip():
        raise InvalidInputError("item_id is required")
    return str(item_id)


class RelevanceEngine:
    """Classify, rank, cluster, surface, resurface and mine one owner's content.

    Args:
        store: ContentStore implementation.
        oracle: SemanticOracle, or None to run on fallbacks only.
        clock: Callable returning an aware "now"; injectable for tests.
        rng: Random source for the single-insight spotlight; injectable for tests.
        audit: When true, each entry point appends to the engine event log.
    """

    def __init__(
        self,
        store: ContentStore,
        oracle: Optional[SemanticOracle] = None,
        *,
        clock: Callable = utc_now,
        rng: Optional[random.Random] = None,
        audit: bool = False,
    ) -> None:
        self.store = store
        self.oracle = oracle
        self._clock = clock
        self._audit = audit
        self._classifier = Classifier(oracle)
        self._consolidator = ClusterConsolidator(oracle)
        self._surfacer = QuerySurfacer(oracle)
        self._spotlight = InsightSpotlight(oracle, rng)

    # ---- Classification ----

    def classify(self, owner_id: str, item_id: str, kind) -> Classification:
        """Classify one item and persist its static relevance score.

        The topic is written only if the item has none yet.
        """
        owner_id = _require_owner(owner_id)
        item_id = _require_item_id(item_id)
        kind = _scored_kind(kind)

        item = self.store.get_item(owner_id, kind, item_id)
        if item is None:
            raise NotFoundError(kind.value, item_id)

        topics = self.store.list_topics(owner_id)
        identity = self.store.get_identity(owner_id)
        classification = self._classifier.classify(item.text, topics, identity)

        score = static_relevance_for(item, classification, self._clock())
        fields = {"relevance_score": score}
        if classification.topic_id and not item.topic_id:
            fields["topic_id"] = classification.topic_id
        self.store.update_item(owner_id, kind, item_id, fields)

        logger.info("Classified %s %s (score=%.3f)", kind.value, item_id, score)
        if self._audit:
            log_classify(owner_id, kind.value, item_id, score)
        return classification

    # ---- Ranking ----

    def rank(self, owner_id: str) -> RankSummary:
        """Re-derive dynamic relevance for every insight and document."""
        owner_id = _require_owner(owner_id)
        now = self._clock()
        identity = self.store.get_identity(owner_id)
        active = self.store.list_experiments(owner_id, status=ExperimentStatus.IN_PROGRESS)
        insights = self.store.list_items(owner_id, ContentKind.INSIGHT)
        documents = self.store.list_items(owner_id, ContentKind.DOCUMENT)

        updated = 0
        for item in insights + documents:
            new_score = dynamic_relevance(item, identity, active, now)
            if not should_write(item.relevance_score, new_score):
                continue
            if self.store.update_item(
                owner_id, item.kind, item.id, {"relevance_score": new_score}
            ):
                updated += 1

        summary = RankSummary(
            updated=updated, total_insights=len(insights), total_documents=len(documents)
        )
        logger.info(
            "Ranked %d insights and %d documents, %d updated",
            summary.total_insights,
            summary.total_documents,
            summary.updated,
        )
        if self._audit:
            log_rank(owner_id, updated, len(insights), len(documents))
        return summary

    # ---- Clustering ----

    def cluster(self, owner_id: str) -> ClusterResult:
        owner_id = _require_owner(owner_id)
        insights = self.store.list_items(owner_id, ContentKind.INSIGHT, limit=MAX_INSIGHTS)
        documents = self.store.list_items(owner_id, ContentKind.DOCUMENT, limit=MAX_DOCUMENTS)
        result = self._consolidator.cluster(insights, documents)
        if self._audit:
            log_engine_event(
                "cluster",
                f"clusters={len(result.clusters)}, items={result.total_items}, "
                f"status={result.status}",
                owner_id=owner_id,
            )
        return result

    # ---- Surfacing ----

    def surface(self, owner_id: str, query: str, limit: Optional[int] = None) -> SurfaceResult:
        """Surface content for a free-text query.

        Raises InvalidInputError for queries shorter than three characters,
        before touching the store.
        """
        owner_id = _require_owner(owner_id)
        query = validate_query(query)
        limit = clamp_limit(limit)

        ranked = self.store.list_items(
            owner_id, ContentKind.INSIGHT, order_by="relevance_score", limit=INSIGHT_CANDIDATES
        ) + self.store.list_items(
            owner_id, ContentKind.DOCUMENT, order_by="relevance_score", limit=DOCUMENT_CANDIDATES
        )

        def load_searchable() -> List[ContentItem]:
            items: List[ContentItem] = []
            for kind in ContentKind:
                items.extend(self.store.list_items(owner_id, kind))
            return items

        result = self._surfacer.surface(query, ranked, load_searchable, limit)
        if self._audit:
            log_surface(owner_id, query, len(result.items), result.fallback)
        return result

    def record_access(self, owner_id: str, kind, item_id: str) -> int:
        """Count one open of an item. Returns the new access count.

        Read-modify-write without a lock: concurrent opens may undercount.
        """
        owner_id = _require_owner(owner_id)
        item_id = _require_item_id(item_id)
        kind = _scored_kind(kind)

        item = self.store.get_item(owner_id, kind, item_id)
        if item is None:
            raise NotFoundError(kind.value, item_id)

        count = (item.access_count or 0) + 1
        self.store.update_item(
            owner_id,
            kind,
            item_id,
            {"access_count": count, "last_accessed_at": self._clock()},
        )
        return count

    # ---- Resurfacing ----

    def resurface(self, owner_id: str, limit: Optional[int] = None) -> ResurfaceResult:
        owner_id = _require_owner(owner_id)
        now = self._clock()
        items = self.store.list_items(owner_id, ContentKind.INSIGHT) + self.store.list_items(
            owner_id, ContentKind.DOCUMENT
        )
        forgotten = select_forgotten(
            items, now, RESURFACE_DEFAULT_LIMIT if limit is None else limit
        )

        previous = self.store.get_preference(owner_id, RESURFACE_SEEN_KEY)
        seen_today = previous is not None and previous.updated_at.date() == now.date()
        self.store.set_preference(owner_id, RESURFACE_SEEN_KEY, now)

        if self._audit:
            log_engine_event(
                "resurface", f"forgotten={len(forgotten)}, seen_today={seen_today}", owner_id
            )
        return ResurfaceResult(
            forgotten=forgotten, message=resurface_message(forgotten), seen_today=seen_today
        )

    def surface_one(self, owner_id: str, include_synthesis: bool = False) -> SurfaceOneResult:
        """Bring back one insight, favouring the least opened, tied to the identity."""
        owner_id = _require_owner(owner_id)
        insights = self.store.list_items(owner_id, ContentKind.INSIGHT)
        identity = self.store.get_identity(owner_id)
        result = self._spotlight.surface_one(
            insights, identity, include_synthesis=include_synthesis
        )
        if self._audit:
            log_engine_event(
                "surface_one",
                f"insight={result.insight.id if result.insight else None}, "
                f"pool={result.total_insights}",
                owner_id=owner_id,
            )
        return result

    # ---- Pattern mining ----

    def mine(self, owner_id: str) -> MiningResult:
        owner_id = _require_owner(owner_id)
        miner = PatternMiner(
            insights=self.store.list_items(
                owner_id, ContentKind.INSIGHT, limit=MINING_INSIGHT_LIMIT
            ),
            actions=self.store.list_actions(owner_id),
            experiments=self.store.list_experiments(owner_id),
            identity=self.store.get_identity(owner_id),
            topics=self.store.list_topics(owner_id),
        )
        result = miner.mine()
        if self._audit:
            log_engine_event(
                "mine",
                f"patterns={len(result.patterns)}, weave_score={result.weave_score}",
                owner_id=owner_id,
            )
        return result
