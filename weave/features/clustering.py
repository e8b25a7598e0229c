"""Cluster consolidation.

Batches recent content, asks the oracle to group it, and keeps only what
survives validation:

- indices that are not integers, or fall outside the candidate list, are
  dropped silently;
- an item belongs to at most one cluster (the first cluster that claims it);
- clusters left with no members are dropped.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, List, Optional

from weave.protocols import MalformedOracleResponseError, OracleError, SemanticOracle
from weave.types import Cluster, ClusterResult, ContentItem, clamp01

logger = logging.getLogger(__name__)

MAX_INSIGHTS = 100
MAX_DOCUMENTS = 50
EXCERPT_CHARS = 150
MIN_ITEMS = 3
MIN_CLUSTERS = 3
MAX_CLUSTERS = 6

NOT_ENOUGH_CONTENT = "Not enough content to cluster"


def build_candidates(items: List[ContentItem]) -> List[dict]:
    """Reduce items to the compact shape the oracle sees."""
    return [
        {
            "id": item.id,
            "kind": item.kind.value,
            "excerpt": f"{item.title}: {item.text}"[:EXCERPT_CHARS],
        }
        for item in items
    ]


def _valid_index(value: Any, size: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < size


def _relevance(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.5
    try:
        relevance = float(value)
    except OverflowError:
        return 0.5
    if relevance != relevance:
        return 0.5
    return clamp01(relevance)


def consolidate(
    payload: Any, candidates: List[dict]
) -> List[Cluster] | MalformedOracleResponseError:
    """Validate an oracle cluster payload against the candidate list."""
    if isinstance(payload, dict) and isinstance(payload.get("clusters"), list):
        payload = payload["clusters"]
    if not isinstance(payload, list):
        return MalformedOracleResponseError("cluster", "expected a JSON array of clusters")

    claimed: set[int] = set()
    clusters: List[Cluster] = []
    for raw in payload:
        if not isinstance(raw, dict):
            continue
        indices = raw.get("item_indices")
        if indices is None:
            indices = raw.get("member_indices")
        if not isinstance(indices, list):
            continue

        members: List[int] = []
        for index in indices:
            if not _valid_index(index, len(candidates)) or index in claimed:
                continue
            claimed.add(index)
            members.append(index)
        if not members:
            continue

        theme = raw.get("theme")
        relevance = _relevance(raw.get("relevance"))
        cluster_id = raw.get("cluster_id")
        clusters.append(
            Cluster(
                cluster_id=str(cluster_id) if cluster_id else uuid.uuid4().hex[:12],
                theme=theme.strip() if isinstance(theme, str) and theme.strip() else "Untitled",
                item_ids=[candidates[i]["id"] for i in members],
                relevance=relevance,
            )
        )
    return clusters


class ClusterConsolidator:
    def __init__(self, oracle: Optional[SemanticOracle]) -> None:
        self._oracle = oracle

    def cluster(self, insights: List[ContentItem], documents: List[ContentItem]) -> ClusterResult:
        items = list(insights[:MAX_INSIGHTS]) + list(documents[:MAX_DOCUMENTS])
        candidates = build_candidates(items)

        if len(candidates) < MIN_ITEMS:
            return ClusterResult(
                clusters=[],
                total_items=len(candidates),
                status="insufficient_content",
                message=NOT_ENOUGH_CONTENT,
            )

        if self._oracle is None:
            return ClusterResult(clusters=[], total_items=len(candidates), status="unavailable")

        payload = self._oracle.cluster(
            candidates, min_clusters=MIN_CLUSTERS, max_clusters=MAX_CLUSTERS
        )
        if isinstance(payload, OracleError):
            logger.warning("Clustering unavailable: %s", payload)
            return ClusterResult(clusters=[], total_items=len(candidates), status="unavailable")

        clusters = consolidate(payload, candidates)
        if isinstance(clusters, OracleError):
            logger.warning("Clustering unavailable: %s", clusters)
            return ClusterResult(clusters=[], total_items=len(candidates), status="unavailable")

        logger.debug("Consolidated %d clusters from %d items", len(clusters), len(candidates))
        return ClusterResult(clusters=clusters, total_items=len(candidates))
