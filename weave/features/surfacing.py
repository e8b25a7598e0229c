"""Query-time surfacing.

Primary path: the highest-scored insights and documents are previewed to
the oracle, which picks up to ``limit`` of them and writes a short
synthesis in the owner's own terms.

Fallback path (oracle error, timeout, malformed or empty answer): a plain
case-insensitive substring search over titles and bodies, newest first,
with no synthesis. Either way the caller gets a SurfaceResult.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, List, Optional

from weave.protocols import InvalidInputError, OracleError, SemanticOracle
from weave.types import ContentItem, SurfacedItem, SurfaceResult

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 3
DEFAULT_LIMIT = 10
MAX_LIMIT = 50
INSIGHT_CANDIDATES = 50
DOCUMENT_CANDIDATES = 25
EXCERPT_CHARS = 200


def validate_query(query: Optional[str]) -> str:
    """Return the trimmed query or raise InvalidInputError."""
    cleaned = (query or "").strip()
    if len(cleaned) < MIN_QUERY_LENGTH:
        raise InvalidInputError(
            f"Query too short: need at least {MIN_QUERY_LENGTH} characters"
        )
    return cleaned


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return max(1, min(MAX_LIMIT, int(limit)))


def lexical_search(query: str, items: Iterable[ContentItem], limit: int) -> List[ContentItem]:
    """Items whose title or body contains ``query`` (case-insensitive), newest first."""
    needle = query.lower()
    matches = [
        item
        for item in items
        if needle in (item.title or "").lower() or needle in (item.body or "").lower()
    ]
    matches.sort(key=lambda item: item.created_at, reverse=True)
    return matches[:limit]


def _selected_indices(payload: Any, size: int, limit: int) -> List[int]:
    if not isinstance(payload, dict):
        return []
    raw = payload.get("relevant_indices")
    if raw is None:
        raw = payload.get("selected_indices")
    if not isinstance(raw, list):
        return []
    selected: List[int] = []
    for index in raw:
        if isinstance(index, bool) or not isinstance(index, int):
            continue
        if 0 <= index < size and index not in selected:
            selected.append(index)
        if len(selected) >= limit:
            break
    return selected


def _synthesis(payload: Any) -> Optional[str]:
    text = payload.get("synthesis") if isinstance(payload, dict) else None
    return text.strip() if isinstance(text, str) and text.strip() else None


class QuerySurfacer:
    def __init__(self, oracle: Optional[SemanticOracle]) -> None:
        self._oracle = oracle

    def surface(
        self,
        query: str,
        ranked: List[ContentItem],
        load_searchable: Callable[[], Iterable[ContentItem]],
        limit: int,
    ) -> SurfaceResult:
        """Surface content for an already-validated query.

        ``ranked`` are the oracle candidates (already ordered by score);
        ``load_searchable`` returns everything the lexical fallback may
        match; it is only called when the fallback runs.
        """
        if self._oracle is not None and ranked:
            previews = [
                {
                    "id": item.id,
                    "kind": item.kind.value,
                    "title": item.title,
                    "excerpt": item.excerpt(EXCERPT_CHARS),
                    "score": item.relevance_score,
                }
                for item in ranked
            ]
            payload = self._oracle.surface(query, previews, limit)
            if isinstance(payload, OracleError):
                logger.warning("Surfacing fell back to lexical search: %s", payload)
            else:
                indices = _selected_indices(payload, len(ranked), limit)
                if indices:
                    return SurfaceResult(
                        query=query,
                        items=[SurfacedItem.from_item(ranked[i], EXCERPT_CHARS) for i in indices],
                        synthesis=_synthesis(payload),
                    )
                logger.info("Oracle selected nothing for query, using lexical search")

        matches = lexical_search(query, load_searchable(), limit)
        return SurfaceResult(
            query=query,
            items=[SurfacedItem.from_item(item, EXCERPT_CHARS) for item in matches],
            synthesis=None,
            fallback=True,
        )
