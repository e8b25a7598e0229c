"""Resurfacing of forgotten-but-valuable content.

A spaced-repetition style filter: anything scored above 0.5 that nobody has
opened in the last 30 days (or ever) is a candidate. Cheap enough to run on
every session load; no oracle involved.

``InsightSpotlight`` brings back a single insight instead, picked at random
with less-opened insights weighted higher, and ties it to the owner's
identity. The oracle writes the connection when it can; otherwise a local
keyword match against core values and the year note does.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Optional, Tuple

from weave.protocols import OracleError, SemanticOracle
from weave.types import ContentItem, IdentityProfile, SurfaceOneResult

logger = logging.getLogger(__name__)

STALE_AFTER = timedelta(days=30)
MIN_RELEVANCE = 0.5
DEFAULT_LIMIT = 5
MAX_LIMIT = 10

FOUND_MESSAGE = "These valuable items haven't been accessed in 30+ days"
EMPTY_MESSAGE = "No forgotten valuable content found"

SPOTLIGHT_POOL = 30
SPOTLIGHT_EXCERPT_CHARS = 500
DIRECTION_WORD_MIN_LENGTH = 5

DEFAULT_CONNECTION = "Wisdom you captured"
DEFAULT_APPLICATION = "How might this inform a decision today?"
VALUE_CONNECTION = "Connects to your value of {value}"
DIRECTION_CONNECTION = "Aligned with your direction for the year"
NO_INSIGHTS_MESSAGE = "Add some insights first by capturing content on the dashboard"


def is_forgotten(item: ContentItem, now: datetime) -> bool:
    stale = item.last_accessed_at is None or item.last_accessed_at < now - STALE_AFTER
    return stale and (item.relevance_score or 0.0) > MIN_RELEVANCE


def select_forgotten(
    items: Iterable[ContentItem], now: datetime, limit: int = DEFAULT_LIMIT
) -> List[ContentItem]:
    limit = max(1, min(MAX_LIMIT, limit))
    forgotten = [item for item in items if is_forgotten(item, now)]
    forgotten.sort(key=lambda item: item.relevance_score, reverse=True)
    return forgotten[:limit]


def resurface_message(forgotten: List[ContentItem]) -> str:
    return FOUND_MESSAGE if forgotten else EMPTY_MESSAGE


# === Single-insight spotlight ===


def spotlight_pool(insights: Iterable[ContentItem]) -> List[ContentItem]:
    """Least-opened insights first, capped at SPOTLIGHT_POOL."""
    return sorted(insights, key=lambda item: item.access_count or 0)[:SPOTLIGHT_POOL]


def pick_weighted(pool: List[ContentItem], rng: random.Random) -> ContentItem:
    """Pick one item; position i of n carries weight n - i."""
    weights = [max(1, len(pool) - i) for i in range(len(pool))]
    return rng.choices(pool, weights=weights, k=1)[0]


def local_connection(item: ContentItem, identity: Optional[IdentityProfile]) -> str:
    """Keyword match of the item against core values, then the year note."""
    if identity is None:
        return DEFAULT_CONNECTION
    title = (item.title or "").lower()
    body = (item.body or "").lower()

    for value in identity.core_values:
        value = value.strip().lower()
        if value and (value in body or value in title):
            return VALUE_CONNECTION.format(value=value)

    if identity.year_note:
        words = [
            w for w in identity.year_note.lower().split() if len(w) >= DIRECTION_WORD_MIN_LENGTH
        ]
        if any(w in body or w in title for w in words):
            return DIRECTION_CONNECTION
    return DEFAULT_CONNECTION


def _text(value: Any) -> Optional[str]:
    return value.strip() if isinstance(value, str) and value.strip() else None


def parse_connection(payload: Any) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """(connection, application, synthesis) from an oracle reply; blanks are None."""
    if not isinstance(payload, dict):
        return None, None, None
    return (
        _text(payload.get("connection")),
        _text(payload.get("application")),
        _text(payload.get("synthesis")),
    )


class InsightSpotlight:
    """Surfaces one insight and connects it to the owner's identity."""

    def __init__(
        self, oracle: Optional[SemanticOracle], rng: Optional[random.Random] = None
    ) -> None:
        self._oracle = oracle
        self._rng = rng or random.Random()

    def surface_one(
        self,
        insights: List[ContentItem],
        identity: Optional[IdentityProfile],
        *,
        include_synthesis: bool = False,
    ) -> SurfaceOneResult:
        pool = spotlight_pool(insights)
        if not pool:
            return SurfaceOneResult(
                insight=None,
                connection=DEFAULT_CONNECTION,
                application=DEFAULT_APPLICATION,
                message=NO_INSIGHTS_MESSAGE,
            )

        chosen = pick_weighted(pool, self._rng)
        connection = application = synthesis = None
        if self._oracle is not None and identity is not None:
            payload = self._oracle.connect(
                {"title": chosen.title, "excerpt": chosen.excerpt(SPOTLIGHT_EXCERPT_CHARS)},
                identity,
                include_synthesis=include_synthesis,
            )
            if isinstance(payload, OracleError):
                logger.warning("Spotlight connection fell back to keyword match: %s", payload)
            else:
                connection, application, synthesis = parse_connection(payload)

        return SurfaceOneResult(
            insight=chosen,
            connection=connection or local_connection(chosen, identity),
            application=application or DEFAULT_APPLICATION,
            synthesis=synthesis if include_synthesis else None,
            total_insights=len(pool),
        )
