"""Content classification.

Asks the semantic oracle what a piece of content is about and how well it
fits the owner, then validates everything it says. The oracle is untrusted:
scores are clamped, topic names must match an existing topic exactly
(case-insensitive), pillars must come from the fixed vocabulary. Any failure
collapses to a neutral classification; this module never raises because
of the oracle.
"""

from __future__ import annotations

import logging
import numbers
from typing import Any, Optional

from weave.protocols import MalformedOracleResponseError, OracleError, SemanticOracle
from weave.types import (
    CLASSIFICATION_PILLARS,
    Classification,
    IdentityProfile,
    Topic,
    clamp01,
)

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 0.5
MAX_THEMES = 4
MAX_TEXT_CHARS = 2000

_PILLAR_LOOKUP = {p.lower(): p for p in CLASSIFICATION_PILLARS}


def neutral_classification() -> Classification:
    return Classification(
        topic_id=None,
        topic_name=None,
        themes=[],
        pillars=[],
        identity_alignment=NEUTRAL_SCORE,
        action_potential=NEUTRAL_SCORE,
    )


def _coerce_score(value: Any) -> float:
    # bool is a Number subclass; "true" is not a score
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return NEUTRAL_SCORE
    try:
        score = float(value)
    except (OverflowError, ValueError):
        return NEUTRAL_SCORE
    if score != score:  # NaN
        return NEUTRAL_SCORE
    return clamp01(score)


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v.strip() for v in value if isinstance(v, str) and v.strip()]


def resolve_topic(topic_name: Optional[str], topics: list[Topic]) -> Optional[Topic]:
    """Case-insensitive exact match. No fuzzy matching."""
    if not topic_name:
        return None
    wanted = topic_name.strip().lower()
    for topic in topics:
        if topic.name and topic.name.strip().lower() == wanted:
            return topic
    return None


def parse_classification(
    payload: Any, topics: list[Topic]
) -> Classification | MalformedOracleResponseError:
    """Validate an oracle classify payload into a Classification."""
    if not isinstance(payload, dict):
        return MalformedOracleResponseError("classify", "expected a JSON object")

    raw_topic = payload.get("topic_name")
    topic_name = raw_topic.strip() if isinstance(raw_topic, str) and raw_topic.strip() else None
    if topic_name and topic_name.lower() in ("null", "none"):
        topic_name = None
    topic = resolve_topic(topic_name, topics)

    pillars: list[str] = []
    for pillar in _string_list(payload.get("pillars")):
        canonical = _PILLAR_LOOKUP.get(pillar.lower())
        if canonical and canonical not in pillars:
            pillars.append(canonical)

    return Classification(
        topic_id=topic.id if topic else None,
        topic_name=topic_name,
        themes=_string_list(payload.get("themes"))[:MAX_THEMES],
        pillars=pillars,
        identity_alignment=_coerce_score(payload.get("identity_alignment")),
        action_potential=_coerce_score(payload.get("action_potential")),
    )


class Classifier:
    """Turns raw content text into a validated Classification."""

    def __init__(self, oracle: Optional[SemanticOracle]) -> None:
        self._oracle = oracle

    def classify(
        self,
        text: str,
        topics: list[Topic],
        identity: Optional[IdentityProfile],
    ) -> Classification:
        if self._oracle is None:
            logger.debug("Classifier: no oracle configured, using neutral classification")
            return neutral_classification()

        payload = self._oracle.classify((text or "")[:MAX_TEXT_CHARS], topics, identity)
        if isinstance(payload, OracleError):
            logger.warning("Classification fell back to neutral defaults: %s", payload)
            return neutral_classification()

        result = parse_classification(payload, topics)
        if isinstance(result, OracleError):
            logger.warning("Classification fell back to neutral defaults: %s", result)
            return neutral_classification()
        return result
