"""Relevance scoring.

Two modes share one invariant: every score that leaves this module is
clamped into [0, 1].

Static scoring runs once, when content is classified:

    relevance = 0.4*alignment + 0.3*action_potential + 0.2*recency + 0.1*access
    recency   = max(0, 1 - days_since_creation / 60)
    access    = min(1, access_count / 10)

Dynamic scoring re-derives an already-scored item during a periodic
re-rank. It starts from the stored score, adds identity and experiment
boosts, applies a floored exponential decay (2%/day, never below half),
then adds an access boost. Writes are skipped unless the score moved by
more than WRITE_THRESHOLD.

Everything here is a pure function of its arguments; callers pass ``now``.
"""

from __future__ import annotations

from typing import Iterable, Optional

from weave.types import (
    ContentItem,
    ExperimentRecord,
    IdentityProfile,
    clamp01,
    days_between,
)

ALIGNMENT_WEIGHT = 0.4
ACTION_WEIGHT = 0.3
RECENCY_WEIGHT = 0.2
ACCESS_WEIGHT = 0.1

RECENCY_HORIZON_DAYS = 60.0
ACCESS_SATURATION = 10

IDENTITY_WORD_MIN_LENGTH = 5  # words longer than 4 characters
IDENTITY_WORD_BOOST = 0.02
IDENTITY_BOOST_CAP = 0.20
EXPERIMENT_BOOST = 0.10
DAILY_DECAY = 0.98
DECAY_FLOOR = 0.5
ACCESS_BOOST_PER_OPEN = 0.015
ACCESS_BOOST_CAP = 0.15

# Hysteresis for re-rank writes
WRITE_THRESHOLD = 0.05


def recency_score(days_since_creation: float) -> float:
    """Linear decay from 1.0 at creation to 0.0 at the 60-day horizon."""
    return max(0.0, 1.0 - max(0.0, days_since_creation) / RECENCY_HORIZON_DAYS)


def access_score(access_count: int) -> float:
    return min(1.0, max(0, access_count or 0) / ACCESS_SATURATION)


def static_relevance(
    identity_alignment: float,
    action_potential: float,
    days_since_creation: float,
    access_count: int,
) -> float:
    score = (
        ALIGNMENT_WEIGHT * clamp01(identity_alignment)
        + ACTION_WEIGHT * clamp01(action_potential)
        + RECENCY_WEIGHT * recency_score(days_since_creation)
        + ACCESS_WEIGHT * access_score(access_count)
    )
    return clamp01(score)


def static_relevance_for(item: ContentItem, classification, now) -> float:
    """Static score for an item given its Classification."""
    return static_relevance(
        classification.identity_alignment,
        classification.action_potential,
        days_between(item.created_at, now),
        item.access_count,
    )


def identity_boost(text: str, identity: Optional[IdentityProfile]) -> float:
    """+0.02 per identity-narrative word (len > 4) found in the text, capped.

    Repeated narrative words count once per occurrence in the narrative.
    """
    if identity is None or not identity.narrative_text:
        return 0.0
    content = text.lower()
    words = identity.narrative_text.lower().split()
    matches = sum(1 for w in words if len(w) >= IDENTITY_WORD_MIN_LENGTH and w in content)
    return min(IDENTITY_BOOST_CAP, matches * IDENTITY_WORD_BOOST)


def experiment_boost(text: str, experiments: Iterable[ExperimentRecord]) -> float:
    """Flat boost when any active experiment's first title word is in the text."""
    content = text.lower()
    for experiment in experiments:
        if not experiment.is_active or not experiment.title:
            continue
        words = experiment.title.lower().split()
        if words and words[0] in content:
            return EXPERIMENT_BOOST
    return 0.0


def decay_factor(days_since_creation: float) -> float:
    """Blend of 2%/day exponential decay with a 0.5 floor."""
    return DECAY_FLOOR + (1.0 - DECAY_FLOOR) * (DAILY_DECAY ** max(0.0, days_since_creation))


def access_boost(access_count: int) -> float:
    return min(ACCESS_BOOST_CAP, max(0, access_count or 0) * ACCESS_BOOST_PER_OPEN)


def dynamic_relevance(
    item: ContentItem,
    identity: Optional[IdentityProfile],
    experiments: Iterable[ExperimentRecord],
    now,
) -> float:
    """Re-derive an item's relevance from its stored score."""
    text = item.text
    score = clamp01(item.relevance_score if item.relevance_score is not None else 0.5)
    score += identity_boost(text, identity)
    score += experiment_boost(text, experiments)
    score *= decay_factor(days_between(item.created_at, now))
    score += access_boost(item.access_count)
    return clamp01(score)


def should_write(old_score: Optional[float], new_score: float) -> bool:
    return abs(new_score - (old_score or 0.0)) > WRITE_THRESHOLD
