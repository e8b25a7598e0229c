"""Weave pattern mining.

Cross-references insights, logged actions, experiments and the identity
narrative to find structural patterns: learning that turns into doing,
experiments backed by insight, pillars gaining momentum or being neglected,
topics that keep coming back. Entirely local; no oracle.

Each rule emits zero or more candidate patterns. Candidates are deduped by
normalized theme (strongest wins) and capped, then folded into a single
0-100 weave score.
"""

from __future__ import annotations

import logging
import re
from collections import OrderedDict
from typing import Dict, List, Optional

from weave.types import (
    LIFE_PILLARS,
    ActionRecord,
    ContentItem,
    ExperimentRecord,
    IdentityProfile,
    MiningResult,
    NodeKind,
    Pattern,
    PatternNode,
    PatternType,
    Topic,
)

logger = logging.getLogger(__name__)

KEYWORD_MIN_LENGTH = 4  # words longer than 3 characters
MAX_IDENTITY_KEYWORDS = 30
MAX_PATTERNS = 6
IMBALANCE_WEIGHT = 0.5

_IDENTITY_SPLIT = re.compile(r"[\s,.]+")


def identity_keywords(identity: Optional[IdentityProfile]) -> List[str]:
    if identity is None or not identity.narrative_text:
        return []
    words = _IDENTITY_SPLIT.split(identity.narrative_text.lower())
    return [w for w in words if len(w) >= KEYWORD_MIN_LENGTH][:MAX_IDENTITY_KEYWORDS]


def _keywords(text: str) -> List[str]:
    return [w for w in text.lower().split() if len(w) >= KEYWORD_MIN_LENGTH]


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def _insight_node(item: ContentItem) -> PatternNode:
    return PatternNode(id=item.id, kind=NodeKind.INSIGHT, title=item.title)


def _action_node(action: ActionRecord) -> PatternNode:
    return PatternNode(id=action.id, kind=NodeKind.ACTION, title=action.text)


class PatternMiner:
    """Detects weave patterns for one owner's snapshot of data."""

    def __init__(
        self,
        insights: List[ContentItem],
        actions: List[ActionRecord],
        experiments: List[ExperimentRecord],
        identity: Optional[IdentityProfile],
        topics: List[Topic],
    ) -> None:
        self.insights = insights
        self.actions = actions
        self.experiments = experiments
        self.keywords = identity_keywords(identity)
        self._topics: Dict[str, Topic] = {t.id: t for t in topics}
        self._pillar_counts = self._count_pillars()

    # ---- Helpers ----

    def topic_name(self, item: ContentItem) -> Optional[str]:
        """Resolved topic name, or None for unset or dangling references."""
        topic = self._topics.get(item.topic_id) if item.topic_id else None
        return topic.name if topic and topic.name else None

    def _count_pillars(self) -> "OrderedDict[str, int]":
        counts: "OrderedDict[str, int]" = OrderedDict()
        for action in self.actions:
            if action.pillar:
                counts[action.pillar] = counts.get(action.pillar, 0) + 1
        return counts

    def dominant_pillar(self) -> Optional[tuple[str, int]]:
        if not self._pillar_counts:
            return None
        # sorted() is stable: ties keep first-logged order
        return sorted(self._pillar_counts.items(), key=lambda kv: kv[1], reverse=True)[0]

    # ---- Rules ----

    def topic_loops(self) -> List[Pattern]:
        grouped: "OrderedDict[str, Dict[str, list]]" = OrderedDict()
        for insight in self.insights:
            name = self.topic_name(insight)
            if not name:
                continue
            grouped.setdefault(name.lower(), {"insights": [], "actions": []})["insights"].append(
                insight
            )

        for action in self.actions:
            text = action.text.lower()
            for topic, data in grouped.items():
                if topic in text or any(
                    len(w) >= KEYWORD_MIN_LENGTH and w in text for w in topic.split()
                ):
                    data["actions"].append(action)

        patterns = []
        for topic, data in grouped.items():
            insights, actions = data["insights"], data["actions"]
            if not insights or not actions:
                continue
            patterns.append(
                Pattern(
                    theme=f"{_capitalize(topic)} Loop",
                    description=f"{len(insights)} insights → {len(actions)} actions taken",
                    pattern_type=PatternType.CONNECTION,
                    strength=min(100, 12 * (len(insights) + len(actions))),
                    nodes=[_insight_node(i) for i in insights[:2]]
                    + [_action_node(a) for a in actions[:2]],
                )
            )
        return patterns

    def experiment_fuel(self) -> List[Pattern]:
        patterns = []
        for experiment in self.experiments:
            keywords = _keywords(f"{experiment.title} {experiment.identity_shift_target or ''}")
            if not keywords:
                continue
            related = []
            for insight in self.insights:
                haystack = f"{insight.title} {insight.body}".lower()
                topic = (self.topic_name(insight) or "").lower()
                if any(kw in haystack or kw in topic for kw in keywords):
                    related.append(insight)
            if len(related) < 2:
                continue
            patterns.append(
                Pattern(
                    theme="Experiment Fuel",
                    description=f'"{experiment.title}" is backed by {len(related)} insights',
                    pattern_type=PatternType.EXPERIMENT_INSIGHT,
                    strength=min(100, 20 * len(related) + 30),
                    nodes=[
                        PatternNode(
                            id=experiment.id, kind=NodeKind.EXPERIMENT, title=experiment.title
                        )
                    ]
                    + [_insight_node(i) for i in related[:3]],
                )
            )
        return patterns

    def identity_alignment(self) -> List[Pattern]:
        patterns = []
        for experiment in self.experiments:
            text = f"{experiment.title} {experiment.identity_shift_target or ''}".lower()
            matched = [kw for kw in self.keywords if kw in text]
            if len(matched) < 2:
                continue
            patterns.append(
                Pattern(
                    theme="Identity Alignment",
                    description=f'"{experiment.title}" reflects: {", ".join(matched[:3])}',
                    pattern_type=PatternType.CONNECTION,
                    strength=min(100, 25 * len(matched)),
                    nodes=[
                        PatternNode(
                            id=experiment.id, kind=NodeKind.EXPERIMENT, title=experiment.title
                        )
                    ],
                )
            )
        return patterns

    def pillar_momentum(self) -> List[Pattern]:
        dominant = self.dominant_pillar()
        if dominant is None or dominant[1] < 3:
            return []
        pillar, count = dominant
        return [
            Pattern(
                theme=f"{pillar} Momentum",
                description=f"{count} actions logged, building traction",
                pattern_type=PatternType.FOCUS,
                strength=min(100, 18 * count),
                nodes=[_action_node(a) for a in self.actions if a.pillar == pillar][:3],
            )
        ]

    def pillar_gap(self) -> List[Pattern]:
        missing = [p for p in LIFE_PILLARS if p not in self._pillar_counts]
        if len(self.actions) < 5 or len(missing) < 2:
            return []
        return [
            Pattern(
                theme="Pillar Gap",
                description=f"{', '.join(missing[:3])} need attention",
                pattern_type=PatternType.IMBALANCE,
                strength=min(80, 15 * len(missing)),
                nodes=[
                    PatternNode(id=f"missing-{p}", kind=NodeKind.WARNING, title=p)
                    for p in missing[:3]
                ],
            )
        ]

    def recurring_theme(self) -> List[Pattern]:
        weeks_by_topic: "OrderedDict[str, set]" = OrderedDict()
        for insight in self.insights:
            name = self.topic_name(insight)
            if not name or insight.created_at is None:
                continue
            iso = insight.created_at.isocalendar()
            weeks_by_topic.setdefault(name, set()).add((iso[0], iso[1]))

        recurring = [(t, w) for t, w in weeks_by_topic.items() if len(w) >= 2]
        if not recurring:
            return []
        topic, weeks = sorted(recurring, key=lambda tw: len(tw[1]), reverse=True)[0]
        topic_insights = [i for i in self.insights if self.topic_name(i) == topic]
        return [
            Pattern(
                theme="Recurring Theme",
                description=f'"{topic}" spans {len(weeks)} weeks, a core thread',
                pattern_type=PatternType.RECURRING,
                strength=min(100, 25 * len(weeks) + 5 * len(topic_insights)),
                nodes=[_insight_node(i) for i in topic_insights[:3]],
            )
        ]

    def deep_practice(self) -> List[Pattern]:
        dominant = self.dominant_pillar()
        if dominant is None or dominant[1] < 3:
            return []
        pillar = dominant[0]
        pillar_actions = [a for a in self.actions if a.pillar == pillar]
        prefixes = {" ".join(a.text.lower().split()[:2]) for a in pillar_actions}
        if len(prefixes) < 3:
            return []
        return [
            Pattern(
                theme="Deep Practice",
                description=f"{len(prefixes)} different approaches in {pillar}",
                pattern_type=PatternType.FOCUS,
                strength=min(90, 20 * len(prefixes)),
                nodes=[_action_node(a) for a in pillar_actions[:4]],
            )
        ]

    # ---- Aggregation ----

    def candidates(self) -> List[Pattern]:
        found: List[Pattern] = []
        for rule in (
            self.topic_loops,
            self.experiment_fuel,
            self.identity_alignment,
            self.pillar_momentum,
            self.pillar_gap,
            self.recurring_theme,
            self.deep_practice,
        ):
            found.extend(rule())
        return found

    def mine(self) -> MiningResult:
        patterns = dedupe_patterns(self.candidates())
        score = weave_score(patterns)
        logger.debug("Mined %d patterns, weave score %d", len(patterns), score)
        return MiningResult(patterns=patterns, weave_score=score, message=weave_message(score))


def dedupe_patterns(candidates: List[Pattern], limit: int = MAX_PATTERNS) -> List[Pattern]:
    """Strongest pattern per normalized theme, strongest first, capped."""
    seen: set[str] = set()
    kept: List[Pattern] = []
    for pattern in sorted(candidates, key=lambda p: p.strength, reverse=True):
        if pattern.key in seen:
            continue
        seen.add(pattern.key)
        kept.append(pattern)
    return kept[:limit]


def weave_score(patterns: List[Pattern]) -> int:
    if not patterns:
        return 0
    weighted = sum(
        p.strength * (IMBALANCE_WEIGHT if p.pattern_type == PatternType.IMBALANCE else 1.0)
        for p in patterns
    )
    mean = weighted / len(patterns)
    diversity = min(25, len(patterns) * 8)
    connections = 5 * sum(
        1
        for p in patterns
        if p.pattern_type in (PatternType.CONNECTION, PatternType.EXPERIMENT_INSIGHT)
    )
    return int(max(0, min(100, round(mean + diversity + connections))))


def weave_message(score: int) -> str:
    if score < 30:
        return "Keep capturing and acting. Connections will emerge."
    if score < 60:
        return "Patterns are forming. Your themes are becoming clear."
    if score < 80:
        return "Strong alignment between what you learn and do."
    return "Exceptional integration. You're living your identity."
