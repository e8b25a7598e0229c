"""
Shared types for the weave relevance engine.

All engine dataclasses live here. Stores return them, features consume
them, and the HTTP layer serializes them. Oracle payloads never flow past
the feature that validates them; only these types do.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

# === Shared Utility Functions ===


def utc_now() -> datetime:
    """Get the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class ParseDatetimeError(ValueError):
    """Structured parse failure for ISO datetime strings."""

    def __init__(self, value: str, cause: Exception):
        super().__init__(f"Invalid ISO datetime string: {value!r}")
        self.value = value
        self.cause = cause


def parse_datetime(s: Any) -> Optional[datetime] | ParseDatetimeError:
    """Parse an ISO datetime string (or pass through a datetime/date).

    Naive values are assumed to be UTC. Returns a ParseDatetimeError
    instead of raising.
    """
    if not s:
        return None
    if isinstance(s, datetime):
        value = s
    elif isinstance(s, date):
        value = datetime(s.year, s.month, s.day)
    else:
        try:
            value = datetime.fromisoformat(str(s).replace("Z", "+00:00"))
        except (TypeError, ValueError) as exc:
            return ParseDatetimeError(str(s), exc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def days_between(earlier: Optional[datetime], later: datetime) -> float:
    """Fractional days from ``earlier`` to ``later``, never negative."""
    if earlier is None:
        return 0.0
    return max(0.0, (later - earlier).total_seconds() / 86400.0)


def clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


# === Enums ===


class ContentKind(str, Enum):
    """Kinds of captured content the engine scores and surfaces."""

    INSIGHT = "insight"
    DOCUMENT = "document"
    EXPERIMENT = "experiment"


# Kinds whose rows carry a stored relevance score and access counters
SCORED_KINDS = (ContentKind.INSIGHT, ContentKind.DOCUMENT)


class ExperimentStatus(str, Enum):
    PLANNING = "planning"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"


class PatternType(str, Enum):
    """Structural pattern categories emitted by the miner."""

    CONNECTION = "connection"
    FOCUS = "focus"
    IMBALANCE = "imbalance"
    RECURRING = "recurring"
    EXPERIMENT_INSIGHT = "experiment-insight"


class NodeKind(str, Enum):
    INSIGHT = "insight"
    ACTION = "action"
    EXPERIMENT = "experiment"
    IDENTITY = "identity"
    WARNING = "warning"


# Pillars the classifier may tag content with.
CLASSIFICATION_PILLARS = (
    "Stability",
    "Skill",
    "Content",
    "Health",
    "Presence",
    "Admin",
    "Dating",
    "Learning",
)

# Life domains actions are logged against; used for balance mining.
LIFE_PILLARS = ("Business", "Body", "Mind", "Relationships", "Content", "Play")


# === Stored Records ===


@dataclass
class ContentItem:
    """A captured insight, document or experiment, with its relevance state."""

    id: str
    owner_id: str
    kind: ContentKind
    title: str
    body: str = ""
    source_tag: str = "manual"
    topic_id: Optional[str] = None  # weak reference, may dangle
    created_at: datetime = field(default_factory=utc_now)
    last_accessed_at: Optional[datetime] = None
    access_count: int = 0
    relevance_score: float = 1.0

    @property
    def text(self) -> str:
        return self.body or self.title or ""

    def excerpt(self, length: int) -> str:
        return self.text[:length]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "title": self.title,
            "body": self.body,
            "source_tag": self.source_tag,
            "topic_id": self.topic_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_accessed_at": (
                self.last_accessed_at.isoformat() if self.last_accessed_at else None
            ),
            "access_count": self.access_count,
            "relevance_score": self.relevance_score,
        }


@dataclass
class Topic:
    id: str
    name: str
    description: Optional[str] = None


@dataclass
class IdentityProfile:
    """The owner's stated identity; context for alignment scoring."""

    owner_id: str
    narrative_text: str = ""
    core_values: List[str] = field(default_factory=list)
    weekly_focus: Optional[str] = None
    year_note: Optional[str] = None


@dataclass
class ActionRecord:
    id: str
    owner_id: str
    text: str
    pillar: Optional[str] = None
    action_date: Optional[date] = None


@dataclass
class ExperimentRecord:
    id: str
    owner_id: str
    title: str
    identity_shift_target: Optional[str] = None
    status: ExperimentStatus = ExperimentStatus.PLANNING

    @property
    def is_active(self) -> bool:
        return self.status == ExperimentStatus.IN_PROGRESS


@dataclass
class Preference:
    """Per-owner preference stamp (e.g. when something was last seen)."""

    owner_id: str
    key: str
    updated_at: datetime


# === Derived Results ===


@dataclass
class Classification:
    topic_id: Optional[str] = None
    topic_name: Optional[str] = None
    themes: List[str] = field(default_factory=list)
    pillars: List[str] = field(default_factory=list)
    identity_alignment: float = 0.5
    action_potential: float = 0.5

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topic_id": self.topic_id,
            "topic_name": self.topic_name,
            "themes": list(self.themes),
            "pillars": list(self.pillars),
            "identity_alignment": self.identity_alignment,
            "action_potential": self.action_potential,
        }


@dataclass
class Cluster:
    cluster_id: str
    theme: str
    item_ids: List[str]
    relevance: float = 0.5

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cluster_id": self.cluster_id,
            "theme": self.theme,
            "items": list(self.item_ids),
            "relevance": self.relevance,
        }


@dataclass
class ClusterResult:
    clusters: List[Cluster]
    total_items: int
    status: str = "ok"  # ok | insufficient_content | unavailable
    message: Optional[str] = None


@dataclass
class SurfacedItem:
    id: str
    kind: ContentKind
    title: str
    excerpt: str
    score: float
    created_at: Optional[datetime] = None

    @classmethod
    def from_item(cls, item: ContentItem, excerpt_length: int = 200) -> "SurfacedItem":
        return cls(
            id=item.id,
            kind=item.kind,
            title=item.title,
            excerpt=item.excerpt(excerpt_length),
            score=item.relevance_score,
            created_at=item.created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "title": self.title,
            "excerpt": self.excerpt,
            "score": self.score,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class SurfaceResult:
    query: str
    items: List[SurfacedItem] = field(default_factory=list)
    synthesis: Optional[str] = None
    fallback: bool = False


@dataclass
class RankSummary:
    updated: int
    total_insights: int
    total_documents: int


@dataclass
class ResurfaceResult:
    forgotten: List[ContentItem]
    message: str
    seen_today: bool = False


@dataclass
class SurfaceOneResult:
    """One insight brought back with a line tying it to the owner's identity.

    ``insight`` is None only when the owner has no insights at all.
    """

    insight: Optional[ContentItem]
    connection: str
    application: str
    synthesis: Optional[str] = None
    total_insights: int = 0
    message: Optional[str] = None


@dataclass
class PatternNode:
    id: str
    kind: NodeKind
    title: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "kind": self.kind.value, "title": self.title}


@dataclass
class Pattern:
    """A mined structural correlation. Regenerated per call, never stored."""

    theme: str
    pattern_type: PatternType
    strength: int
    description: str = ""
    nodes: List[PatternNode] = field(default_factory=list)

    @property
    def key(self) -> str:
        return "".join(self.theme.lower().split())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "theme": self.theme,
            "description": self.description,
            "pattern_type": self.pattern_type.value,
            "strength": self.strength,
            "nodes": [n.to_dict() for n in self.nodes],
        }


@dataclass
class MiningResult:
    patterns: List[Pattern]
    weave_score: int
    message: str
