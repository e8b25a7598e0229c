"""
Pytest fixtures and test configuration for weave tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

import pytest

from weave.engine import RelevanceEngine
from weave.protocols import OracleError, OracleUnavailableError
from weave.storage.memory import InMemoryContentStore
from weave.types import (
    ActionRecord,
    ContentItem,
    ContentKind,
    ExperimentRecord,
    ExperimentStatus,
    IdentityProfile,
    Topic,
)

OWNER = "user-1"
OTHER_OWNER = "user-2"

# Fixed "now" so scores are deterministic
NOW = datetime(2025, 3, 12, 9, 30, tzinfo=timezone.utc)


class FakeOracle:
    """Scriptable SemanticOracle.

    Each operation returns the configured payload (or OracleError) and
    records the arguments it was called with.
    """

    def __init__(
        self,
        classify: Any = None,
        cluster: Any = None,
        surface: Any = None,
        connect: Any = None,
    ) -> None:
        self.classify_payload = classify
        self.cluster_payload = cluster
        self.surface_payload = surface
        self.connect_payload = connect
        self.calls: List[tuple] = []

    def classify(self, text, topics, identity):
        self.calls.append(("classify", text, topics, identity))
        return self.classify_payload

    def cluster(self, items, *, min_clusters=3, max_clusters=6):
        self.calls.append(("cluster", items, min_clusters, max_clusters))
        return self.cluster_payload

    def surface(self, query, items, limit):
        self.calls.append(("surface", query, items, limit))
        return self.surface_payload

    def connect(self, item, identity, *, include_synthesis=False):
        self.calls.append(("connect", item, identity, include_synthesis))
        return self.connect_payload


def unavailable(operation: str) -> OracleError:
    return OracleUnavailableError(operation, "gateway timed out")


def make_item(
    item_id: str,
    *,
    kind: ContentKind = ContentKind.INSIGHT,
    title: str = "",
    body: str = "",
    owner_id: str = OWNER,
    days_old: float = 0,
    score: float = 1.0,
    access_count: int = 0,
    last_accessed_days: Optional[float] = None,
    topic_id: Optional[str] = None,
) -> ContentItem:
    return ContentItem(
        id=item_id,
        owner_id=owner_id,
        kind=kind,
        title=title or item_id,
        body=body,
        topic_id=topic_id,
        created_at=NOW - timedelta(days=days_old),
        last_accessed_at=(
            NOW - timedelta(days=last_accessed_days) if last_accessed_days is not None else None
        ),
        access_count=access_count,
        relevance_score=score,
    )


def make_action(action_id: str, text: str, pillar: Optional[str] = None) -> ActionRecord:
    return ActionRecord(id=action_id, owner_id=OWNER, text=text, pillar=pillar)


def make_experiment(
    experiment_id: str,
    title: str,
    *,
    target: Optional[str] = None,
    status: ExperimentStatus = ExperimentStatus.IN_PROGRESS,
) -> ExperimentRecord:
    return ExperimentRecord(
        id=experiment_id,
        owner_id=OWNER,
        title=title,
        identity_shift_target=target,
        status=status,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def store():
    return InMemoryContentStore()


@pytest.fixture
def topics():
    return [
        Topic(id="t-sleep", name="Sleep", description="Rest and recovery"),
        Topic(id="t-writing", name="Creative Writing"),
    ]


@pytest.fixture
def identity():
    return IdentityProfile(
        owner_id=OWNER,
        narrative_text="I am a calm writer who builds healthy routines",
        core_values=["honesty", "craft"],
    )


@pytest.fixture
def seeded_store(store, topics, identity):
    """Store with a small, realistic journal for OWNER."""
    for topic in topics:
        store.add_topic(OWNER, topic)
    store.set_identity(identity)
    store.add_item(
        make_item(
            "i-1",
            title="Evening wind-down",
            body="Reading fiction before bed helps sleep",
            days_old=2,
            score=0.8,
            topic_id="t-sleep",
        )
    )
    store.add_item(
        make_item("i-2", title="Morning pages", body="Writing three pages daily", days_old=5)
    )
    store.add_item(
        make_item(
            "d-1",
            kind=ContentKind.DOCUMENT,
            title="Sleep science notes",
            body="Circadian rhythm summary",
            days_old=40,
            score=0.7,
        )
    )
    return store


@pytest.fixture
def fake_oracle():
    return FakeOracle()


@pytest.fixture
def engine(seeded_store, fake_oracle):
    return RelevanceEngine(seeded_store, fake_oracle, clock=lambda: NOW)


# Factories as fixtures, so test modules never import conftest directly


@pytest.fixture(name="make_item")
def make_item_fixture():
    return make_item


@pytest.fixture(name="make_action")
def make_action_fixture():
    return make_action


@pytest.fixture(name="make_experiment")
def make_experiment_fixture():
    return make_experiment


@pytest.fixture
def oracle_factory():
    """Build a FakeOracle with scripted payloads."""
    return FakeOracle


@pytest.fixture
def oracle_down():
    """An oracle whose every call reports the gateway as unavailable."""
    return FakeOracle(
        classify=unavailable("classify"),
        cluster=unavailable("cluster"),
        surface=unavailable("surface"),
        connect=unavailable("connect"),
    )


@pytest.fixture
def owner():
    return OWNER
