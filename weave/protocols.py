"""
weave Protocol Definitions
==========================

Interface contracts between the relevance engine and its collaborators.

Collaborators:
- ContentStore:    keyed, owner-scoped persistence (hosted Postgres in
                   production, an in-memory dict in tests).
- SemanticOracle:  LLM-backed classification, clustering and query-time
                   selection. Slow, rate-limited and untrusted.
- ModelProtocol:   the completion model the default oracle talks to.

Error handling philosophy:
- UnauthorizedError, NotFoundError and InvalidInputError reach the caller.
- Oracle failures are returned as OracleError *values*, never raised, so
  every feature degrades to its documented fallback.
- Storage failures raise StorageError (implementation-specific subclass).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import (
    Any,
    Optional,
    Protocol,
    runtime_checkable,
)

from weave.types import (
    ActionRecord,
    ContentItem,
    ContentKind,
    ExperimentRecord,
    ExperimentStatus,
    IdentityProfile,
    Preference,
    Topic,
)

# =============================================================================
# ERRORS
# =============================================================================


class WeaveError(Exception):
    """Base for all weave errors."""

    pass


class UnauthorizedError(WeaveError):
    """Raised when an entry point is invoked without an owner context."""

    pass


class NotFoundError(WeaveError):
    """Raised when a referenced item does not exist for the owner."""

    def __init__(self, kind: str, item_id: str) -> None:
        super().__init__(f"{kind} {item_id} not found")
        self.kind = kind
        self.item_id = item_id


class InvalidInputError(WeaveError, ValueError):
    """Raised for caller mistakes (query too short, missing item id)."""

    pass


class StorageError(WeaveError):
    """Raised by store implementations on persistence failures."""

    pass


class OracleError(WeaveError):
    """Base for oracle failures. Returned as a value, not raised."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation


class OracleUnavailableError(OracleError):
    """Network failure, non-success status, timeout, or no model configured."""

    pass


class MalformedOracleResponseError(OracleError):
    """The oracle answered but the payload was not the JSON we asked for."""

    pass


# =============================================================================
# MODEL PROTOCOL
# =============================================================================


@dataclass
class ModelMessage:
    """A message in a conversation."""

    role: str  # "system", "user", "assistant"
    content: str


@dataclass
class ModelResponse:
    """Complete response from a model."""

    content: str
    usage: dict[str, int] = field(default_factory=dict)
    stop_reason: Optional[str] = None
    model_id: Optional[str] = None


@runtime_checkable
class ModelProtocol(Protocol):
    """Interface for the completion model behind the default oracle.

    Implementations: OpenAIModel (any OpenAI-compatible gateway),
    AnthropicModel.
    """

    @property
    def model_id(self) -> str:
        ...

    def generate(
        self,
        messages: list[ModelMessage],
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        system: Optional[str] = None,
    ) -> ModelResponse:
        """Generate a complete response. Raises on transport failure."""
        ...


# =============================================================================
# SEMANTIC ORACLE
# =============================================================================
# Each operation returns the parsed JSON payload on success or an
# OracleError instance on failure. Payload shapes are *requested*, not
# guaranteed; features validate every field before use.
# =============================================================================


@runtime_checkable
class SemanticOracle(Protocol):
    def classify(
        self,
        text: str,
        topics: list[Topic],
        identity: Optional[IdentityProfile],
    ) -> Any | OracleError:
        """Expected: {topic_name, themes[], pillars[], identity_alignment,
        action_potential}."""
        ...

    def cluster(
        self,
        items: list[dict[str, Any]],
        *,
        min_clusters: int = 3,
        max_clusters: int = 6,
    ) -> Any | OracleError:
        """Items are {id, kind, excerpt}. Expected: [{cluster_id, theme,
        item_indices[], relevance}]."""
        ...

    def surface(
        self,
        query: str,
        items: list[dict[str, Any]],
        limit: int,
    ) -> Any | OracleError:
        """Items are {id, kind, title, excerpt, score}. Expected:
        {relevant_indices[], synthesis}."""
        ...

    def connect(
        self,
        item: dict[str, Any],
        identity: IdentityProfile,
        *,
        include_synthesis: bool = False,
    ) -> Any | OracleError:
        """Item is {title, excerpt}. Expected: {connection, application,
        synthesis?}."""
        ...


# =============================================================================
# CONTENT STORE
# =============================================================================


@runtime_checkable
class ContentStore(Protocol):
    """Owner-scoped keyed CRUD. Every method takes the owner id first."""

    def get_item(self, owner_id: str, kind: ContentKind, item_id: str) -> Optional[ContentItem]:
        ...

    def list_items(
        self,
        owner_id: str,
        kind: ContentKind,
        *,
        order_by: str = "created_at",
        limit: Optional[int] = None,
    ) -> list[ContentItem]:
        """List items newest-first (``created_at``) or highest-first
        (``relevance_score``)."""
        ...

    def update_item(
        self,
        owner_id: str,
        kind: ContentKind,
        item_id: str,
        fields: dict[str, Any],
    ) -> bool:
        """Write a single row. Returns False if the row did not exist.

        Raises InvalidInputError for kinds outside SCORED_KINDS.
        """
        ...

    def list_topics(self, owner_id: str) -> list[Topic]:
        ...

    def list_actions(self, owner_id: str, *, limit: Optional[int] = None) -> list[ActionRecord]:
        ...

    def list_experiments(
        self,
        owner_id: str,
        *,
        status: Optional[ExperimentStatus] = None,
        limit: Optional[int] = None,
    ) -> list[ExperimentRecord]:
        ...

    def get_identity(self, owner_id: str) -> Optional[IdentityProfile]:
        ...

    def get_preference(self, owner_id: str, key: str) -> Optional[Preference]:
        ...

    def set_preference(self, owner_id: str, key: str, when: datetime) -> Preference:
        ...
