"""Pydantic models for API requests and responses."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

ItemKind = Literal["insight", "document", "experiment"]


# =============================================================================
# Requests
# =============================================================================


class ClassifyRequest(BaseModel):
    """Classify one captured item and store its relevance score."""

    # Checked by the engine so a missing id is a 400 like every other input error
    item_id: str = ""
    item_kind: ItemKind = "insight"


class SurfaceRequest(BaseModel):
    # Length is validated by the engine so the error message stays consistent
    query: str
    limit: int = Field(10, ge=1, le=50)


class ResurfaceRequest(BaseModel):
    limit: int | None = Field(None, ge=1, le=10)


class SurfaceOneRequest(BaseModel):
    include_synthesis: bool = False


class AccessRequest(BaseModel):
    """Record that the owner opened an item."""

    item_id: str = ""
    item_kind: ItemKind = "insight"


# =============================================================================
# Responses
# =============================================================================


class ClassificationOut(BaseModel):
    topic_id: str | None = None
    topic_name: str | None = None
    themes: list[str] = []
    pillars: list[str] = []
    identity_alignment: float
    action_potential: float


class ClassifyResponse(BaseModel):
    success: bool = True
    classification: ClassificationOut


class RankResponse(BaseModel):
    updated: int
    total_insights: int
    total_documents: int


class ClusterOut(BaseModel):
    cluster_id: str
    theme: str
    items: list[str]
    relevance: float


class ClusterResponse(BaseModel):
    clusters: list[ClusterOut]
    total_items: int
    status: Literal["ok", "insufficient_content", "unavailable"] = "ok"
    message: str | None = None


class SurfacedItemOut(BaseModel):
    id: str
    kind: ItemKind
    title: str
    excerpt: str
    score: float
    created_at: datetime | None = None


class SurfaceResponse(BaseModel):
    items: list[SurfacedItemOut]
    synthesis: str | None = None
    query: str
    fallback: bool = False


class ForgottenItemOut(BaseModel):
    id: str
    kind: ItemKind
    title: str
    body: str = ""
    relevance_score: float
    access_count: int = 0
    created_at: datetime | None = None
    last_accessed_at: datetime | None = None


class ResurfaceResponse(BaseModel):
    forgotten: list[ForgottenItemOut]
    message: str
    seen_today: bool = False


class SurfaceOneResponse(BaseModel):
    insight: ForgottenItemOut | None = None
    connection: str
    application: str
    synthesis: str | None = None
    total_insights: int = 0
    message: str | None = None


class PatternNodeOut(BaseModel):
    id: str
    kind: Literal["insight", "action", "experiment", "identity", "warning"]
    title: str


class PatternOut(BaseModel):
    theme: str
    description: str = ""
    pattern_type: Literal["connection", "focus", "imbalance", "recurring", "experiment-insight"]
    strength: int = Field(..., ge=0, le=100)
    nodes: list[PatternNodeOut] = []


class MineResponse(BaseModel):
    patterns: list[PatternOut]
    weave_score: int = Field(..., ge=0, le=100)
    message: str


class AccessResponse(BaseModel):
    success: bool = True
    access_count: int
