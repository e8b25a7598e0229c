"""Relevance engine routes.

Thin HTTP wrappers over ``weave.RelevanceEngine``. The engine is
synchronous (store and oracle calls block), so each call runs in a worker
thread. Engine errors propagate to the exception handlers in ``main``.
"""

import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from weave import ModelOracle, RelevanceEngine
from weave.logging_config import get_logger
from weave.models.anthropic import AnthropicModel
from weave.models.auto import auto_configure_model
from weave.models.openai import OpenAIModel

from ..auth import CurrentUser
from ..config import Settings, get_settings
from ..database import Store
from ..models import (
    AccessRequest,
    AccessResponse,
    ClassifyRequest,
    ClassifyResponse,
    ClusterResponse,
    MineResponse,
    RankResponse,
    ResurfaceRequest,
    ResurfaceResponse,
    SurfaceOneRequest,
    SurfaceOneResponse,
    SurfaceRequest,
    SurfaceResponse,
)
from ..rate_limit import engine_rate_limit, limiter, read_rate_limit

logger = get_logger("api.engine")

router = APIRouter(prefix="/engine", tags=["engine"])

_oracle: ModelOracle | None = None


def build_model(settings: Settings):
    """Create the completion model named by settings, or None if disabled."""
    provider = (settings.oracle_provider or "none").lower()
    if provider == "none":
        return None
    if provider == "auto":
        return auto_configure_model()
    if provider == "anthropic":
        return AnthropicModel(
            settings.oracle_model,
            api_key=settings.oracle_api_key,
            timeout=settings.oracle_timeout_seconds,
            max_retries=settings.oracle_max_retries,
        )
    if provider in ("gateway", "openai"):
        return OpenAIModel(
            settings.oracle_model,
            api_key=settings.oracle_api_key,
            base_url=settings.oracle_base_url,
            timeout=settings.oracle_timeout_seconds,
            max_retries=settings.oracle_max_retries,
        )
    raise ValueError(f"Unknown oracle provider: {settings.oracle_provider}")


def get_oracle(settings: Annotated[Settings, Depends(get_settings)]) -> ModelOracle:
    """Cached oracle. Missing credentials degrade to fallbacks instead of failing."""
    global _oracle
    if _oracle is None:
        try:
            model = build_model(settings)
        except (ImportError, ValueError) as e:
            logger.warning(f"Oracle disabled: {e}")
            model = None
        _oracle = ModelOracle(model)
    return _oracle


def get_engine(
    store: Store,
    oracle: Annotated[ModelOracle, Depends(get_oracle)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> RelevanceEngine:
    return RelevanceEngine(store, oracle, audit=settings.engine_event_log)


Engine = Annotated[RelevanceEngine, Depends(get_engine)]


@router.post("/classify", response_model=ClassifyResponse)
@limiter.limit(engine_rate_limit)
async def classify_item(request: Request, body: ClassifyRequest, user: CurrentUser, engine: Engine):
    """Classify an item and store its static relevance score."""
    classification = await asyncio.to_thread(
        engine.classify, user.owner_id, body.item_id, body.item_kind
    )
    return ClassifyResponse(success=True, classification=classification.to_dict())


@router.post("/rank", response_model=RankResponse)
@limiter.limit(read_rate_limit)
async def rank_items(request: Request, user: CurrentUser, engine: Engine):
    """Re-derive dynamic relevance for all of the owner's content."""
    summary = await asyncio.to_thread(engine.rank, user.owner_id)
    logger.info(f"Rank for {user.owner_id}: {summary.updated} updated")
    return RankResponse(
        updated=summary.updated,
        total_insights=summary.total_insights,
        total_documents=summary.total_documents,
    )


@router.post("/cluster", response_model=ClusterResponse)
@limiter.limit(engine_rate_limit)
async def cluster_items(request: Request, user: CurrentUser, engine: Engine):
    """Group recent content into thematic clusters."""
    result = await asyncio.to_thread(engine.cluster, user.owner_id)
    return ClusterResponse(
        clusters=[c.to_dict() for c in result.clusters],
        total_items=result.total_items,
        status=result.status,
        message=result.message,
    )


@router.post("/surface", response_model=SurfaceResponse)
@limiter.limit(engine_rate_limit)
async def surface_items(request: Request, body: SurfaceRequest, user: CurrentUser, engine: Engine):
    """Surface content relevant to a free-text query."""
    result = await asyncio.to_thread(engine.surface, user.owner_id, body.query, body.limit)
    return SurfaceResponse(
        items=[item.to_dict() for item in result.items],
        synthesis=result.synthesis,
        query=result.query,
        fallback=result.fallback,
    )


@router.post("/resurface", response_model=ResurfaceResponse)
@limiter.limit(read_rate_limit)
async def resurface_items(
    request: Request,
    user: CurrentUser,
    engine: Engine,
    body: ResurfaceRequest | None = None,
):
    """High-value items not opened in the last 30 days."""
    limit = body.limit if body else None
    result = await asyncio.to_thread(engine.resurface, user.owner_id, limit)
    return ResurfaceResponse(
        forgotten=[item.to_dict() for item in result.forgotten],
        message=result.message,
        seen_today=result.seen_today,
    )


@router.post("/surface-one", response_model=SurfaceOneResponse)
@limiter.limit(read_rate_limit)
async def surface_one_insight(
    request: Request,
    user: CurrentUser,
    engine: Engine,
    body: SurfaceOneRequest | None = None,
):
    """One insight, weighted toward the least opened, tied to the owner's identity."""
    include_synthesis = body.include_synthesis if body else False
    result = await asyncio.to_thread(engine.surface_one, user.owner_id, include_synthesis)
    return SurfaceOneResponse(
        insight=result.insight.to_dict() if result.insight else None,
        connection=result.connection,
        application=result.application,
        synthesis=result.synthesis,
        total_insights=result.total_insights,
        message=result.message,
    )


@router.post("/mine", response_model=MineResponse)
@limiter.limit(read_rate_limit)
async def mine_patterns(request: Request, user: CurrentUser, engine: Engine):
    """Mine cross-entity patterns and the weave score."""
    result = await asyncio.to_thread(engine.mine, user.owner_id)
    return MineResponse(
        patterns=[p.to_dict() for p in result.patterns],
        weave_score=result.weave_score,
        message=result.message,
    )


@router.post("/access", response_model=AccessResponse)
@limiter.limit(read_rate_limit)
async def record_access(request: Request, body: AccessRequest, user: CurrentUser, engine: Engine):
    """Record that the owner opened an item."""
    count = await asyncio.to_thread(
        engine.record_access, user.owner_id, body.item_kind, body.item_id
    )
    return AccessResponse(success=True, access_count=count)
