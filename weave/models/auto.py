"""Auto-configure a model from environment variables.

Provides a zero-config way to get a completion model for local development
and scripts. The HTTP service builds its model from Settings instead.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

# Default models, cheap/fast
_PROVIDER_DEFAULTS = {
    "anthropic": "claude-haiku-4-5-20251001",
    "openai": "gpt-4o-mini",
    "gateway": "google/gemini-2.5-flash-lite",
}


def auto_configure_model() -> Optional[object]:
    """Auto-detect and create a model from environment variables.

    Detection priority (when ``WEAVE_MODEL_PROVIDER`` is not set):
    1. ``WEAVE_ORACLE_BASE_URL`` plus ``OPENAI_API_KEY`` → OpenAI-compatible gateway
    2. ``CLAUDE_API_KEY`` or ``ANTHROPIC_API_KEY`` → Anthropic
    3. ``OPENAI_API_KEY`` → OpenAI
    4. No key → ``None`` (the engine runs on its fallbacks)

    Environment variables:
        WEAVE_MODEL_PROVIDER: Force a provider (gateway, anthropic, openai).
        WEAVE_MODEL: Override the default model name for the chosen provider.
        WEAVE_ORACLE_BASE_URL: Base URL of an OpenAI-compatible gateway.
        CLAUDE_API_KEY / ANTHROPIC_API_KEY: Anthropic API key.
        OPENAI_API_KEY: OpenAI (or gateway) API key.

    Returns:
        A ModelProtocol instance, or None if no API keys are available.
    """
    forced_provider = os.environ.get("WEAVE_MODEL_PROVIDER", "").lower().strip()
    model_override = os.environ.get("WEAVE_MODEL", "").strip() or None
    base_url = os.environ.get("WEAVE_ORACLE_BASE_URL", "").strip() or None

    if forced_provider:
        provider = forced_provider
    elif base_url and os.environ.get("OPENAI_API_KEY"):
        provider = "gateway"
    elif os.environ.get("ANTHROPIC_API_KEY") or os.environ.get("CLAUDE_API_KEY"):
        provider = "anthropic"
    elif os.environ.get("OPENAI_API_KEY"):
        provider = "openai"
    else:
        return None

    model_id = model_override or _PROVIDER_DEFAULTS.get(provider)

    if provider == "anthropic":
        from weave.models.anthropic import AnthropicModel

        model = AnthropicModel(model_id=model_id)
        logger.info("Auto-configured AnthropicModel (model=%s)", model_id)
        return model

    if provider in ("openai", "gateway"):
        from weave.models.openai import OpenAIModel

        model = OpenAIModel(model_id=model_id, base_url=base_url)
        logger.info("Auto-configured OpenAIModel (model=%s, base_url=%s)", model_id, base_url)
        return model

    logger.warning("Unknown model provider '%s', skipping auto-configuration", provider)
    return None
