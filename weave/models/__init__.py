"""weave model implementations.

Concrete ModelProtocol implementations used by the LLM-backed oracle.
"""

from __future__ import annotations

from weave.models.anthropic import AnthropicModel
from weave.models.openai import OpenAIModel

__all__ = ["AnthropicModel", "OpenAIModel"]
