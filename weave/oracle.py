"""LLM-backed SemanticOracle.

Builds the classify / cluster / surface / connect prompts, sends them through a
ModelProtocol and turns the reply into parsed JSON. Every failure comes back
as an OracleError value:

- no model configured, transport errors, timeouts → OracleUnavailableError
- reply that is not JSON (after stripping markdown fences) →
  MalformedOracleResponseError

Shape validation is left to the features; this module only guarantees
"parsed JSON or an error".
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from weave.protocols import (
    MalformedOracleResponseError,
    ModelMessage,
    ModelProtocol,
    OracleError,
    OracleUnavailableError,
)
from weave.types import CLASSIFICATION_PILLARS, IdentityProfile, Topic

logger = logging.getLogger(__name__)

MAX_CLASSIFY_CHARS = 2000
DEFAULT_MAX_TOKENS = 1024

CLASSIFY_SYSTEM = "You are a content classifier. Return only valid JSON, no markdown."
CLUSTER_SYSTEM = "You are a semantic clustering engine. Return only valid JSON array."
SURFACE_SYSTEM = (
    "You are a personal knowledge retrieval engine. Return only valid JSON. "
    "Your synthesis should reflect the user's own captured wisdom back to them."
)
CONNECT_SYSTEM = (
    "You help users see how their captured wisdom connects to their direction. "
    "Return only valid JSON."
)
MAX_CONNECT_CHARS = 500


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` block if present."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        # Remove first line (```json or ```)
        lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines)
    elif text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_json_reply(operation: str, text: Optional[str]) -> Any | MalformedOracleResponseError:
    if not text or not text.strip():
        return MalformedOracleResponseError(operation, "empty reply")
    try:
        return json.loads(strip_code_fences(text))
    except (TypeError, ValueError) as exc:
        return MalformedOracleResponseError(operation, f"reply is not JSON: {exc}")


def _topic_lines(topics: list[Topic]) -> str:
    lines = [f"- {t.name}: {t.description or 'No description'}" for t in topics if t.name]
    return "\n".join(lines) or "No topics defined"


def _identity_context(identity: Optional[IdentityProfile]) -> str:
    if identity is None or not identity.narrative_text:
        return "No identity defined"
    values = ", ".join(identity.core_values) if identity.core_values else "Not specified"
    context = f"Identity: {identity.narrative_text}\nValues: {values}"
    if identity.weekly_focus:
        context += f"\nWeekly focus: {identity.weekly_focus}"
    return context


def build_classify_prompt(
    text: str, topics: list[Topic], identity: Optional[IdentityProfile]
) -> str:
    return (
        "Classify this content and return JSON only.\n\n"
        f"CONTENT:\n{text[:MAX_CLASSIFY_CHARS]}\n\n"
        f"AVAILABLE TOPICS:\n{_topic_lines(topics)}\n\n"
        f"USER CONTEXT:\n{_identity_context(identity)}\n\n"
        "Return JSON with:\n"
        "{\n"
        '  "topic_name": "best matching topic name from list or null",\n'
        '  "themes": ["2-4 key themes"],\n'
        f'  "pillars": ["relevant life pillars: {", ".join(CLASSIFICATION_PILLARS)}"],\n'
        '  "identity_alignment": 0.0-1.0 score of how aligned this is with the identity,\n'
        '  "action_potential": 0.0-1.0 score of how actionable this content is\n'
        "}"
    )


def build_cluster_prompt(items: list[dict[str, Any]], min_clusters: int, max_clusters: int) -> str:
    item_lines = "\n".join(
        f"[{i}] {item.get('kind', 'item')}: {item.get('excerpt', '')}" for i, item in enumerate(items)
    )
    return (
        f"Group these content items into {min_clusters}-{max_clusters} semantic clusters. "
        "Return JSON only.\n\n"
        f"ITEMS:\n{item_lines}\n\n"
        "Return JSON array:\n"
        "[\n"
        "  {\n"
        '    "cluster_id": "unique_id",\n'
        '    "theme": "cluster theme name (2-4 words)",\n'
        '    "item_indices": [0, 3, 7],\n'
        '    "relevance": 0.0-1.0 score of cluster importance\n'
        "  }\n"
        "]\n\n"
        "Group by semantic meaning, not surface keywords. Each item can be in max 1 cluster."
    )


def build_surface_prompt(query: str, items: list[dict[str, Any]], limit: int) -> str:
    item_lines = "\n\n".join(
        f"[{i}] {item.get('kind', 'item')} \"{item.get('title', '')}\": {item.get('excerpt', '')}"
        for i, item in enumerate(items)
    )
    return (
        f"Find the {limit} most relevant items for this query and synthesize what you find.\n\n"
        f"QUERY: {query}\n\n"
        f"ITEMS:\n{item_lines}\n\n"
        "Return JSON:\n"
        "{\n"
        '  "relevant_indices": [5, 12, 3],\n'
        '  "synthesis": "A 1-2 sentence direct answer based on the user\'s own captured '
        'knowledge. Reference specific titles when relevant. Be concrete, not generic."\n'
        "}\n\n"
        "Consider semantic meaning, not just keyword matching. The synthesis should sound "
        "like you're surfacing what they already know."
    )


def build_connect_prompt(
    item: dict[str, Any], identity: IdentityProfile, include_synthesis: bool
) -> str:
    direction = identity.year_note or identity.narrative_text or "Not specified"
    values = ", ".join(identity.core_values) or "Not specified"
    fields = (
        '  "connection": "one sentence showing how this insight relates to their '
        'direction or values, specific not generic",\n'
        '  "application": "one reflective question or micro-action for today"'
    )
    if include_synthesis:
        fields += (
            ',\n  "synthesis": "a brief theme this insight suggests across their journey"'
        )
    return (
        "USER'S CONTEXT:\n"
        f"- Direction: {direction}\n"
        f"- Values: {values}\n"
        f"- Weekly focus: {identity.weekly_focus or 'Not specified'}\n\n"
        "INSIGHT TO CONNECT:\n"
        f"Title: {item.get('title', '')}\n"
        f"Content: {(item.get('excerpt') or '')[:MAX_CONNECT_CHARS]}\n\n"
        "Return JSON:\n"
        "{\n"
        f"{fields}\n"
        "}\n\n"
        "Be direct. Ground everything in their actual words."
    )


class ModelOracle:
    """SemanticOracle that prompts a ModelProtocol for JSON answers.

    With ``model=None`` every call returns OracleUnavailableError, so the
    engine runs entirely on its fallbacks.
    """

    def __init__(
        self,
        model: Optional[ModelProtocol],
        *,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: Optional[float] = None,
    ) -> None:
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def model_id(self) -> Optional[str]:
        return self._model.model_id if self._model is not None else None

    def _ask(self, operation: str, system: str, prompt: str) -> Any | OracleError:
        if self._model is None:
            return OracleUnavailableError(operation, "no model configured")
        try:
            response = self._model.generate(
                [ModelMessage(role="user", content=prompt)],
                system=system,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except Exception as exc:
            logger.warning("Oracle %s call failed: %s", operation, exc)
            return OracleUnavailableError(operation, str(exc))

        result = parse_json_reply(operation, response.content)
        if isinstance(result, OracleError):
            logger.warning("Oracle %s reply rejected: %s", operation, result)
        return result

    def classify(
        self,
        text: str,
        topics: list[Topic],
        identity: Optional[IdentityProfile],
    ) -> Any | OracleError:
        return self._ask("classify", CLASSIFY_SYSTEM, build_classify_prompt(text, topics, identity))

    def cluster(
        self,
        items: list[dict[str, Any]],
        *,
        min_clusters: int = 3,
        max_clusters: int = 6,
    ) -> Any | OracleError:
        return self._ask(
            "cluster", CLUSTER_SYSTEM, build_cluster_prompt(items, min_clusters, max_clusters)
        )

    def surface(self, query: str, items: list[dict[str, Any]], limit: int) -> Any | OracleError:
        return self._ask("surface", SURFACE_SYSTEM, build_surface_prompt(query, items, limit))

    def connect(
        self,
        item: dict[str, Any],
        identity: IdentityProfile,
        *,
        include_synthesis: bool = False,
    ) -> Any | OracleError:
        return self._ask(
            "connect", CONNECT_SYSTEM, build_connect_prompt(item, identity, include_synthesis)
        )
