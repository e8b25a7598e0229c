"""OpenAIModel: ModelProtocol implementation for OpenAI-compatible APIs.

Wraps the ``openai`` Python SDK. Pointing ``base_url`` at a hosted AI
gateway that speaks the chat-completions protocol works the same way as
talking to OpenAI directly. The SDK is imported lazily so that the module
can be imported without having ``openai`` installed (the import fails only
when the class is instantiated).
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

from weave.protocols import ModelMessage, ModelResponse, WeaveError

logger = logging.getLogger(__name__)


class OpenAIModelError(WeaveError):
    """Raised when the OpenAI SDK reports an error."""

    def __init__(self, error_class: str, message: str) -> None:
        super().__init__(message)
        self.error_class = error_class


class OpenAIModel:
    """ModelProtocol implementation backed by an OpenAI-compatible API.

    Requires the ``openai`` package::

        pip install openai

    Usage::

        model = OpenAIModel()  # uses OPENAI_API_KEY env var
        model = OpenAIModel(
            "google/gemini-2.5-flash-lite",
            api_key=gateway_key,
            base_url="https://gateway.example/v1",
            timeout=20.0,
        )
        response = model.generate([ModelMessage(role="user", content="Hello")])
    """

    def __init__(
        self,
        model_id: str = "gpt-4o-mini",
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        max_tokens: int = 2048,
        timeout: float = 20.0,
        max_retries: int = 2,
    ) -> None:
        try:
            import openai as _openai  # noqa: F811
        except ImportError:
            raise ImportError(
                "The 'openai' package is required for OpenAIModel. "
                "Install it with: pip install openai"
            ) from None

        resolved_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not resolved_key:
            raise ValueError("An API key is required. Pass api_key= or set OPENAI_API_KEY.")

        self._model_id = model_id
        self._max_tokens = max_tokens
        client_kwargs: dict[str, Any] = {
            "api_key": resolved_key,
            "timeout": timeout,
            "max_retries": max_retries,
        }
        if base_url:
            client_kwargs["base_url"] = base_url
        self._client = _openai.OpenAI(**client_kwargs)

    @property
    def model_id(self) -> str:
        return self._model_id

    def generate(
        self,
        messages: list[ModelMessage],
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        system: Optional[str] = None,
    ) -> ModelResponse:
        """Generate a complete response via the chat completions API."""
        kwargs: dict[str, Any] = {
            "model": self._model_id,
            "messages": self._prepare_messages(messages, system),
            "max_tokens": max_tokens or self._max_tokens,
        }
        if temperature is not None:
            kwargs["temperature"] = temperature

        try:
            response = self._client.chat.completions.create(**kwargs)
        except Exception as exc:
            logger.debug("OpenAI API generate failed: %s", exc, exc_info=True)
            raise self._classify_error(exc, "OpenAI API error") from exc

        return self._parse_response(response)

    # ---- Internal helpers ----

    def _prepare_messages(
        self,
        messages: list[ModelMessage],
        system: Optional[str],
    ) -> list[dict[str, Any]]:
        """Convert ModelMessages to chat format."""
        api_messages: list[dict[str, Any]] = []
        if system:
            api_messages.append({"role": "system", "content": system})
        for msg in messages:
            api_messages.append({"role": msg.role, "content": msg.content})
        return api_messages

    def _parse_response(self, response: Any) -> ModelResponse:
        if not getattr(response, "choices", None):
            raise OpenAIModelError("empty", "OpenAI API error: response had no choices")
        choice = response.choices[0]

        usage = {}
        if getattr(response, "usage", None):
            usage = {
                "input_tokens": response.usage.prompt_tokens,
                "output_tokens": response.usage.completion_tokens,
            }

        return ModelResponse(
            content=choice.message.content or "",
            usage=usage,
            stop_reason=choice.finish_reason,
            model_id=getattr(response, "model", None),
        )

    @staticmethod
    def _classify_error(exc: Exception, prefix: str) -> OpenAIModelError:
        """Classify an OpenAI SDK exception into an error class.

        Exception types are looked up with getattr; SDK builds or gateway
        shims that lack one of them fall through to "unknown".
        """
        try:
            import openai as _openai
        except (ImportError, ModuleNotFoundError):
            return OpenAIModelError("unknown", f"{prefix}: {exc}")

        _checks: list[tuple[str, str, str]] = [
            ("RateLimitError", "rate_limit", "rate limited"),
            ("AuthenticationError", "auth", "auth failed"),
            ("APITimeoutError", "timeout", "timeout"),
        ]
        for attr, cls, label in _checks:
            exc_type = getattr(_openai, attr, None)
            if isinstance(exc_type, type) and isinstance(exc, exc_type):
                return OpenAIModelError(cls, f"{prefix}: {label}: {exc}")

        api_status = getattr(_openai, "APIStatusError", None)
        if isinstance(api_status, type) and isinstance(exc, api_status):
            code = getattr(exc, "status_code", "?")
            return OpenAIModelError("server", f"{prefix}: API error ({code}): {exc}")

        return OpenAIModelError("unknown", f"{prefix}: {exc}")
