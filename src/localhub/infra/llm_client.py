"""Language-model client used by every LocalHub agent.

Wraps the Gemini SDK behind the ``complete(messages, options)`` call the
assistant core is written against, so tests can inject a double.
"""

import asyncio
import logging
from typing import Sequence

from localhub.app.config import Settings, get_settings
from localhub.domain.ports import ChatMessage, CompletionOptions, LLMCompletion
from localhub.exceptions import LLMCallError, LLMNotConfiguredError

logger = logging.getLogger(__name__)

# Gemini names the assistant role "model"
_ROLE_MAP = {"user": "user", "assistant": "model", "model": "model"}


def _split_messages(messages: Sequence[ChatMessage]) -> tuple[str | None, list[dict]]:
    """Separate system text from the chat contents Gemini expects."""
    system_parts = [m.content for m in messages if m.role == "system"]
    contents = [
        {"role": _ROLE_MAP.get(m.role, "user"), "parts": [m.content]}
        for m in messages
        if m.role != "system"
    ]
    system_instruction = "\n\n".join(system_parts) if system_parts else None
    return system_instruction, contents


def _token_count(response) -> int:
    usage = getattr(response, "usage_metadata", None)
    if not usage:
        return 0
    prompt_tokens = getattr(usage, "prompt_token_count", 0) or 0
    completion_tokens = getattr(usage, "candidates_token_count", 0) or 0
    return prompt_tokens + completion_tokens


class GeminiLLMClient:
    """``LLMClient`` backed by Google Gemini."""

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()

    @property
    def is_configured(self) -> bool:
        return self._settings.llm_configured

    async def complete(
        self, messages: Sequence[ChatMessage], options: CompletionOptions,
    ) -> LLMCompletion:
        if not self.is_configured:
            raise LLMNotConfiguredError("Gemini API key not configured")
        if not messages:
            raise LLMCallError("No messages provided")

        from localhub.infra.gemini_client import get_model

        system_instruction, contents = _split_messages(messages)
        if not contents:
            raise LLMCallError("At least one non-system message is required")

        model = get_model(
            model_name=options.model,
            temperature=options.temperature,
            max_output_tokens=options.max_tokens,
            json_mode=options.json_mode,
            response_schema=options.response_schema,
            system_instruction=system_instruction,
        )

        try:
            response = await asyncio.wait_for(
                model.generate_content_async(contents),
                timeout=self._settings.llm_timeout_seconds,
            )
            text = response.text
        except asyncio.TimeoutError as exc:
            raise LLMCallError(
                f"Gemini call timed out after {self._settings.llm_timeout_seconds:.0f}s"
            ) from exc
        except Exception as exc:
            raise LLMCallError(f"Gemini call failed: {exc}") from exc

        if not text or not text.strip():
            raise LLMCallError("Gemini returned an empty response")

        return LLMCompletion(text=text.strip(), tokens_used=_token_count(response))
