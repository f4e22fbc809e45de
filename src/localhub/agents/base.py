"""Base agent class for all LocalHub AI agents.

Every LLM-backed component (query interpreter, response composer,
description enhancer, business assistant) inherits from BaseAgent, which
provides:

- Access to an injected ``LLMClient`` (Gemini by default)
- A standard AgentResult return type (Result pattern)
- Automatic latency measurement and token tracking
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from localhub.domain.ports import ChatMessage, CompletionOptions, LLMClient

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

@dataclass
class AgentResult:
    """Standard result type for all agent operations.

    Follows the Result pattern: every agent call returns an AgentResult
    instead of raising exceptions. Callers check ``result.ok`` to
    determine success or failure.

    Attributes:
        ok: True if the operation succeeded.
        data: The response payload (text, parsed JSON, etc.).
        error: Human-readable error description when ``ok`` is False.
        tokens_used: Total tokens consumed (prompt + completion).
        latency_ms: Wall-clock time for the operation in milliseconds.
    """

    ok: bool
    data: Any = None
    error: Optional[str] = None
    tokens_used: int = 0
    latency_ms: int = 0

    @classmethod
    def success(
        cls,
        data: Any,
        tokens_used: int = 0,
        latency_ms: int = 0,
    ) -> "AgentResult":
        """Create a successful result."""
        return cls(
            ok=True,
            data=data,
            tokens_used=tokens_used,
            latency_ms=latency_ms,
        )

    @classmethod
    def failure(cls, error: str, latency_ms: int = 0) -> "AgentResult":
        """Create a failure result."""
        return cls(ok=False, error=error, latency_ms=latency_ms)


# ---------------------------------------------------------------------------
# Base agent
# ---------------------------------------------------------------------------

class BaseAgent:
    """Base class for all LocalHub agents.

    Example::

        class EnhancerAgent(BaseAgent):
            def __init__(self, llm_client):
                super().__init__(agent_name="enhancer", llm_client=llm_client)

            async def enhance(self, text: str) -> AgentResult:
                return await self.generate(
                    prompt=f"Improve this text: {text}",
                    system_instruction="You are a helpful writing assistant.",
                )
    """

    def __init__(
        self,
        agent_name: str,
        llm_client: LLMClient,
        temperature: float = 0.7,
        max_tokens: int = 300,
    ):
        """Initialise the agent.

        Args:
            agent_name: A short, unique name for this agent (used in logs).
            llm_client: The language-model client to call.
            temperature: Generation temperature (0.0-1.0).
            max_tokens: Default completion token cap.
        """
        self.agent_name = agent_name
        self.llm_client = llm_client
        self.temperature = temperature
        self.max_tokens = max_tokens

    @property
    def is_configured(self) -> bool:
        """True when the underlying model integration can be called."""
        return bool(getattr(self.llm_client, "is_configured", False))

    # ------------------------------------------------------------------
    # Core generation
    # ------------------------------------------------------------------

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
        response_schema: dict | None = None,
    ) -> AgentResult:
        """Send an ordered message list to the model.

        Returns:
            An ``AgentResult`` with the reply text in ``data``.
        """
        start_time = time.time()
        options = CompletionOptions(
            temperature=self.temperature if temperature is None else temperature,
            max_tokens=max_tokens or self.max_tokens,
            json_mode=json_mode,
            response_schema=response_schema,
        )
        try:
            completion = await self.llm_client.complete(list(messages), options)
        except Exception as exc:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.error(
                "[%s] Generation failed after %dms: %s",
                self.agent_name,
                latency_ms,
                exc,
            )
            return AgentResult.failure(str(exc), latency_ms=latency_ms)

        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(
            "[%s] Generation succeeded: tokens=%d, latency=%dms",
            self.agent_name,
            completion.tokens_used,
            latency_ms,
        )
        return AgentResult.success(
            data=completion.text,
            tokens_used=completion.tokens_used,
            latency_ms=latency_ms,
        )

    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        json_mode: bool = False,
        response_schema: dict | None = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> AgentResult:
        """Generate a single-turn response.

        Args:
            prompt: The user prompt to send.
            system_instruction: Optional system instruction that shapes
                the model's behaviour.
            json_mode: If True the model is instructed to return valid JSON.

        Returns:
            An ``AgentResult`` with the response text in ``data``.
        """
        messages: list[ChatMessage] = []
        if system_instruction:
            messages.append(ChatMessage(role="system", content=system_instruction))
        messages.append(ChatMessage(role="user", content=prompt))
        return await self.complete(
            messages,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=json_mode,
            response_schema=response_schema,
        )

    # ------------------------------------------------------------------
    # JSON generation convenience
    # ------------------------------------------------------------------

    async def generate_json(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        response_schema: dict | None = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> AgentResult:
        """Generate a response and parse it as JSON.

        Calls ``generate`` with ``json_mode=True``, then deserialises the
        response text into a Python dict or list.  If parsing fails the
        result will be a failure with the parse error.
        """
        result = await self.generate(
            prompt=prompt,
            system_instruction=system_instruction,
            json_mode=True,
            response_schema=response_schema,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        if not result.ok:
            return result

        try:
            parsed = json.loads(_strip_code_fence(result.data))
            return AgentResult.success(
                data=parsed,
                tokens_used=result.tokens_used,
                latency_ms=result.latency_ms,
            )
        except (json.JSONDecodeError, TypeError) as exc:
            logger.warning(
                "[%s] JSON parse failed: %s; raw text: %.200s",
                self.agent_name,
                exc,
                result.data,
            )
            return AgentResult.failure(
                error=f"JSON parse error: {exc}",
                latency_ms=result.latency_ms,
            )


def _strip_code_fence(text: str) -> str:
    """Remove a ```json ... ``` wrapper some models add despite JSON mode."""
    if not isinstance(text, str):
        return text
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[-1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()
