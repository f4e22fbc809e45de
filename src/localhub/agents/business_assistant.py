"""Business Assistant Agent — answers a visitor on behalf of one business."""

import logging
import math

from localhub.agents.base import AgentResult, BaseAgent
from localhub.domain.ports import LLMClient

logger = logging.getLogger(__name__)

# Rough characters-per-token ratio used to size the completion cap
CHARS_PER_TOKEN = 4


def max_tokens_for(max_response_length: int) -> int:
    return max(1, math.ceil(max_response_length / CHARS_PER_TOKEN))


class BusinessAssistantAgent(BaseAgent):
    def __init__(self, llm_client: LLMClient):
        super().__init__(
            agent_name="business_assistant",
            llm_client=llm_client,
            temperature=0.7,
        )

    async def reply(
        self, system_prompt: str, user_message: str, max_response_length: int,
    ) -> AgentResult:
        """One completion: the built prompt as system context, the visitor's
        message as the sole user turn."""
        result = await self.generate(
            prompt=user_message,
            system_instruction=system_prompt,
            max_tokens=max_tokens_for(max_response_length),
        )
        if result.ok and not (result.data or "").strip():
            return AgentResult.failure("empty reply", latency_ms=result.latency_ms)
        return result
