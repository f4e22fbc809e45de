"""Description Agent — polishes owner-written event and listing descriptions."""

import logging

from localhub.agents.base import BaseAgent
from localhub.domain.ports import LLMClient
from localhub.exceptions import LLMCallError

logger = logging.getLogger(__name__)

MIN_ENHANCE_LENGTH = 10

DESCRIPTION_SYSTEM_PROMPT = (
    "You are a helpful writing assistant. Enhance descriptions to be engaging "
    "and clear. Return only the improved text."
)

ENHANCE_PROMPTS = {
    "event": (
        "Enhance this event description to be exciting and informative. "
        "Include what attendees can expect. Keep it under 150 words:\n\n\"{text}\""
    ),
    "listing": (
        "Enhance this community listing to be clear and appealing. "
        "Highlight the value to the community. Keep it under 100 words:\n\n\"{text}\""
    ),
    "marketplace": (
        "Enhance this marketplace listing to appeal to buyers. "
        "Highlight features and condition. Keep it under 100 words:\n\n\"{text}\""
    ),
    "general": (
        "Enhance this description to be clearer and more engaging. "
        "Keep it concise:\n\n\"{text}\""
    ),
}

ENHANCE_FAILED_MESSAGE = (
    "Unable to enhance description. Please try again or continue with your original text."
)


class DescriptionAgent(BaseAgent):
    def __init__(self, llm_client: LLMClient):
        super().__init__(
            agent_name="description",
            llm_client=llm_client,
            temperature=0.7,
            max_tokens=200,
        )

    async def enhance(self, text: str, kind: str = "general") -> str:
        """Return an improved version of *text*.

        Raises:
            ValueError: *text* is shorter than ten characters.
            LLMCallError: the model call failed; the message is safe to show.
        """
        stripped = (text or "").strip()
        if len(stripped) < MIN_ENHANCE_LENGTH:
            raise ValueError(f"Please provide at least {MIN_ENHANCE_LENGTH} characters to enhance")

        if not self.is_configured:
            return stripped[0].upper() + stripped[1:]

        prompt = ENHANCE_PROMPTS.get(kind, ENHANCE_PROMPTS["general"]).format(text=stripped)
        result = await self.generate(prompt=prompt, system_instruction=DESCRIPTION_SYSTEM_PROMPT)
        if not result.ok or not (result.data or "").strip():
            logger.warning("[%s] Enhancement failed: %s", self.agent_name, result.error)
            raise LLMCallError(ENHANCE_FAILED_MESSAGE)
        return result.data.strip()
