"""Response Composer — short natural-language summary of search results."""

import logging
from typing import Sequence

from localhub.agents.base import BaseAgent
from localhub.agents.fallback_templates import (
    MAX_ITEMS_PER_SECTION,
    event_line,
    listing_line,
    no_results_message,
    results_summary,
)
from localhub.agents.prompts.search import COMPOSE_PROMPT, COMPOSE_SYSTEM_PROMPT
from localhub.app.config import get_settings
from localhub.domain.ports import LLMClient
from localhub.domain.schemas import EventRecord, ListingRecord

logger = logging.getLogger(__name__)


def build_results_context(
    events: Sequence[EventRecord], listings: Sequence[ListingRecord],
) -> str:
    """Render up to five items per result set for the model.

    Returns a block like::

        EVENTS (2 found):
        - Park Cleanup at Henderson Lake on Sat Oct 24 (Free)
        LISTINGS (1 found):
        - Kids bike [Sports] (Free)
    """
    sections: list[str] = []
    if events:
        lines = [f"- {event_line(e)}" for e in events[:MAX_ITEMS_PER_SECTION]]
        sections.append(f"EVENTS ({len(events)} found):\n" + "\n".join(lines))
    if listings:
        lines = [f"- {listing_line(item)}" for item in listings[:MAX_ITEMS_PER_SECTION]]
        sections.append(f"LISTINGS ({len(listings)} found):\n" + "\n".join(lines))
    return "\n".join(sections)


class ResponseComposerAgent(BaseAgent):
    def __init__(self, llm_client: LLMClient, locale: str | None = None):
        super().__init__(
            agent_name="response_composer",
            llm_client=llm_client,
            temperature=0.7,
            max_tokens=250,
        )
        self.locale = locale or get_settings().locale_name

    async def compose(
        self,
        events: Sequence[EventRecord],
        listings: Sequence[ListingRecord],
        query: str,
    ) -> str:
        """Summarize the matched records; falls back to a bulleted template."""
        if not events and not listings:
            return no_results_message(query, self.locale)

        if not self.is_configured:
            return results_summary(events, listings, query)

        result = await self.generate(
            prompt=COMPOSE_PROMPT.format(query=query, results=build_results_context(events, listings)),
            system_instruction=COMPOSE_SYSTEM_PROMPT.format(locale=self.locale),
        )
        if not result.ok or not (result.data or "").strip():
            logger.warning("[%s] Using template summary: %s", self.agent_name, result.error)
            return results_summary(events, listings, query)

        return result.data.strip()
