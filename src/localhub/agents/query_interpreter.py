"""Query Interpreter — turns a free-text search into a FilterDescriptor.

The model is asked for a JSON object only, at low temperature. Anything
that goes wrong (no credentials, transport error, non-JSON, wrong shape)
lands on the keyword-only fallback; ``parse`` never raises.
"""

import logging

from pydantic import ValidationError

from localhub.agents.base import BaseAgent
from localhub.agents.prompts.search import QUERY_PARSE_PROMPT
from localhub.app.config import get_settings
from localhub.domain.enums import DateRange, EventCategory
from localhub.domain.ports import LLMClient
from localhub.domain.schemas import FilterDescriptor
from localhub.services.content_filter import normalize_search_term, tokenize_query

logger = logging.getLogger(__name__)

# Phrases that pin a successful parse to today's events
TODAY_PHRASES = (
    "today", "tonight", "happening now", "going on now", "right now",
)


def is_today_query(query: str) -> bool:
    lowered = query.lower()
    return any(phrase in lowered for phrase in TODAY_PHRASES)


def fallback_filters(query: str) -> FilterDescriptor:
    """Keyword-only descriptor from naive tokenization of *query*."""
    return FilterDescriptor(keywords=tokenize_query(query))


class QueryInterpreterAgent(BaseAgent):
    """Builds a structured filter from a natural-language search."""

    def __init__(self, llm_client: LLMClient, locale: str | None = None):
        super().__init__(
            agent_name="query_interpreter",
            llm_client=llm_client,
            temperature=0.3,
            max_tokens=150,
        )
        self.locale = locale or get_settings().locale_name

    async def parse(self, query: str) -> FilterDescriptor:
        """Return a well-formed FilterDescriptor for *query*."""
        filters, _ = await self.interpret(query)
        return filters

    async def interpret(self, query: str) -> tuple[FilterDescriptor, bool]:
        """Like ``parse``, also reporting whether the keyword fallback was used."""
        try:
            return await self._parse_with_model(query), False
        except Exception as exc:
            logger.warning("[%s] Falling back to keyword filter: %s", self.agent_name, exc)
            return fallback_filters(query), True

    async def _parse_with_model(self, query: str) -> FilterDescriptor:
        if not self.is_configured:
            raise RuntimeError("language model not configured")

        prompt = QUERY_PARSE_PROMPT.format(
            locale=self.locale,
            categories=", ".join(c.value for c in EventCategory),
            query=query,
        )
        result = await self.generate_json(
            prompt=prompt,
            response_schema=FilterDescriptor.model_json_schema(),
        )
        if not result.ok:
            raise RuntimeError(result.error)
        if not isinstance(result.data, dict):
            raise ValueError(f"expected a JSON object, got {type(result.data).__name__}")

        try:
            filters = FilterDescriptor.model_validate(result.data)
        except ValidationError as exc:
            raise ValueError(f"schema mismatch: {exc.error_count()} error(s)") from exc

        filters.keywords = [normalize_search_term(k) for k in filters.keywords]
        if is_today_query(query):
            filters.date_range = DateRange.TODAY

        logger.info(
            "[%s] Parsed query: date_range=%s categories=%s keywords=%s price=%s",
            self.agent_name,
            filters.date_range.value,
            filters.categories,
            filters.keywords,
            filters.price_range.value,
        )
        return filters
