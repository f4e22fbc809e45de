"""General Search Orchestrator — free text in, filtered results + summary out.

Pipeline per call:

1. Fetch candidate events and listings (concurrently).
2. Interpret the query into a FilterDescriptor when the model is configured;
   otherwise, or on any interpreter fault, use the keyword-only filter.
3. Apply the Content Filter.
4. Compose the reply (model summary, or the deterministic template).

A model outage only makes results less precise; ``search`` always returns
a ``SearchResponse`` and never raises.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable

from localhub.agents.fallback_templates import (
    get_template,
    no_results_message,
    results_summary,
)
from localhub.agents.query_interpreter import QueryInterpreterAgent, fallback_filters
from localhub.agents.response_composer import ResponseComposerAgent
from localhub.app.config import get_settings
from localhub.domain.ports import LLMClient, RecordLookup
from localhub.domain.schemas import EventRecord, FilterDescriptor, ListingRecord, SearchResponse
from localhub.services.content_filter import filter_events, filter_listings, service_timezone

logger = logging.getLogger(__name__)


class SearchOrchestrator:
    """Composes Query Interpreter -> Content Filter -> Response Composer."""

    def __init__(
        self,
        lookup: RecordLookup,
        llm_client: LLMClient,
        interpreter: QueryInterpreterAgent | None = None,
        composer: ResponseComposerAgent | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.lookup = lookup
        self.llm_client = llm_client
        self.interpreter = interpreter or QueryInterpreterAgent(llm_client)
        self.composer = composer or ResponseComposerAgent(llm_client)
        self._clock = clock
        self._locale = get_settings().locale_name

    def _now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        return datetime.now(service_timezone())

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def search(self, query: str, user_id: str | None = None) -> SearchResponse:
        """Run a site-wide search for *query* on behalf of *user_id*."""
        query = (query or "").strip()
        logger.info("Search query=%r user=%s", query, user_id or "anonymous")

        try:
            all_events, all_listings = await asyncio.gather(
                self.lookup.get_events(),
                self.lookup.get_listings(),
            )
        except Exception as exc:
            logger.error("Search candidate fetch failed: %s", exc)
            return SearchResponse(message=get_template("search_error"), degraded=True)

        filters, degraded = await self._interpret(query)
        now = self._now()

        try:
            events = filter_events(all_events, filters, now=now)
            listings = filter_listings(all_listings, filters, now=now)
        except Exception as exc:
            logger.warning("Structured filtering failed, using keyword filter: %s", exc)
            filters, degraded = fallback_filters(query), True
            events = filter_events(all_events, filters, now=now)
            listings = filter_listings(all_listings, filters, now=now)

        message = await self._compose(events, listings, query)

        logger.info(
            "Search results: events=%d listings=%d degraded=%s",
            len(events), len(listings), degraded,
        )
        return SearchResponse(
            message=message,
            events=events,
            listings=listings,
            total_results=len(events) + len(listings),
            filters=filters,
            degraded=degraded,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _interpret(self, query: str) -> tuple[FilterDescriptor, bool]:
        """Return (filters, degraded)."""
        if not getattr(self.llm_client, "is_configured", False):
            logger.info("Language model not configured; using keyword search")
            return fallback_filters(query), True

        try:
            return await self.interpreter.interpret(query)
        except Exception as exc:
            logger.warning("Query interpreter failed, using keyword search: %s", exc)
            return fallback_filters(query), True

    async def _compose(
        self, events: list[EventRecord], listings: list[ListingRecord], query: str,
    ) -> str:
        try:
            return await self.composer.compose(events, listings, query)
        except Exception as exc:
            logger.warning("Response composer failed, using template: %s", exc)
            if not events and not listings:
                return no_results_message(query, self._locale)
            return results_summary(events, listings, query)
