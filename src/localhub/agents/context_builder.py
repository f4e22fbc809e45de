"""Agent Context Builder — assembles a business assistant's system prompt.

The prompt is an ordered list of optional sections. Each ``PromptSection``
has a presence predicate and a renderer; the builder simply walks the list,
so a new knowledge section is one more entry rather than a new branch.

Default order::

    identity          tone framing from the personality
    business_profile  PRIMARY banner + name/category/description/contact/hours
    catalog           menu or service categories (if any)
    faq               question/answer pairs (if any)
    policies          non-empty policy fields
    primary_end       closes the PRIMARY block
    secondary         platform context (only when the agent opts in)
    closing           fixed behavioural instructions

Only the secondary section performs I/O. If that lookup fails the section
becomes a short "unavailable" note; everything else is built from the
AgentConfig alone.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable

from localhub.agents.fallback_templates import format_event_date
from localhub.agents.prompts.business_agent import (
    CLOSING_INSTRUCTIONS,
    LOCALE_FACTS,
    PERSONALITY_TONES,
    PRIMARY_BANNER,
    PRIMARY_END,
    SECONDARY_BANNER,
    SECONDARY_END,
    SECONDARY_UNAVAILABLE,
)
from localhub.app.config import get_settings
from localhub.domain.ports import RecordLookup
from localhub.domain.schemas import (
    AgentConfig,
    BusinessInfo,
    BusinessRecord,
    EventRecord,
)

logger = logging.getLogger(__name__)

UPCOMING_WINDOW_DAYS = 7
MAX_UPCOMING_EVENTS = 10
MAX_RELATED_BUSINESSES = 5
MAX_POPULAR_EVENTS = 5


# ---------------------------------------------------------------------------
# Context passed to every section
# ---------------------------------------------------------------------------

@dataclass
class SecondaryContext:
    """Platform-wide facts gathered for one prompt."""
    upcoming_events: list[EventRecord] = field(default_factory=list)
    related_businesses: list[BusinessRecord] = field(default_factory=list)
    popular_events: list[EventRecord] = field(default_factory=list)
    locale_facts: list[str] = field(default_factory=list)


@dataclass
class PromptContext:
    config: AgentConfig
    business: BusinessInfo
    locale: str
    secondary: SecondaryContext | None = None
    secondary_unavailable: bool = False


@dataclass
class PromptSection:
    name: str
    render: Callable[[PromptContext], str]
    is_present: Callable[[PromptContext], bool] = lambda ctx: True


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def merge_business_info(
    config: AgentConfig, business: BusinessRecord | BusinessInfo | dict | None,
) -> BusinessInfo:
    """Knowledge-base facts win; the live business record fills the gaps."""
    merged = config.knowledge_base.business_info.model_dump()
    if business is None:
        return BusinessInfo(**merged)
    if isinstance(business, dict):
        extra = business
    else:
        extra = business.model_dump()
    for key in BusinessInfo.model_fields:
        if not merged.get(key) and extra.get(key):
            merged[key] = extra[key]
    return BusinessInfo(**merged)


def format_hours(hours: dict | str | None) -> str:
    if not hours:
        return ""
    if isinstance(hours, dict):
        return "; ".join(f"{day}: {value}" for day, value in hours.items())
    return str(hours)


def format_price(price: str | float | None) -> str:
    if price is None or price == "":
        return "price on request"
    if isinstance(price, (int, float)):
        return f"${price:,.2f}"
    return str(price)


def _price_label(event: EventRecord) -> str:
    if event.is_free:
        return "Free"
    if event.cost is None:
        return "price TBA"
    return f"${event.cost:,.2f}"


def _event_line(event: EventRecord) -> str:
    parts = [event.title, event.location or "location TBA", format_event_date(event)]
    if event.category:
        parts.append(event.category)
    parts.append(_price_label(event))
    return "- " + " | ".join(parts)


# ---------------------------------------------------------------------------
# Section renderers
# ---------------------------------------------------------------------------

def _render_identity(ctx: PromptContext) -> str:
    personality = ctx.config.personality.value
    tone = PERSONALITY_TONES.get(personality, PERSONALITY_TONES["professional"])
    text = f"You are an AI assistant for {ctx.business.name}. {tone}"
    if ctx.config.welcome_message:
        text += f'\nWhen greeting a new visitor, use: "{ctx.config.welcome_message}"'
    return text


def _render_business_profile(ctx: PromptContext) -> str:
    info = ctx.business
    lines = [PRIMARY_BANNER.format(name=info.name), "Business Information:", f"- Name: {info.name}"]
    if info.category:
        lines.append(f"- Type: {info.category}")
    if info.description:
        lines.append(f"- Description: {info.description}")
    if info.address:
        lines.append(f"- Address: {info.address}")
    if info.phone:
        lines.append(f"- Phone: {info.phone}")
    if info.email:
        lines.append(f"- Email: {info.email}")
    if info.website:
        lines.append(f"- Website: {info.website}")
    hours = format_hours(info.operating_hours)
    if hours:
        lines.append(f"- Hours: {hours}")
    return "\n".join(lines)


def _has_catalog(ctx: PromptContext) -> bool:
    return bool(ctx.config.knowledge_base.menu_data.categories)


def _render_catalog(ctx: PromptContext) -> str:
    lines = ["Menu/Services:"]
    for category in ctx.config.knowledge_base.menu_data.categories:
        lines.append(f"{category.name}:")
        for item in category.items:
            if item.description:
                lines.append(f"- {item.name}: {item.description} - {format_price(item.price)}")
            else:
                lines.append(f"- {item.name} - {format_price(item.price)}")
    return "\n".join(lines)


def _has_faq(ctx: PromptContext) -> bool:
    return bool(ctx.config.knowledge_base.faq_data)


def _render_faq(ctx: PromptContext) -> str:
    pairs = [f"Q: {faq.question}\nA: {faq.answer}" for faq in ctx.config.knowledge_base.faq_data]
    return "Frequently Asked Questions:\n" + "\n\n".join(pairs)


_POLICY_LABELS = {
    "return_policy": "Return policy",
    "cancellation_policy": "Cancellation policy",
    "privacy_policy": "Privacy policy",
}


def _policy_lines(ctx: PromptContext) -> list[str]:
    policies = ctx.config.knowledge_base.policies.model_dump()
    return [
        f"- {label}: {policies[key].strip()}"
        for key, label in _POLICY_LABELS.items()
        if policies.get(key) and policies[key].strip()
    ]


def _render_policies(ctx: PromptContext) -> str:
    return "Business Policies:\n" + "\n".join(_policy_lines(ctx))


def _render_primary_end(ctx: PromptContext) -> str:
    return PRIMARY_END


def _wants_secondary(ctx: PromptContext) -> bool:
    return ctx.config.include_platform_context


def _render_secondary(ctx: PromptContext) -> str:
    lines = [SECONDARY_BANNER.format(locale=ctx.locale)]
    secondary = ctx.secondary
    if ctx.secondary_unavailable or secondary is None:
        lines.append(SECONDARY_UNAVAILABLE)
        lines.append(SECONDARY_END)
        return "\n".join(lines)

    if secondary.upcoming_events:
        lines.append(f"Upcoming events (next {UPCOMING_WINDOW_DAYS} days):")
        lines.extend(_event_line(e) for e in secondary.upcoming_events)
    if secondary.related_businesses:
        lines.append("Other local businesses in the same category:")
        for biz in secondary.related_businesses:
            detail = f" ({biz.address})" if biz.address else ""
            lines.append(f"- {biz.name}{detail}")
    if secondary.popular_events:
        lines.append("Popular events right now:")
        lines.extend(_event_line(e) for e in secondary.popular_events)
    if secondary.locale_facts:
        lines.append(f"About {ctx.locale}:")
        lines.extend(f"- {fact}" for fact in secondary.locale_facts)
    lines.append(SECONDARY_END)
    return "\n".join(lines)


def _render_closing(ctx: PromptContext) -> str:
    info = ctx.business
    contact = ""
    if info.phone:
        contact = f" at {info.phone}"
    elif info.email:
        contact = f" at {info.email}"
    return CLOSING_INSTRUCTIONS.format(
        name=info.name,
        personality=ctx.config.personality.value,
        max_length=ctx.config.max_response_length,
        contact=contact,
    )


DEFAULT_SECTIONS: list[PromptSection] = [
    PromptSection("identity", _render_identity),
    PromptSection("business_profile", _render_business_profile),
    PromptSection("catalog", _render_catalog, _has_catalog),
    PromptSection("faq", _render_faq, _has_faq),
    PromptSection("policies", _render_policies, lambda ctx: bool(_policy_lines(ctx))),
    PromptSection("primary_end", _render_primary_end),
    PromptSection("secondary", _render_secondary, _wants_secondary),
    PromptSection("closing", _render_closing),
]


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

class AgentContextBuilder:
    """Builds the bounded system prompt for a business assistant."""

    def __init__(
        self,
        lookup: RecordLookup | None = None,
        sections: list[PromptSection] | None = None,
        locale: str | None = None,
    ):
        self.lookup = lookup
        self.sections = list(sections) if sections is not None else list(DEFAULT_SECTIONS)
        self.locale = locale or get_settings().locale_name

    async def build_prompt(
        self,
        config: AgentConfig,
        business: BusinessRecord | BusinessInfo | dict | None = None,
    ) -> str:
        info = merge_business_info(config, business)
        ctx = PromptContext(config=config, business=info, locale=self.locale)

        if config.include_platform_context:
            try:
                ctx.secondary = await self._load_secondary(config.business_id, info)
            except Exception as exc:
                logger.warning(
                    "Secondary context unavailable for business %s: %s", config.business_id, exc,
                )
                ctx.secondary_unavailable = True

        rendered = [s.render(ctx) for s in self.sections if s.is_present(ctx)]
        return "\n\n".join(part for part in rendered if part)

    async def _load_secondary(self, business_id: str, info: BusinessInfo) -> SecondaryContext:
        if self.lookup is None:
            raise RuntimeError("no record lookup configured")

        async def _same_category() -> list[BusinessRecord]:
            if not info.category:
                return []
            return await self.lookup.get_businesses_by_category(info.category)

        upcoming, related, popular = await asyncio.gather(
            self.lookup.get_upcoming_events(UPCOMING_WINDOW_DAYS),
            _same_category(),
            self.lookup.get_popular_events(MAX_POPULAR_EVENTS),
        )

        others = [
            b for b in related
            if b.id != business_id and b.name.strip().lower() != info.name.strip().lower()
        ]
        popular_sorted = sorted(popular, key=lambda e: e.view_count or 0, reverse=True)

        return SecondaryContext(
            upcoming_events=list(upcoming)[:MAX_UPCOMING_EVENTS],
            related_businesses=others[:MAX_RELATED_BUSINESSES],
            popular_events=popular_sorted[:MAX_POPULAR_EVENTS],
            locale_facts=list(LOCALE_FACTS.get(self.locale, [])),
        )
