"""Usage analytics over a business assistant's stored conversations."""

from collections import Counter
from datetime import timezone
from typing import Sequence
from zoneinfo import ZoneInfo

from localhub.domain.enums import ConversationRole
from localhub.domain.schemas import AgentAnalytics, ConversationSummary, PeakHour, PopularTopic
from localhub.services.content_filter import service_timezone

TOPIC_KEYWORDS = (
    "hours", "menu", "price", "location", "parking",
    "reservation", "delivery", "special", "event", "contact",
)
MAX_TOPICS = 5
MAX_PEAK_HOURS = 3


def popular_topics(conversations: Sequence[ConversationSummary]) -> list[PopularTopic]:
    """Count visitor messages mentioning each topic keyword."""
    counts: Counter[str] = Counter()
    for conversation in conversations:
        for turn in conversation.messages:
            if turn.role != ConversationRole.USER:
                continue
            text = turn.content.lower()
            counts.update(keyword for keyword in TOPIC_KEYWORDS if keyword in text)
    return [PopularTopic(topic=t, count=c) for t, c in counts.most_common(MAX_TOPICS)]


def peak_hours(conversations: Sequence[ConversationSummary], tz: ZoneInfo) -> list[PeakHour]:
    """Busiest local hours of day. Stored timestamps without an offset are UTC."""
    counts: Counter[int] = Counter()
    for conversation in conversations:
        created = conversation.created_at
        if created is None:
            continue
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        counts[created.astimezone(tz).hour] += 1
    ranked = sorted(counts.items(), key=lambda pair: (-pair[1], pair[0]))
    return [PeakHour(hour=h, count=c) for h, c in ranked[:MAX_PEAK_HOURS]]


def compute_agent_analytics(
    conversations: Sequence[ConversationSummary],
    tz: ZoneInfo | None = None,
) -> AgentAnalytics:
    tz = tz or service_timezone()

    ratings = [c.user_satisfaction_rating for c in conversations if c.user_satisfaction_rating]
    return AgentAnalytics(
        total_conversations=len(conversations),
        unique_users=len({c.user_id or c.session_id for c in conversations}),
        average_rating=round(sum(ratings) / len(ratings), 2) if ratings else 0.0,
        resolved_queries=sum(1 for c in conversations if c.resolved_query),
        total_tokens_used=sum(c.total_tokens_used or 0 for c in conversations),
        popular_topics=popular_topics(conversations),
        peak_hours=peak_hours(conversations, tz),
    )
