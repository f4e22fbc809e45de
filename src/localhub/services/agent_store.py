"""SQL-backed agent configuration, usage and conversation storage.

One ``SqlAgentStore`` per request session. Usage is a rolling monthly
counter on the ``business_ai_agents`` row: the period resets when
``usage_period_start`` falls before the first day of the current month in
the service timezone.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Callable

from pydantic import ValidationError
from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from localhub.domain.models import AgentConversation, BusinessAIAgent
from localhub.domain.enums import Personality
from localhub.domain.schemas import (
    AgentConfig,
    BusinessInfo,
    ConversationSummary,
    ConversationTurn,
    KnowledgeBase,
    MenuData,
    Policies,
    QuotaAllowance,
    UsageSnapshot,
)
from localhub.services.content_filter import local_now

logger = logging.getLogger(__name__)

# Older rows marked unmetered tiers with a negative limit
LEGACY_UNLIMITED_LIMIT = -1


# ---------------------------------------------------------------------------
# Row <-> schema mapping
# ---------------------------------------------------------------------------

def _allowance(row: BusinessAIAgent) -> QuotaAllowance:
    limit = row.monthly_queries_limit
    if row.unlimited_queries or (limit is not None and limit < 0):
        return QuotaAllowance.unlimited()
    return QuotaAllowance(limit=limit or 0)


def _knowledge_base(row: BusinessAIAgent) -> KnowledgeBase:
    return KnowledgeBase(
        business_info=BusinessInfo.model_validate(row.business_info or {}),
        menu_data=MenuData.model_validate(row.menu_data or {}),
        faq_data=row.faq_data or [],
        policies=Policies.model_validate(row.policies or {}),
    )


def row_to_config(row: BusinessAIAgent) -> AgentConfig:
    return AgentConfig(
        business_id=row.business_id,
        agent_name=row.agent_name or "",
        enabled=bool(row.enabled),
        personality=row.agent_personality or "professional",
        welcome_message=row.welcome_message,
        max_response_length=row.max_response_length or 300,
        allowance=_allowance(row),
        queries_used=row.queries_used or 0,
        knowledge_base=_knowledge_base(row),
        include_platform_context=bool(row.include_platform_context),
    )


def _allowance_columns(allowance: QuotaAllowance | dict) -> dict[str, Any]:
    allowance = QuotaAllowance.model_validate(allowance)
    if allowance.is_unlimited:
        return {"unlimited_queries": True}
    return {"unlimited_queries": False, "monthly_queries_limit": allowance.limit}


def _knowledge_columns(kb: KnowledgeBase | dict) -> dict[str, Any]:
    kb = KnowledgeBase.model_validate(kb)
    return {
        "business_info": kb.business_info.model_dump(mode="json"),
        "menu_data": kb.menu_data.model_dump(mode="json"),
        "faq_data": [faq.model_dump(mode="json") for faq in kb.faq_data],
        "policies": kb.policies.model_dump(mode="json"),
    }


_DIRECT_FIELDS = {
    "agent_name": "agent_name",
    "enabled": "enabled",
    "welcome_message": "welcome_message",
    "max_response_length": "max_response_length",
    "include_platform_context": "include_platform_context",
    # knowledge sections may also be written one at a time
    "business_info": "business_info",
    "menu_data": "menu_data",
    "faq_data": "faq_data",
    "policies": "policies",
}


def partial_to_columns(partial: dict[str, Any]) -> dict[str, Any]:
    """Translate AgentConfig-shaped keys into BusinessAIAgent columns."""
    columns: dict[str, Any] = {}
    for key, value in partial.items():
        if key == "personality":
            columns["agent_personality"] = Personality(value).value
        elif key == "allowance":
            columns.update(_allowance_columns(value))
        elif key == "knowledge_base":
            columns.update(_knowledge_columns(value))
        elif key in _DIRECT_FIELDS:
            columns[_DIRECT_FIELDS[key]] = value
        else:
            raise ValueError(f"Unknown agent config field: {key}")
    return columns


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class SqlAgentStore:
    """AgentConfigStore + UsageStore + ConversationStore over one session."""

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] | None = None):
        self.db = db
        self._clock = clock or local_now

    def _period_start(self) -> datetime:
        now = self._clock()
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    async def _row(self, business_id: str) -> BusinessAIAgent | None:
        result = await self.db.execute(
            select(BusinessAIAgent)
            .where(BusinessAIAgent.business_id == business_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    async def get(self, business_id: str) -> AgentConfig | None:
        row = await self._row(business_id)
        return row_to_config(row) if row else None

    async def create(self, business_id: str, config: AgentConfig) -> AgentConfig:
        row = BusinessAIAgent(
            id=str(uuid.uuid4()),
            business_id=business_id,
            agent_name=config.agent_name,
            enabled=config.enabled,
            agent_personality=config.personality.value,
            welcome_message=config.welcome_message,
            max_response_length=config.max_response_length,
            include_platform_context=config.include_platform_context,
            queries_used=config.queries_used,
            usage_period_start=self._period_start(),
            **_allowance_columns(config.allowance),
            **_knowledge_columns(config.knowledge_base),
        )
        self.db.add(row)
        await self.db.commit()
        logger.info("Created agent config for business %s", business_id)
        return row_to_config(row)

    async def update(self, business_id: str, partial: dict[str, Any]) -> AgentConfig:
        columns = partial_to_columns(partial)
        row = await self._row(business_id)
        if row is None:
            raise LookupError(f"No agent configured for business {business_id}")
        for column, value in columns.items():
            setattr(row, column, value)
        try:
            config = row_to_config(row)
        except ValidationError:
            await self.db.rollback()
            raise
        await self.db.commit()
        return config

    # ------------------------------------------------------------------
    # Usage
    # ------------------------------------------------------------------

    async def _roll_period(self, business_id: str) -> None:
        """Start a fresh monthly period if the stored one is stale."""
        period_start = self._period_start()
        # Rows that predate period tracking keep their count
        await self.db.execute(
            update(BusinessAIAgent)
            .where(
                BusinessAIAgent.business_id == business_id,
                BusinessAIAgent.usage_period_start.is_(None),
            )
            .values(usage_period_start=period_start)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(
            update(BusinessAIAgent)
            .where(
                BusinessAIAgent.business_id == business_id,
                BusinessAIAgent.usage_period_start < period_start,
            )
            .values(queries_used=0, usage_period_start=period_start)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info("Monthly usage reset for business %s", business_id)

    async def get_usage(self, business_id: str) -> UsageSnapshot | None:
        await self._roll_period(business_id)
        await self.db.commit()
        row = await self._row(business_id)
        if row is None:
            return None
        return UsageSnapshot(used=row.queries_used or 0, allowance=_allowance(row))

    async def increment_usage(self, business_id: str) -> bool:
        """Consume one query in a single conditional UPDATE.

        Returns False when no row matched: the business has no agent, or a
        concurrent turn spent the last unit first.
        """
        await self._roll_period(business_id)
        result = await self.db.execute(
            update(BusinessAIAgent)
            .where(
                BusinessAIAgent.business_id == business_id,
                or_(
                    BusinessAIAgent.unlimited_queries.is_(True),
                    BusinessAIAgent.monthly_queries_limit <= LEGACY_UNLIMITED_LIMIT,
                    BusinessAIAgent.queries_used < BusinessAIAgent.monthly_queries_limit,
                ),
            )
            .values(queries_used=BusinessAIAgent.queries_used + 1)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if result.rowcount == 0:
            logger.warning("Usage increment refused for business %s (allowance spent)", business_id)
            return False
        return True

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def append_conversation(
        self,
        business_id: str,
        user_id: str | None,
        session_id: str,
        turns: list[ConversationTurn],
        tokens_used: int,
    ) -> str:
        conversation = AgentConversation(
            id=str(uuid.uuid4()),
            business_id=business_id,
            user_id=user_id,
            session_id=session_id,
            messages=[turn.model_dump(mode="json") for turn in turns],
            total_tokens_used=tokens_used,
        )
        self.db.add(conversation)
        await self.db.commit()
        logger.debug("Saved conversation %s for business %s", conversation.id, business_id)
        return conversation.id

    async def list_conversations(self, business_id: str) -> list[ConversationSummary]:
        result = await self.db.execute(
            select(AgentConversation)
            .where(AgentConversation.business_id == business_id)
            .order_by(AgentConversation.created_at)
        )
        return [ConversationSummary.model_validate(row) for row in result.scalars().all()]

    async def rate_conversation(
        self, conversation_id: str, rating: int, resolved: bool | None = None,
    ) -> bool:
        """Record the visitor's satisfaction rating. False if the id is unknown."""
        conversation = await self.db.get(AgentConversation, conversation_id)
        if conversation is None:
            return False
        conversation.user_satisfaction_rating = rating
        if resolved is not None:
            conversation.resolved_query = resolved
        await self.db.commit()
        return True
