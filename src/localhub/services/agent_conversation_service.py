"""Business Agent Orchestrator — one visitor turn with a business's assistant.

Strict linear pipeline with an early exit at each gate:

1. Quota Gate (no model call when the monthly allowance is spent)
2. Moderation Gate on the visitor message (fail-open)
3. Agent config must exist and be enabled
4. Build the system prompt
5. One model call
6. Model failure -> apology; nothing persisted, no quota consumed
7. Success -> consume one unit, append the user/assistant pair

Every early exit is a short user-facing message with ``success=False``.
The one fault that escapes is ``PersistenceError``: the model answered but
the bookkeeping failed, and the caller decides whether to ask the visitor
to resubmit.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from localhub.agents.business_assistant import BusinessAssistantAgent
from localhub.agents.context_builder import AgentContextBuilder
from localhub.agents.fallback_templates import get_template
from localhub.domain.enums import ConversationRole, FailureMode
from localhub.domain.ports import (
    AgentConfigStore,
    ConversationStore,
    LLMClient,
    RecordLookup,
    UsageStore,
)
from localhub.domain.schemas import (
    AgentConfig,
    BusinessRecord,
    ConversationTurn,
    QuotaCheck,
    TurnResult,
    TurnUsage,
)
from localhub.exceptions import PersistenceError
from localhub.services.moderation_gate import ModerationGate
from localhub.services.quota_gate import QuotaGate

logger = logging.getLogger(__name__)

QUERY_LIMIT_EXCEEDED = "QUERY_LIMIT_EXCEEDED"
CONTENT_MODERATED = "CONTENT_MODERATED"
AGENT_DISABLED = "AGENT_DISABLED"
AGENT_ERROR = "AGENT_ERROR"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AgentConversationService:
    """Runs a single business-assistant turn end to end."""

    def __init__(
        self,
        config_store: AgentConfigStore,
        usage_store: UsageStore,
        conversation_store: ConversationStore,
        moderation_gate: ModerationGate,
        llm_client: LLMClient,
        lookup: RecordLookup | None = None,
        context_builder: AgentContextBuilder | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config_store = config_store
        self.usage_store = usage_store
        self.conversation_store = conversation_store
        self.moderation_gate = moderation_gate
        self.lookup = lookup
        self.quota_gate = QuotaGate(usage_store)
        self.context_builder = context_builder or AgentContextBuilder(lookup=lookup)
        self.agent = BusinessAssistantAgent(llm_client)
        self._clock = clock or _utcnow

    async def handle_turn(
        self,
        business_id: str,
        user_message: str,
        session_id: str,
        user_id: str | None = None,
    ) -> TurnResult:
        # 1-3. Quota, moderation, config
        try:
            rejection, quota, config = await self._admit(business_id, user_message)
        except Exception as exc:
            logger.error("Turn admission failed for business %s: %s", business_id, exc)
            return self._agent_error()
        if rejection is not None:
            return rejection

        # 4-5. Prompt + model call
        try:
            business = await self._load_business(business_id)
            system_prompt = await self.context_builder.build_prompt(config, business)
        except Exception as exc:
            logger.error("Prompt build failed for business %s: %s", business_id, exc)
            return self._agent_error()

        result = await self.agent.reply(system_prompt, user_message, config.max_response_length)

        # 6. Model failure consumes nothing
        if not result.ok:
            logger.warning("Assistant reply failed for business %s: %s", business_id, result.error)
            return self._agent_error()

        reply = result.data.strip()

        # 7. Bookkeeping
        await self._record_turn(
            business_id, user_id, session_id, user_message, reply, result.tokens_used,
        )
        return TurnResult(success=True, message=reply, usage=self._usage_after(quota))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _admit(
        self, business_id: str, user_message: str,
    ) -> tuple[TurnResult | None, QuotaCheck | None, AgentConfig | None]:
        """Run the pre-model gates; the first element is set when the turn stops here."""
        quota = await self.quota_gate.check_and_reserve(business_id)
        if not quota.can_proceed:
            return TurnResult(
                success=False,
                message=get_template("over_quota"),
                usage=TurnUsage(queries_used=quota.used, queries_limit=quota.limit),
                error_code=QUERY_LIMIT_EXCEEDED,
            ), quota, None

        verdict = await self.moderation_gate.classify(user_message, FailureMode.OPEN)
        if not verdict.approved:
            logger.info(
                "Turn blocked by moderation for business %s: action=%s",
                business_id, verdict.action.value,
            )
            return TurnResult(
                success=False,
                message=get_template("content_warning"),
                error_code=CONTENT_MODERATED,
            ), quota, None

        config = await self.config_store.get(business_id)
        if config is None or not config.enabled:
            logger.info("Assistant unavailable for business %s", business_id)
            return TurnResult(
                success=False,
                message=get_template("agent_unavailable"),
                error_code=AGENT_DISABLED,
            ), quota, None
        return None, quota, config

    @staticmethod
    def _agent_error() -> TurnResult:
        return TurnResult(success=False, message=get_template("agent_error"), error_code=AGENT_ERROR)

    @staticmethod
    def _usage_after(quota: QuotaCheck) -> TurnUsage:
        return TurnUsage(queries_used=quota.used + 1, queries_limit=quota.limit)

    async def _load_business(self, business_id: str) -> BusinessRecord | None:
        get_business = getattr(self.lookup, "get_business", None)
        if get_business is None:
            return None
        try:
            return await get_business(business_id)
        except Exception as exc:
            logger.warning("Business record unavailable for %s: %s", business_id, exc)
            return None

    async def _record_turn(
        self,
        business_id: str,
        user_id: str | None,
        session_id: str,
        user_message: str,
        reply: str,
        tokens_used: int,
    ) -> None:
        now = self._clock()
        turns = [
            ConversationTurn(role=ConversationRole.USER, content=user_message, timestamp=now),
            ConversationTurn(role=ConversationRole.ASSISTANT, content=reply, timestamp=now),
        ]
        try:
            consumed = await self.usage_store.increment_usage(business_id)
            if not consumed:
                logger.warning(
                    "Business %s answered a turn after its allowance was spent concurrently",
                    business_id,
                )
            await self.conversation_store.append_conversation(
                business_id, user_id, session_id, turns, tokens_used,
            )
        except Exception as exc:
            logger.error("Turn bookkeeping failed for business %s: %s", business_id, exc)
            raise PersistenceError(f"Could not record turn for business {business_id}") from exc
