"""Business-owner administration of an assistant: setup, knowledge, starters."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from localhub.domain.enums import KnowledgeType
from localhub.domain.schemas import (
    MAX_RESPONSE_LENGTH,
    MIN_RESPONSE_LENGTH,
    AgentConfig,
    BusinessInfo,
    FaqEntry,
    KnowledgeBase,
    MenuData,
    Policies,
)
from localhub.exceptions import AgentConfigValidationError

logger = logging.getLogger(__name__)

MIN_AGENT_NAME_LENGTH = 3
MIN_MONTHLY_QUERIES = 100
MAX_STARTERS = 4

# Owned by the usage counter and the business record, never by owner edits.
READ_ONLY_FIELDS = frozenset({"business_id", "queries_used"})

_KNOWLEDGE_SCHEMAS: dict[KnowledgeType, TypeAdapter] = {
    KnowledgeType.BUSINESS_INFO: TypeAdapter(BusinessInfo),
    KnowledgeType.MENU_DATA: TypeAdapter(MenuData),
    KnowledgeType.FAQ_DATA: TypeAdapter(list[FaqEntry]),
    KnowledgeType.POLICIES: TypeAdapter(Policies),
}

CATEGORY_STARTERS = {
    "Restaurant": ["Do you take reservations?", "Do you offer delivery?"],
    "Retail": ["What are your return policies?", "Do you offer gift cards?"],
    "Services": ["How can I book an appointment?", "What services do you offer?"],
}


def validate_agent_config(config: AgentConfig | dict[str, Any]) -> list[str]:
    """Every problem with *config*, in check order; empty when valid.

    Accepts the stored AgentConfig or the flat form an owner submits
    (``business_info``, ``monthly_queries_limit``, ``unlimited_queries``).
    """
    if isinstance(config, AgentConfig):
        agent_name = config.agent_name
        business_name = config.knowledge_base.business_info.name
        max_length = config.max_response_length
        unlimited = config.allowance.is_unlimited
        monthly_limit = config.allowance.limit
    else:
        agent_name = config.get("agent_name") or ""
        business_name = (config.get("business_info") or {}).get("name")
        max_length = config.get("max_response_length")
        unlimited = bool(config.get("unlimited_queries"))
        monthly_limit = config.get("monthly_queries_limit")

    errors: list[str] = []
    if len(agent_name.strip()) < MIN_AGENT_NAME_LENGTH:
        errors.append(f"Agent name must be at least {MIN_AGENT_NAME_LENGTH} characters")
    if not business_name:
        errors.append("Business name is required")
    if max_length is not None and not MIN_RESPONSE_LENGTH <= max_length <= MAX_RESPONSE_LENGTH:
        errors.append(
            f"Response length must be between {MIN_RESPONSE_LENGTH} and "
            f"{MAX_RESPONSE_LENGTH} characters"
        )
    if not unlimited and monthly_limit is not None and monthly_limit < MIN_MONTHLY_QUERIES:
        errors.append(f"Monthly query limit must be at least {MIN_MONTHLY_QUERIES}")
    return errors


def generate_starters(business_info: BusinessInfo, config: AgentConfig) -> list[str]:
    """Suggested opening questions for the chat widget."""
    starters: list[str] = []
    if business_info.operating_hours:
        starters.append("What are your hours today?")
    if config.knowledge_base.menu_data.categories:
        starters.extend(["Can I see your menu?", "What are today's specials?"])
    if business_info.address:
        starters.extend(["Where are you located?", "Do you have parking available?"])
    starters.extend(CATEGORY_STARTERS.get(business_info.category or "", []))
    return starters[:MAX_STARTERS]


class AgentAdminService:
    """Owner-side operations over an ``SqlAgentStore``-like store."""

    def __init__(self, store):
        self.store = store

    async def initialize_agent(self, business_id: str, business_info: BusinessInfo) -> AgentConfig:
        """Return the business's agent, creating a disabled default on first use."""
        existing = await self.store.get(business_id)
        if existing is not None:
            return existing

        config = AgentConfig(
            business_id=business_id,
            agent_name=f"{business_info.name} Assistant",
            enabled=False,
            knowledge_base=KnowledgeBase(business_info=business_info),
        )
        logger.info("Initialising default assistant for business %s", business_id)
        return await self.store.create(business_id, config)

    async def update_config(self, business_id: str, partial: dict[str, Any]) -> AgentConfig:
        """Apply owner edits; raises AgentConfigValidationError listing every problem."""
        read_only = sorted(READ_ONLY_FIELDS.intersection(partial))
        if read_only:
            raise ValueError(f"Fields cannot be edited: {', '.join(read_only)}")
        current = await self.store.get(business_id)
        if current is None:
            raise LookupError(f"No agent configured for business {business_id}")

        merged = current.model_dump()
        merged.update(partial)
        errors = validate_agent_config(_flatten(merged))
        if errors:
            raise AgentConfigValidationError(errors)
        try:
            AgentConfig.model_validate(merged)
        except ValidationError as exc:
            raise AgentConfigValidationError([
                f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in exc.errors()
            ]) from None
        return await self.store.update(business_id, partial)

    async def update_knowledge_base(self, business_id: str, kind: str, data: Any) -> AgentConfig:
        try:
            knowledge_type = KnowledgeType(kind)
        except ValueError:
            raise ValueError(f"Invalid knowledge type: {kind}") from None

        adapter = _KNOWLEDGE_SCHEMAS[knowledge_type]
        value = adapter.dump_python(adapter.validate_python(data), mode="json")
        logger.info("Updating %s for business %s", knowledge_type.value, business_id)
        return await self.store.update(business_id, {knowledge_type.value: value})

    async def get_starters(self, business_id: str) -> list[str]:
        config = await self.store.get(business_id)
        if config is None:
            return []
        return generate_starters(config.knowledge_base.business_info, config)

    async def rate_conversation(
        self, conversation_id: str, rating: int, resolved: bool | None = None,
    ) -> bool:
        if not 1 <= rating <= 5:
            raise ValueError("Rating must be between 1 and 5")
        return await self.store.rate_conversation(conversation_id, rating, resolved)


def _flatten(config: dict[str, Any]) -> dict[str, Any]:
    """AgentConfig-shaped dict -> the flat form ``validate_agent_config`` reads."""
    allowance = config.get("allowance") or {}
    if hasattr(allowance, "model_dump"):
        allowance = allowance.model_dump()
    kb = config.get("knowledge_base") or {}
    if hasattr(kb, "model_dump"):
        kb = kb.model_dump()
    return {
        "agent_name": config.get("agent_name"),
        "business_info": kb.get("business_info") or {},
        "max_response_length": config.get("max_response_length"),
        "unlimited_queries": allowance.get("kind") == "unlimited",
        "monthly_queries_limit": allowance.get("limit"),
    }
