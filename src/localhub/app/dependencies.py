"""FastAPI dependency providers.

Routes receive fully-wired services from here; tests swap the external
clients through ``app.dependency_overrides``.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from localhub.app.config import get_settings
from localhub.domain.ports import LLMClient, TextModerationClassifier
from localhub.infra.database import get_db
from localhub.infra.llm_client import GeminiLLMClient
from localhub.infra.moderation_client import OpenAIModerationClient
from localhub.services.agent_admin_service import AgentAdminService
from localhub.services.agent_conversation_service import AgentConversationService
from localhub.services.agent_store import SqlAgentStore
from localhub.services.moderation_gate import ModerationGate
from localhub.services.record_lookup import SqlRecordLookup
from localhub.services.search_orchestrator import SearchOrchestrator


def get_llm_client() -> LLMClient:
    return GeminiLLMClient(get_settings())


def get_text_classifier() -> TextModerationClassifier:
    return OpenAIModerationClient(get_settings().openai_api_key)


def get_search_orchestrator(
    db: AsyncSession = Depends(get_db),
    llm_client: LLMClient = Depends(get_llm_client),
) -> SearchOrchestrator:
    return SearchOrchestrator(SqlRecordLookup(db), llm_client)


def get_agent_store(db: AsyncSession = Depends(get_db)) -> SqlAgentStore:
    return SqlAgentStore(db)


def get_conversation_service(
    db: AsyncSession = Depends(get_db),
    llm_client: LLMClient = Depends(get_llm_client),
    classifier: TextModerationClassifier = Depends(get_text_classifier),
) -> AgentConversationService:
    store = SqlAgentStore(db)
    return AgentConversationService(
        config_store=store,
        usage_store=store,
        conversation_store=store,
        moderation_gate=ModerationGate(classifier),
        llm_client=llm_client,
        lookup=SqlRecordLookup(db),
    )


def get_admin_service(store: SqlAgentStore = Depends(get_agent_store)) -> AgentAdminService:
    return AgentAdminService(store)
