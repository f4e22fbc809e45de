"""Shared test infrastructure for the LocalHub test suite.

Provides:
- db_session: async SQLite in-memory session with all tables created
- FakeLLMClient: scripted LLMClient double that records every call
- FakeTextClassifier / FakeImageClassifier: scripted moderation doubles
- InMemoryAgentStore / InMemoryLookup: storage doubles for service tests
- make_agent_config: factory for a fully-populated AgentConfig
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import Base first, then models to register all tables
from localhub.infra.database import Base
import localhub.domain.models  # noqa: F401

from localhub.domain.ports import LLMCompletion
from localhub.domain.schemas import (
    AgentConfig,
    BusinessInfo,
    ClassifierScores,
    ConversationSummary,
    FaqEntry,
    ImageClassification,
    KnowledgeBase,
    MenuCategory,
    MenuData,
    MenuItem,
    Policies,
    QuotaAllowance,
    UsageSnapshot,
)


# ---------------------------------------------------------------------------
# Database session fixture
# ---------------------------------------------------------------------------

@pytest.fixture
async def db_session():
    """Async SQLite in-memory session with all tables created.

    Creates a fresh engine + tables for each test, yields a session,
    then rolls back and tears down.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


# ---------------------------------------------------------------------------
# Language model double
# ---------------------------------------------------------------------------

class FakeLLMClient:
    """Returns scripted replies in order; raises ``error`` when set."""

    def __init__(
        self,
        replies: list[str] | None = None,
        error: Exception | None = None,
        configured: bool = True,
        tokens_used: int = 42,
    ):
        self.replies = list(replies or [])
        self.error = error
        self.configured = configured
        self.tokens_used = tokens_used
        self.calls: list[tuple[list, Any]] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def complete(self, messages, options):
        self.calls.append((list(messages), options))
        if self.error is not None:
            raise self.error
        text = self.replies.pop(0) if self.replies else ""
        return LLMCompletion(text=text, tokens_used=self.tokens_used)


# ---------------------------------------------------------------------------
# Moderation doubles
# ---------------------------------------------------------------------------

class FakeTextClassifier:
    def __init__(
        self,
        scores: dict[str, float] | None = None,
        flagged: bool = False,
        error: Exception | None = None,
    ):
        self.scores = scores or {}
        self.flagged = flagged
        self.error = error
        self.calls: list[str] = []

    async def classify(self, text: str) -> ClassifierScores:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return ClassifierScores(flagged=self.flagged, category_scores=self.scores)


class FakeImageClassifier:
    def __init__(
        self,
        results: dict[str, ImageClassification] | None = None,
        error: Exception | None = None,
    ):
        self.results = results or {}
        self.error = error

    async def classify(self, image_url: str) -> ImageClassification:
        if self.error is not None:
            raise self.error
        return self.results.get(image_url, ImageClassification())


# ---------------------------------------------------------------------------
# Storage doubles
# ---------------------------------------------------------------------------

class InMemoryAgentStore:
    """AgentConfigStore + UsageStore + ConversationStore held in dicts."""

    def __init__(self):
        self.configs: dict[str, AgentConfig] = {}
        self.conversations: list[ConversationSummary] = []
        self.increment_calls = 0
        self.append_error: Exception | None = None

    async def get(self, business_id):
        return self.configs.get(business_id)

    async def create(self, business_id, config):
        self.configs[business_id] = config
        return config

    async def update(self, business_id, partial):
        current = self.configs.get(business_id)
        if current is None:
            raise LookupError(f"No agent configured for business {business_id}")
        data = current.model_dump()
        kb = data["knowledge_base"]
        for key, value in partial.items():
            if key in kb:
                kb[key] = value
            else:
                data[key] = value
        self.configs[business_id] = AgentConfig.model_validate(data)
        return self.configs[business_id]

    async def get_usage(self, business_id):
        config = self.configs.get(business_id)
        if config is None:
            return None
        return UsageSnapshot(used=config.queries_used, allowance=config.allowance)

    async def increment_usage(self, business_id):
        self.increment_calls += 1
        config = self.configs[business_id]
        allowance = config.allowance
        if not allowance.is_unlimited and config.queries_used >= allowance.limit:
            return False
        config.queries_used += 1
        return True

    async def append_conversation(self, business_id, user_id, session_id, turns, tokens_used):
        if self.append_error is not None:
            raise self.append_error
        summary = ConversationSummary(
            id=str(uuid.uuid4()),
            business_id=business_id,
            session_id=session_id,
            user_id=user_id,
            messages=list(turns),
            total_tokens_used=tokens_used,
            created_at=datetime.now(timezone.utc),
        )
        self.conversations.append(summary)
        return summary.id

    async def list_conversations(self, business_id):
        return [c for c in self.conversations if c.business_id == business_id]

    async def rate_conversation(self, conversation_id, rating, resolved=None):
        for conversation in self.conversations:
            if conversation.id == conversation_id:
                conversation.user_satisfaction_rating = rating
                if resolved is not None:
                    conversation.resolved_query = resolved
                return True
        return False


class InMemoryLookup:
    """RecordLookup over plain lists."""

    def __init__(self, events=None, listings=None, businesses=None, error=None):
        self.events = list(events or [])
        self.listings = list(listings or [])
        self.businesses = list(businesses or [])
        self.error = error

    def _check(self):
        if self.error is not None:
            raise self.error

    async def get_events(self, filters=None):
        self._check()
        return list(self.events)

    async def get_listings(self, filters=None):
        self._check()
        return list(self.listings)

    async def get_upcoming_events(self, days):
        self._check()
        return list(self.events)

    async def get_popular_events(self, n):
        self._check()
        return sorted(self.events, key=lambda e: e.view_count, reverse=True)[:n]

    async def get_businesses_by_category(self, category):
        self._check()
        return [b for b in self.businesses if b.category == category]


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def make_agent_config(
    business_id: str = "biz-1",
    *,
    enabled: bool = True,
    queries_used: int = 0,
    limit: int = 500,
    unlimited: bool = False,
    include_platform_context: bool = False,
    **overrides,
) -> AgentConfig:
    """AgentConfig for "Joe's Diner" with menu, FAQ and policies filled in."""
    knowledge = KnowledgeBase(
        business_info=BusinessInfo(
            name="Joe's Diner",
            category="Restaurant",
            description="Classic diner breakfasts all day.",
            address="123 5 Ave S, Lethbridge",
            phone="403-555-0101",
            operating_hours={"Mon-Fri": "7am-3pm", "Sat-Sun": "8am-2pm"},
        ),
        menu_data=MenuData(categories=[
            MenuCategory(name="Mains", items=[
                MenuItem(name="Burger", description="Beef patty", price=12.5),
                MenuItem(name="Pancakes", price="market price"),
            ]),
        ]),
        faq_data=[FaqEntry(question="Do you have vegan options?", answer="Yes, ask for the vegan menu.")],
        policies=Policies(cancellation_policy="Cancel reservations 2 hours ahead.", privacy_policy="  "),
    )
    allowance = QuotaAllowance.unlimited() if unlimited else QuotaAllowance(limit=limit)
    fields = dict(
        business_id=business_id,
        agent_name="Joe's Helper",
        enabled=enabled,
        queries_used=queries_used,
        allowance=allowance,
        knowledge_base=knowledge,
        include_platform_context=include_platform_context,
    )
    fields.update(overrides)
    return AgentConfig(**fields)


@pytest.fixture
def agent_store():
    return InMemoryAgentStore()
