"""Interfaces the assistant core is written against.

Concrete implementations live in ``localhub.infra`` (model and classifier
clients) and ``localhub.services`` (SQL-backed stores). Tests substitute
in-memory doubles.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, Sequence, runtime_checkable

from localhub.domain.schemas import (
    AgentConfig,
    BusinessRecord,
    ClassifierScores,
    ConversationSummary,
    ConversationTurn,
    EventRecord,
    ImageClassification,
    ListingRecord,
    UsageSnapshot,
)


@dataclass
class ChatMessage:
    """Single chat turn sent to the language model."""
    role: str  # system, user, assistant
    content: str


@dataclass
class CompletionOptions:
    """Per-request generation parameters."""
    temperature: float = 0.7
    max_tokens: int = 300
    model: str | None = None
    json_mode: bool = False
    response_schema: dict | None = None


@dataclass
class LLMCompletion:
    text: str
    tokens_used: int = 0


@runtime_checkable
class LLMClient(Protocol):
    """Language-model completion call."""

    @property
    def is_configured(self) -> bool:  # pragma: no cover - interface
        ...

    async def complete(
        self, messages: Sequence[ChatMessage], options: CompletionOptions,
    ) -> LLMCompletion:  # pragma: no cover - interface
        """Return the model's reply; raise on transport, quota or format errors."""


class TextModerationClassifier(Protocol):
    async def classify(self, text: str) -> ClassifierScores:  # pragma: no cover - interface
        """Score *text* against the moderation taxonomy."""


class ImageModerationClassifier(Protocol):
    async def classify(self, image_url: str) -> ImageClassification:  # pragma: no cover - interface
        """Return safe-search likelihoods and content labels for an image."""


class RecordLookup(Protocol):
    async def get_events(self, filters: dict[str, Any] | None = None) -> list[EventRecord]:  # pragma: no cover
        ...

    async def get_listings(self, filters: dict[str, Any] | None = None) -> list[ListingRecord]:  # pragma: no cover
        ...

    async def get_upcoming_events(self, days: int) -> list[EventRecord]:  # pragma: no cover
        ...

    async def get_popular_events(self, n: int) -> list[EventRecord]:  # pragma: no cover
        ...

    async def get_businesses_by_category(self, category: str) -> list[BusinessRecord]:  # pragma: no cover
        ...


class AgentConfigStore(Protocol):
    async def get(self, business_id: str) -> AgentConfig | None:  # pragma: no cover
        ...

    async def create(self, business_id: str, config: AgentConfig) -> AgentConfig:  # pragma: no cover
        ...

    async def update(self, business_id: str, partial: dict[str, Any]) -> AgentConfig:  # pragma: no cover
        ...


class UsageStore(Protocol):
    async def get_usage(self, business_id: str) -> UsageSnapshot | None:  # pragma: no cover
        ...

    async def increment_usage(self, business_id: str) -> bool:  # pragma: no cover
        """Consume one unit atomically; False when the allowance was already spent."""


class ConversationStore(Protocol):
    async def append_conversation(
        self,
        business_id: str,
        user_id: str | None,
        session_id: str,
        turns: list[ConversationTurn],
        tokens_used: int,
    ) -> str:  # pragma: no cover
        ...

    async def list_conversations(self, business_id: str) -> list[ConversationSummary]:  # pragma: no cover
        ...

    async def rate_conversation(
        self, conversation_id: str, rating: int, resolved: bool | None = None,
    ) -> bool:  # pragma: no cover
        ...


class ModerationStore(Protocol):
    async def log_moderation(
        self, content_type: str, content_id: str, content_table: str, result: dict, action: str,
    ) -> None:  # pragma: no cover
        ...

    async def update_moderation_status(self, content_table: str, content_id: str, action: str) -> None:  # pragma: no cover
        ...
